"""
Publishing commands for AnimeHero CLI: publish, push, fetch-slide.
"""
import json
import click

from .base import (
    console,
    user_option,
    verbose_option,
    apply_verbosity,
    handle_errors,
    get_editor,
)
from ..config import get_config
from ..constants import HERO_SLIDE_BASE_URL
from ..feed import push_feed, get_hero_slide


@click.command()
@click.argument("slug")
@user_option
@verbose_option
@handle_errors
def publish(slug: str, username: str, verbose: int) -> None:
    """Uploads one slide as its own feed file and stores the public URL."""
    apply_verbosity(verbose)
    editor = get_editor(username)
    with console.status(f"[bold blue]Publishing {slug}..."):
        url = editor.publish_record(slug)
    console.print("[green]Published![/green]")
    console.print(url)


@click.command()
@user_option
@verbose_option
@handle_errors
def push(username: str, verbose: int) -> None:
    """POSTs the whole library feed to the configured push URL."""
    apply_verbosity(verbose)
    config = get_config()
    editor = get_editor(username)
    with console.status("[bold blue]Pushing feed..."):
        status = push_feed(editor.slides, config.push_url, config.access_key)
    console.print(f"[green]Pushed {len(editor.slides)} slides ({status}).[/green]")


@click.command(name="fetch-slide")
@click.argument("slug")
@click.option("--base-url", default=HERO_SLIDE_BASE_URL, show_default=True, help="Hero slide feed endpoint.")
@click.option("--raw", "show_raw", is_flag=True, help="Print the body exactly as received.")
@verbose_option
@handle_errors
def fetch_slide(slug: str, base_url: str, show_raw: bool, verbose: int) -> None:
    """Fetches the published hero slide feed for a slug."""
    apply_verbosity(verbose)
    raw, parsed = get_hero_slide(slug, base_url=base_url)
    if show_raw or parsed is None:
        if parsed is None:
            console.print("[yellow]Response is not valid JSON; showing raw body.[/yellow]")
        click.echo(raw)
        return
    console.print_json(json.dumps(parsed))
