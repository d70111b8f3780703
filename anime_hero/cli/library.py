"""
Library commands for AnimeHero CLI: list, show, delete, export.
"""
import click
from pathlib import Path
from typing import Optional

from .base import (
    console,
    user_option,
    verbose_option,
    apply_verbosity,
    handle_errors,
    get_editor,
    render_slides,
    render_slide,
)
from ..feed import dump_feed
from ..models import find_slide
from ..logging import ValidationError


@click.command(name="list")
@user_option
@verbose_option
@handle_errors
def list_slides(username: str, verbose: int) -> None:
    """Lists the user's slides in rank order."""
    apply_verbosity(verbose)
    editor = get_editor(username)
    render_slides(editor.slides, editor.username)


@click.command()
@click.argument("slug")
@user_option
@verbose_option
@handle_errors
def show(slug: str, username: str, verbose: int) -> None:
    """Shows every field of one slide."""
    apply_verbosity(verbose)
    editor = get_editor(username)
    slide = find_slide(editor.slides, slug)
    if slide is None:
        raise ValidationError(f'No slide with slug "{slug}".')
    render_slide(slide)


@click.command()
@click.argument("slug")
@user_option
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@verbose_option
@handle_errors
def delete(slug: str, username: str, yes: bool, verbose: int) -> None:
    """Erases one slide from the library. This is permanent."""
    apply_verbosity(verbose)
    editor = get_editor(username)
    if not yes and not click.confirm(f"Erase Record '{slug}'? This is permanent."):
        return

    with console.status("[bold blue]Deleting..."):
        editor.delete_record(slug)
    console.print(f"[green]Record Deleted: {slug}[/green]")


@click.command()
@user_option
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Output file (default: heroslides_<user>_backup.json).")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print the feed instead of writing a file.")
@verbose_option
@handle_errors
def export(username: str, output: Optional[Path], to_stdout: bool, verbose: int) -> None:
    """Writes the library as a hero slide feed backup."""
    apply_verbosity(verbose)
    editor = get_editor(username)
    payload = dump_feed(editor.slides)

    if to_stdout:
        click.echo(payload)
        return

    target = output or Path(editor.backup_filename())
    target.write_text(payload, encoding="utf-8")
    console.print(f"[green]Exported {len(editor.slides)} slides to {target}[/green]")
