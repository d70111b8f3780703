"""
Settings command for AnimeHero CLI.

Shows and saves the operator settings and checks the AI service.
"""
import click
from typing import Optional
from rich.table import Table
from rich import box

from .base import console, handle_errors, verbose_option, apply_verbosity
from ..ai_api import test_ai_connection
from ..cloudinary_api import CloudinaryAPI
from ..config import get_config, save_operator_settings
from ..constants import MASTER_DB_PUBLIC_ID


def _mask(value: Optional[str]) -> str:
    if not value:
        return "[dim]unset[/dim]"
    return value[:2] + "********" if len(value) > 4 else "********"


@click.command()
@click.option("--cloud-name", help="Cloudinary cloud name.")
@click.option("--upload-preset", help="Cloudinary unsigned upload preset.")
@click.option("--push-url", help="Optional URL the feed is pushed to.")
@click.option("--access-key", help="Optional bearer key for the push URL.")
@click.option("--test-ai", is_flag=True, help="Re-test the Gemini connection.")
@verbose_option
@handle_errors
def settings(
    cloud_name: Optional[str],
    upload_preset: Optional[str],
    push_url: Optional[str],
    access_key: Optional[str],
    test_ai: bool,
    verbose: int,
) -> None:
    """
    Shows the current configuration, or saves new values when given.
    Cloud name and upload preset are both required before saving.
    """
    apply_verbosity(verbose)

    if any(v is not None for v in (cloud_name, upload_preset, push_url, access_key)):
        save_operator_settings(
            cloud_name=cloud_name,
            upload_preset=upload_preset,
            push_url=push_url,
            access_key=access_key,
        )
        console.print("[green]Config applied.[/green]")

    config = get_config()
    table = Table(title="System Console", box=box.ROUNDED, show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Cloud Name", config.cloud_name or "[dim]unset[/dim]")
    table.add_row("Upload Preset", _mask(config.upload_preset))
    table.add_row("Push URL", config.push_url or "[dim]unset[/dim]")
    table.add_row("Access Key", _mask(config.access_key))
    table.add_row("Storage", config.storage.backend)
    if config.cloud_name:
        table.add_row("Master Database", CloudinaryAPI.from_config(config).raw_url(MASTER_DB_PUBLIC_ID))
    console.print(table)

    if test_ai:
        with console.status("[bold blue]Testing AI processor..."):
            working = test_ai_connection()
        if working:
            console.print("[green]AI Processor: online[/green]")
        else:
            console.print("[red]AI Processor: unreachable (see anime_hero.log)[/red]")
            raise SystemExit(1)
