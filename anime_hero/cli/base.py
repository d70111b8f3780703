"""
Shared CLI utilities and base functionality.
"""
import sys
import click
import logging
import functools
from typing import List, Optional, Callable
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn
from rich import box

from .. import ai_api
from ..config import get_config
from ..constants import PROGRESS_REFRESH_RATE
from ..cloudinary_api import CloudinaryAPI
from ..editor import SlideEditor
from ..library import get_store
from ..models import SlideRecord
from ..logging import get_logger, set_log_level, console, AnimeHeroError, ConfigError

logger = get_logger(__name__)


def user_option(func: Callable) -> Callable:
    return click.option(
        "--user", "-u", "username",
        envvar="ANIMEHERO_USER",
        required=True,
        help="User handle whose library to work on (or ANIMEHERO_USER).",
    )(func)


def verbose_option(func: Callable) -> Callable:
    return click.option("-v", "--verbose", count=True, help="Increase verbosity (-v: INFO, -vv: DEBUG).")(func)


def apply_verbosity(verbose: int) -> None:
    log_level = logging.WARNING
    clean_logs = False
    if verbose == 1:
        log_level = logging.INFO
        clean_logs = True
    elif verbose >= 2:
        log_level = logging.DEBUG
    set_log_level(log_level, "console", clean=clean_logs)


def handle_errors(func: Callable) -> Callable:
    """Render AnimeHero errors as a red message and exit 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConfigError as e:
            logger.error(f"Configuration error: {e}")
            console.print(f"[red]Configuration required: {e}[/red]")
            console.print("[dim]Run 'anime-hero settings --cloud-name ... --upload-preset ...' first.[/dim]")
            sys.exit(1)
        except AnimeHeroError as e:
            logger.error(f"{func.__name__} failed: {e}")
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)
    return wrapper


def get_editor(username: str, load: bool = True) -> SlideEditor:
    """Build an editor over the configured store, optionally loading the library."""
    config = get_config()
    assets = CloudinaryAPI.from_config(config)
    editor = SlideEditor(username, get_store(config, api=assets), assets=assets)
    if load:
        with console.status(f"[bold blue]Loading library for {editor.username}..."):
            editor.load_library()
    return editor


def run_with_upload_progress(description: str, action: Callable[[Callable[[int], None]], object]):
    """Run an upload action with a rich progress bar fed by its percent callback."""
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
        refresh_per_second=PROGRESS_REFRESH_RATE,
    )
    with progress:
        task_id = progress.add_task(description, total=100)
        return action(lambda percent: progress.update(task_id, completed=percent))


def render_slides(slides: List[SlideRecord], username: str, title: Optional[str] = None) -> None:
    table = Table(title=title or f"Library: {username} ({len(slides)} Units Active)", box=box.ROUNDED)
    table.add_column("Rank", justify="right", style="cyan")
    table.add_column("Slug", style="white bold")
    table.add_column("Title")
    table.add_column("Type", justify="center")
    table.add_column("Eps (Sub/Dub/Tot)", justify="center", style="dim")
    table.add_column("Media", justify="center", style="dim")
    table.add_column("Published", style="green")

    for slide in slides:
        table.add_row(
            str(slide.rank),
            slide.id,
            slide.title,
            slide.type,
            f"{slide.episodes.sub}/{slide.episodes.dub}/{slide.episodes.eps}",
            slide.posterType,
            slide.publishedUrl or "-",
        )

    if not slides:
        console.print("[dim]Library Empty[/dim]")
        return
    console.print(table)


def render_slide(slide: SlideRecord) -> None:
    table = Table(title=slide.title or slide.id, box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    for key, value in slide.to_dict().items():
        if key == "episodes":
            value = f"sub {value['sub']} / dub {value['dub']} / total {value['eps']}"
        elif isinstance(value, list):
            value = ", ".join(value)
        table.add_row(key, str(value))
    console.print(table)


def render_ai_usage() -> None:
    """Token usage report for the Gemini calls made by this command."""
    usage = ai_api.tracker.get_summary()
    if not usage:
        return

    report = Table(title="AI Usage Summary", box=box.SIMPLE_HEAD)
    report.add_column("Model", style="cyan")
    report.add_column("Input Tokens", justify="right")
    report.add_column("Output Tokens", justify="right")
    report.add_column("Total", justify="right", style="bold white")

    for model, counts in usage.items():
        report.add_row(
            model,
            str(counts["prompt"]),
            str(counts["completion"]),
            str(counts["prompt"] + counts["completion"]),
        )
    console.print(report)
