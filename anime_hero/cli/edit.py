"""
Editing commands for AnimeHero CLI: save, autofill, upload.
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
    render_slide,
    render_ai_usage,
    run_with_upload_progress,
)
from ..cloudinary_api import CloudinaryAPI
from ..constants import POSTER_TYPES, SLIDE_TYPES, QUALITIES
from ..metadata import generate_anime_details
from ..models import SlideRecord, find_slide
from ..logging import get_logger

logger = get_logger(__name__)

# CLI option name -> editor field
FIELD_OPTIONS = {
    "title": "title",
    "alt_title": "alternativeTitle",
    "slug": "id",
    "poster": "poster",
    "poster_type": "posterType",
    "logo": "logo",
    "rank": "rank",
    "slide_type": "type",
    "quality": "quality",
    "duration": "duration",
    "aired": "aired",
    "synopsis": "synopsis",
    "keyword": "keywords",
    "sub": "episodes.sub",
    "dub": "episodes.dub",
    "eps": "episodes.eps",
}


@click.command()
@user_option
@click.option("--edit", "edit_slug", help="Start from the existing slide with this slug.")
@click.option("--title", help="Subject title.")
@click.option("--alt-title", help="Alternative title.")
@click.option("--slug", help="Slug identifier (auto-generated by --autofill).")
@click.option("--poster", help="Poster URL (or use --media to upload).")
@click.option("--poster-type", type=click.Choice(POSTER_TYPES), help="Poster media kind.")
@click.option("--logo", help="Logo URL.")
@click.option("--rank", help="Ranking.")
@click.option("--type", "slide_type", help=f"Format type ({', '.join(SLIDE_TYPES)}).")
@click.option("--quality", help=f"Visual grade ({', '.join(QUALITIES)}).")
@click.option("--duration", help="Run time, e.g. 24m.")
@click.option("--aired", help="Aired year or date string.")
@click.option("--synopsis", help="Briefing / synopsis.")
@click.option("--keyword", help="Primary tag.")
@click.option("--sub", help="Subbed episode count.")
@click.option("--dub", help="Dubbed episode count.")
@click.option("--eps", help="Total episode count.")
@click.option("--media", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Upload this image/video as the poster.")
@click.option("--autofill", is_flag=True, help="Fill metadata from Jikan + Gemini before saving.")
@click.option("--allow-ai-only", is_flag=True, help="With --autofill, fall back to AI-only metadata if Jikan fails.")
@verbose_option
@handle_errors
def save(
    username: str,
    edit_slug: Optional[str],
    media: Optional[Path],
    autofill: bool,
    allow_ai_only: bool,
    verbose: int,
    **fields,
) -> None:
    """
    Saves a slide record (insert, or update when the slug already exists).

    Explicit options are applied after --autofill, so they always win.
    """
    apply_verbosity(verbose)
    editor = get_editor(username)

    if edit_slug:
        editor.edit(edit_slug)

    provided = {FIELD_OPTIONS[k]: v for k, v in fields.items() if v is not None}

    if "title" in provided:
        editor.set_field("title", provided["title"])
    if autofill:
        with console.status(f"[bold blue]Auto-filling '{editor.form.title}'..."):
            editor.auto_fill(allow_ai_only=allow_ai_only)
        console.print("[cyan]AI Synced[/cyan]")
        render_ai_usage()

    for name, value in provided.items():
        editor.set_field(name, value)

    if media:
        result = run_with_upload_progress(
            f"Uploading {media.name}...",
            lambda cb: editor.upload_media(media, progress_callback=cb),
        )
        console.print(f"[cyan]Media Uploaded ({result.media_kind})[/cyan]")

    form = editor.form
    with console.status("[bold blue]Saving..."):
        updated = editor.save_record()

    saved = find_slide(editor.slides, form.id) or form
    render_slide(saved)
    console.print(f"[green]{'Record Updated.' if updated else 'Record Saved.'}[/green]")


@click.command()
@click.argument("title")
@click.option("--allow-ai-only", is_flag=True, help="Fall back to AI-only metadata if Jikan fails.")
@verbose_option
@handle_errors
def autofill(title: str, allow_ai_only: bool, verbose: int) -> None:
    """Previews the auto-filled metadata for a title without saving."""
    apply_verbosity(verbose)
    with console.status(f"[bold blue]Auto-filling '{title}'..."):
        details = generate_anime_details(title, allow_ai_only=allow_ai_only)
    render_slide(SlideRecord.from_dict(details))
    render_ai_usage()


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--public-id", help="Explicit public id (makes the URL stable and overwritable).")
@verbose_option
@handle_errors
def upload(path: Path, public_id: Optional[str], verbose: int) -> None:
    """Uploads a media file to Cloudinary and prints its URL."""
    apply_verbosity(verbose)
    api = CloudinaryAPI.from_config()
    api.require_config()
    result = run_with_upload_progress(
        f"Uploading {path.name}...",
        lambda cb: api.upload(path, public_id=public_id, progress_callback=cb),
    )
    console.print(f"[green]{result.secure_url}[/green] [dim]({result.media_kind})[/dim]")
