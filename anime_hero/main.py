"""
AnimeHero command-line entry point.
"""
import click
from dotenv import load_dotenv, find_dotenv

# Load environment variables immediately
load_dotenv(find_dotenv(usecwd=True))

from .logging import setup_logging
from .cli.settings import settings
from .cli.library import list_slides, show, delete, export
from .cli.edit import save, autofill, upload
from .cli.publish import publish, push, fetch_slide

setup_logging()


@click.group()
@click.version_option(package_name="anime-hero")
def cli():
    """AnimeHero: curate hero slide records and publish them as a JSON feed."""
    pass


cli.add_command(settings)
cli.add_command(list_slides)
cli.add_command(show)
cli.add_command(save)
cli.add_command(autofill)
cli.add_command(upload)
cli.add_command(delete)
cli.add_command(publish)
cli.add_command(export)
cli.add_command(push)
cli.add_command(fetch_slide)


if __name__ == "__main__":
    cli()
