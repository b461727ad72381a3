"""Command-line interface for the AAC icon importer."""

import asyncio
import dataclasses
import sys
from pathlib import Path

import click

from aac_icon_import import __version__
from aac_icon_import.config import settings
from aac_icon_import.models import ImportSummary
from aac_icon_import.services.folder_store import FolderStore
from aac_icon_import.services.image_fetcher import FetchOptions, ImageFetcher
from aac_icon_import.services.import_pipeline import IconImportPipeline
from aac_icon_import.services.progress import LoggingProgressReporter
from aac_icon_import.utils.exceptions import AACError, SpreadsheetFormatError
from aac_icon_import.utils.logging import configure_logging

store_option = click.option(
    "--store",
    "-s",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Folder store JSON file (default: {settings.folder_store_path})",
)


def open_store(store_path: Path | None) -> FolderStore:
    return FolderStore.open(
        store_path or settings.folder_store_path, settings.default_folder_names
    )


async def run_import(
    workbook: Path,
    store: FolderStore,
    options: FetchOptions,
) -> ImportSummary:
    async with ImageFetcher(options=options) as fetcher:
        pipeline = IconImportPipeline(fetcher=fetcher)
        return await pipeline.run(workbook, store, LoggingProgressReporter())


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    default=settings.log_level,
    show_default=True,
    help="Logging level",
)
def main(log_level: str):
    """AAC Icon Import - bulk-load picture-board icons from Excel.

    The workbook holds an Icons sheet with icon, folder and s3link columns,
    and optionally a Folders sheet listing folder names one per row.
    """
    configure_logging(level=log_level)


@main.command("import")
@click.argument(
    "workbook", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@store_option
@click.option(
    "--concurrency",
    "-c",
    type=click.IntRange(1, 32),
    default=settings.fetch_max_concurrency,
    show_default=True,
    help="Concurrent image downloads",
)
@click.option(
    "--timeout",
    "-t",
    type=click.FloatRange(min=0, min_open=True),
    default=settings.fetch_timeout_seconds,
    show_default=True,
    help="Per-image download timeout in seconds",
)
def import_workbook(
    workbook: Path, store_path: Path | None, concurrency: int, timeout: float
):
    """Import folders and icons from WORKBOOK into the folder store."""
    options = dataclasses.replace(
        FetchOptions.from_settings(settings),
        max_concurrency=concurrency,
        timeout_seconds=timeout,
    )
    try:
        store = open_store(store_path)
        summary = asyncio.run(run_import(workbook, store, options))
    except SpreadsheetFormatError as e:
        click.echo(f"Import failed: {e.message}", err=True)
        sys.exit(1)
    except AACError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(summary.summary_text())
    if summary.failed_fetch_count:
        click.echo(f"{summary.failed_fetch_count} images could not be downloaded.")


@main.command()
@store_option
def folders(store_path: Path | None):
    """List folders with their icon counts."""
    try:
        store = open_store(store_path)
    except AACError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    items = store.list_folders()
    if not items:
        click.echo("No folders.")
        return
    for folder in items:
        marker = " (default)" if folder.is_default else ""
        click.echo(f"{folder.name}{marker}: {len(folder.icons)} icons")


@main.command()
@click.option("--host", default=settings.server_host, show_default=True)
@click.option("--port", type=int, default=settings.server_port, show_default=True)
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Start the HTTP API server."""
    import uvicorn

    click.echo(f"Serving on http://{host}:{port}")
    uvicorn.run("aac_icon_import.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
