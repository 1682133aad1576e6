# ABOUTME: Command-line interface for exporting catalog collections as Voyant BagIt archives
# ABOUTME: Provides commands for listing collections, exporting, previewing metadata and verifying archives
"""voyant-export command-line interface"""

import asyncio
import functools
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape as escape_markup
from rich.panel import Panel
from rich.table import Table

from voyant_export.archiver import ZipArchiver
from voyant_export.bag import validate_bag
from voyant_export.catalog import JsonCatalog, ZoteroCatalog
from voyant_export.config import Config
from voyant_export.destination import FixedDestination, PromptDestination
from voyant_export.exceptions import ValidationError, VoyantExportError
from voyant_export.exporter import ExportOrchestrator
from voyant_export.logging_config import setup_logging
from voyant_export.metadata import generate_rich, generate_simple
from voyant_export.models import ExportReport, ItemStatus
from voyant_export.storage import TempDirectoryProvider

logger = logging.getLogger(__name__)


@click.group()
@click.pass_context
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Configuration directory (default: $VOYANT_EXPORT_CONFIG_DIR or XDG config)",
)
def cli(ctx, debug, config_dir):
    """voyant-export - Export bibliographic collections for Voyant

    Builds a BagIt ZIP holding MODS and Dublin Core metadata plus the
    content file of every record in a collection.
    """
    # Load environment from .env if present (VOYANT_EXPORT_CONFIG_DIR)
    load_dotenv()

    try:
        config = Config(config_dir)
    except VoyantExportError as e:
        raise click.ClickException(str(e))

    log_settings = config.settings["logging"]
    log_level = "DEBUG" if debug else log_settings["level"]
    setup_logging(log_level, log_settings["file"], str(config.get_log_dir()))

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def catalog_options(f):
    """Options selecting the source catalog, shared by several commands."""

    @click.option(
        "--zotero",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Path to zotero.sqlite",
    )
    @click.option(
        "--storage",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        help="Zotero storage directory (default: next to the database)",
    )
    @click.option(
        "--library",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Path to a JSON library file",
    )
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        return f(*args, **kwargs)

    return wrapper


def open_catalog(zotero: Path | None, storage: Path | None, library: Path | None):
    """Build the catalog chosen on the command line."""
    if bool(zotero) == bool(library):
        raise click.UsageError("Specify exactly one of --zotero or --library")
    if storage and not zotero:
        raise click.UsageError("--storage only applies to --zotero")
    try:
        if zotero:
            return ZoteroCatalog(zotero, storage_dir=storage)
        return JsonCatalog(library)
    except VoyantExportError as e:
        raise click.ClickException(str(e))


@cli.command()
@catalog_options
def collections(zotero, storage, library):
    """List collections and how many records each holds"""
    catalog = open_catalog(zotero, storage, library)
    try:
        rows = catalog.list_collections()
    except VoyantExportError as e:
        raise click.ClickException(str(e))

    console = Console()
    if not rows:
        console.print("No collections found", style="yellow")
        return

    table = Table(title="Collections")
    table.add_column("Name")
    table.add_column("Records", justify="right")
    for name, count in rows:
        table.add_row(escape_markup(name), str(count))
    console.print(table)


@cli.command()
@click.argument("collection")
@catalog_options
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Archive file or directory (prompted for when omitted)",
)
@click.option("--force", is_flag=True, help="Overwrite an existing archive")
@click.option(
    "--concurrency",
    type=click.IntRange(1, 32),
    default=None,
    help="Records processed in parallel (overrides config)",
)
@click.option("--keep-temp", is_flag=True, help="Keep the intermediate bag directory")
@click.pass_context
def export(ctx, collection, zotero, storage, library, output, force, concurrency, keep_temp):
    """Export COLLECTION as a Voyant-ready BagIt ZIP archive

    Example:
        voyant-export export "Modernist Poetry" --zotero ~/Zotero/zotero.sqlite -o poetry.zip
    """
    config = ctx.obj["config"]
    catalog = open_catalog(zotero, storage, library)
    console = Console()

    if output:
        destination = FixedDestination(output, overwrite=force)
    else:
        destination = PromptDestination()

    try:
        catalog.select(collection)
        orchestrator = ExportOrchestrator(
            catalog,
            destination,
            temp_storage=TempDirectoryProvider(prefix=config.settings["export"]["temp_prefix"]),
            archiver=ZipArchiver(config.settings["archive"]["compression"]),
            retry_policy=config.retry_policy(),
            max_concurrency=concurrency or config.max_concurrency,
            keep_temp=keep_temp,
        )
        report = asyncio.run(orchestrator.run())
    except KeyboardInterrupt:
        console.print("\n✗ Cancelled by user", style="yellow")
        sys.exit(130)
    except VoyantExportError as e:
        logger.debug("Export failed", exc_info=True)
        console.print(f"✗ {escape_markup(str(e))}", style="red", soft_wrap=True)
        sys.exit(1)

    print_report(console, report)


def print_report(console: Console, report: ExportReport) -> None:
    """Summarize an export run."""
    name = escape_markup(report.collection_name or "")
    if report.empty:
        console.print(f"Collection '{name}' is empty, nothing exported", style="yellow")
        return
    if report.cancelled:
        console.print("Export cancelled, no archive written", style="yellow")
        return

    summary = "\n".join(
        [
            f"Collection: {name}",
            f"Archive:    {escape_markup(str(report.output_path))}",
            f"Saved:      {report.success_count}",
            f"Skipped:    {report.skip_count}",
            f"Failed:     {report.failure_count}",
        ]
    )
    border = "green" if report.failure_count == 0 else "yellow"
    console.print(Panel(summary, title="Export complete", border_style=border))

    for outcome in report.outcomes:
        if outcome.status is ItemStatus.SAVED:
            continue
        style = "yellow" if outcome.status is ItemStatus.SKIPPED else "red"
        label = outcome.record_id or "(unknown)"
        console.print(
            f"  {outcome.status.value}: {escape_markup(label)} - {escape_markup(outcome.reason or '')}",
            style=style,
        )


@cli.command()
@click.argument("collection")
@catalog_options
@click.option("--item", "item_id", required=True, help="Record id to preview")
@click.option(
    "--schema",
    type=click.Choice(["mods", "dc"]),
    default="mods",
    show_default=True,
    help="Metadata document to print",
)
def preview(collection, zotero, storage, library, item_id, schema):
    """Print the metadata document generated for one record"""
    catalog = open_catalog(zotero, storage, library)
    try:
        for item in catalog.get_collection(collection).get_items():
            if item is None:
                continue
            try:
                record = item.to_record()
            except ValidationError as e:
                logger.debug(f"Skipping invalid record while searching: {e}")
                continue
            if record.id == item_id:
                break
        else:
            raise click.ClickException(f"Record '{item_id}' not found in collection '{collection}'")

        document = generate_rich(record) if schema == "mods" else generate_simple(record)
    except VoyantExportError as e:
        raise click.ClickException(str(e))

    click.echo(document.serialize())


@cli.command()
@click.argument("archive", type=click.Path(exists=True, path_type=Path))
def verify(archive):
    """Check that ARCHIVE (ZIP or directory) is a well-formed export bag"""
    console = Console()
    problems = validate_bag(archive)
    if problems:
        console.print(
            f"✗ {escape_markup(str(archive))} has {len(problems)} problem(s):",
            style="red",
            soft_wrap=True,
        )
        for problem in problems:
            console.print(f"  - {escape_markup(problem)}")
        sys.exit(1)
    console.print(
        f"✓ {escape_markup(str(archive))} is a valid export bag", style="green", soft_wrap=True
    )


if __name__ == "__main__":
    cli()
