#!/usr/bin/env python3
"""
kibomigrate - Kibo Commerce migration and seeding batches

One command per batch. Commands take no option flags; tenant, site,
credentials and tuning come from the environment, a ``.env`` file or
``~/.kibomigrate/config.yaml``.
"""
import asyncio
from typing import Any, Awaitable, Callable, List, Union

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, jobs
from .bulk import BatchOutcome, RateLimiter, ReportGenerator
from .client import KiboSession
from .config import Settings, load_settings
from .errors import KiboMigrateError, format_error
from .jobs.documents import decode_messages
from .logging_config import LoggingConfig, LogLevel, get_logger, setup_logging

app = typer.Typer(
    help="Kibo Commerce migration tool: copy content documents, clean up catalogs, seed sandboxes.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()
logger = get_logger(__name__)

Job = Callable[..., Awaitable[Any]]


def _configure_logging(settings: Settings, batch_name: str):
    config = LoggingConfig(
        level=LogLevel.parse(settings.log_level),
        log_directory=settings.log_directory,
        log_filename=f"{batch_name}.log",
    )
    return setup_logging(config)


async def _run_with_session(settings: Settings, job: Job, *args: Any) -> Any:
    # One limiter for every call of the process invocation
    limiter = RateLimiter(min_time=settings.min_time)
    async with KiboSession(settings) as session:
        await session.authenticate()
        return await job(settings, session, limiter, *args)


def run_batch(batch_name: str, job: Job, *args: Any) -> Any:
    """Load settings, set up logging and run ``job`` to completion.

    Fatal errors are reported and turned into exit status 1.
    """
    try:
        settings = load_settings()
        manager = _configure_logging(settings, batch_name)
        logger.info(
            "Starting batch",
            extra={"batch": batch_name, "log_file": str(manager.log_file)},
        )
        logger.debug("Loaded settings", extra={"settings": settings.redacted()})
        result = asyncio.run(_run_with_session(settings, job, *args))
    except KiboMigrateError as e:
        logger.error("Batch failed", extra={"batch": batch_name, "error": format_error(e)})
        console.print(f"[red]✗ {batch_name} failed: {format_error(e)}[/red]")
        raise typer.Exit(1)

    logger.info("Batch complete", extra={"batch": batch_name})
    return result


def report(result: Union[BatchOutcome, List[BatchOutcome]]) -> None:
    """Log and display the summary of every outcome of a batch."""
    outcomes = result if isinstance(result, list) else [result]
    report_generator = ReportGenerator(console)
    for outcome in outcomes:
        report_generator.log_summary(outcome)
        report_generator.generate_summary_report(outcome)
        if outcome.failed:
            report_generator.generate_error_summary(outcome)


@app.command("copy-documents")
def copy_documents():
    """Copy every document of DOCUMENT_LIST_NAME from the source to the destination tenant."""
    report(run_batch("copy-documents", jobs.copy_documents))


@app.command("create-document-type")
def create_document_type():
    """Create the document type from data/document_type.json."""
    report(run_batch("create-document-type", jobs.create_document_type))


@app.command("create-document-list")
def create_document_list():
    """Create the document list from data/document_list.json, scoped to SITE_ID."""
    report(run_batch("create-document-list", jobs.create_document_list))


@app.command("create-documents")
def create_documents():
    """Create and publish the documents from data/documents.json."""
    report(run_batch("create-documents", jobs.create_documents))


@app.command("view-document")
def view_document(
    list_name: str = typer.Argument(..., help="Document list name"),
    document_id: str = typer.Argument(..., help="Document id"),
):
    """Show one document and its decoded messages."""
    document = run_batch("view-document", jobs.view_document, list_name, document_id)

    console.print(f"[bold blue]Document {document.get('name') or document_id}[/bold blue]")
    messages = decode_messages(document)
    if not messages:
        console.print("[dim]No messages[/dim]")
        return

    table = Table(title="Messages", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Text", style="cyan")
    table.add_column("Redirect URL", style="green")
    for index, message in enumerate(messages, 1):
        table.add_row(
            str(index), str(message.get("text") or ""), str(message.get("redirectUrl") or "")
        )
    console.print(table)


@app.command("delete-catalog")
def delete_catalog():
    """Delete all products, categories, product types and attributes."""
    report(run_batch("delete-catalog", jobs.delete_catalog))


@app.command("delete-products")
def delete_products():
    """Delete every product of the master catalog."""
    report(run_batch("delete-products", jobs.delete_products))


@app.command("delete-categories")
def delete_categories():
    """Delete every category."""
    report(run_batch("delete-categories", jobs.delete_categories))


@app.command("delete-product-types")
def delete_product_types():
    """Delete every product type except Base."""
    report(run_batch("delete-product-types", jobs.delete_product_types))


@app.command("delete-attributes")
def delete_attributes():
    """Delete every product attribute except the system attributes."""
    report(run_batch("delete-attributes", jobs.delete_product_attributes))


@app.command("seed-sandbox")
def seed_sandbox():
    """Create the template attributes, product types and category tree."""
    report(run_batch("seed-sandbox", jobs.seed_sandbox))


@app.command("list-channels")
def list_channels():
    """List the sales channels of the tenant."""
    channels = run_batch("list-channels", jobs.list_channels)

    if not channels:
        console.print("[yellow]No channels found.[/yellow]")
        return

    table = Table(title="Channels", show_header=True, header_style="bold magenta")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    table.add_column("Country", style="green")
    table.add_column("Sites", style="dim")
    for channel in channels:
        table.add_row(
            str(channel.get("code") or ""),
            str(channel.get("name") or ""),
            str(channel.get("countryCode") or ""),
            ", ".join(str(site) for site in channel.get("siteIds") or []),
        )
    console.print(table)


@app.command("create-channels")
def create_channels():
    """Create the online, phone and crm channels."""
    report(run_batch("create-channels", jobs.create_channels))


@app.command()
def version():
    """Show the application version and exit."""
    console.print(f"kibomigrate version: {__version__}")
    raise typer.Exit()


if __name__ == "__main__":
    app()
