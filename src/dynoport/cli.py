"""
Dynoport CLI - bulk export and import of DynamoDB tables.

Usage:
    dynoport export --table users --file users.jsonl --region eu-west-1
    dynoport import --table users --file users.jsonl
    dynoport tables --region eu-west-1

The file holds one JSON document per line.
"""

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dynoport import __version__
from dynoport.errors import DynoportError
from dynoport.models.params import (
    DEFAULT_REGION,
    FileFormat,
    Operation,
    TransferParams,
    TransferRequest,
)
from dynoport.models.stats import TransferOutcome, TransferState
from dynoport.progress import (
    GroupFailed,
    PageScanned,
    ProgressEvent,
    RecordsLoaded,
    TableDescribed,
    WaveCompleted,
)
from dynoport.providers.dynamodb import DynamoDBCredentials, DynamoDBParams, DynamoDBProvider
from dynoport.transfer import run_transfer

console = Console()
err_console = Console(stderr=True)

REGION_ENVVARS = ["DYNOPORT_REGION", "AWS_DEFAULT_REGION"]


class ConsoleReporter:
    """Renders progress events on the terminal."""

    def __init__(self, out: Console | None = None) -> None:
        self._out = out or console

    def __call__(self, event: ProgressEvent) -> None:
        match event:
            case TableDescribed(info=None):
                self._out.print("[blue]i[/blue] Could not retrieve table size information")
            case TableDescribed(info=info):
                self._out.print(
                    f"[blue]i[/blue] Table info: ~{info.item_count:,} items, {info.size_mb:.2f} MB"
                )
            case PageScanned():
                self._out.print(
                    f"[green]✔[/green] Batch #{event.page_number}: "
                    f"Retrieved {event.page_size} items "
                    f"(total: {event.stats.items_read})"
                )
            case RecordsLoaded():
                self._out.print(f"[green]✔[/green] Read {event.record_count:,} items from file")
            case GroupFailed():
                self._out.print(f"[red]Error in batch: {event.reason}[/red]")
            case WaveCompleted():
                self._out.print(
                    f"[green]✔[/green] Completed batch {event.wave_number}/{event.wave_count}"
                )


def _summary(outcome: TransferOutcome, operation: Operation, table: str, file_path: str) -> Table:
    stats = outcome.stats
    summary = Table(
        title=f"{operation.value.upper()} SUMMARY",
        show_header=False,
        style="cyan",
        min_width=43,
    )
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Table:", table)
    if operation is Operation.EXPORT:
        summary.add_row("Items:", str(stats.items_read))
        summary.add_row("Output:", Path(file_path).name)
    else:
        summary.add_row("Total items:", str(stats.items_read))
        summary.add_row("Successful:", str(stats.items_written))
        summary.add_row("Failed:", str(stats.items_failed))
    summary.add_row("Time taken:", stats.elapsed_display)
    return summary


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.INFO if verbose else logging.WARNING)


def _run(
    operation: Operation,
    table: str,
    file_path: str,
    region: str,
    profile: str | None,
    endpoint_url: str | None,
    params: TransferParams,
    scan_limit: int | None = None,
) -> None:
    try:
        request = TransferRequest(
            operation=operation,
            table_name=table,
            file_path=file_path,
            region=region,
        )
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    verb = "Exporting table" if operation is Operation.EXPORT else "Importing data to"
    console.print(f"[blue]{verb} '{table}' ({region})...[/blue]")
    try:
        outcome = asyncio.run(
            run_transfer(
                request,
                params,
                ConsoleReporter(),
                profile=profile,
                endpoint_url=endpoint_url,
                scan_limit=scan_limit,
            )
        )
    except DynoportError as e:
        raise click.ClickException(e.message) from e

    if outcome.file_size_bytes is not None:
        console.print(f"[blue]i[/blue] File info: {outcome.file_size_bytes / (1024 * 1024):.2f} MB")
    if outcome.state is TransferState.FAILED:
        err_console.print(f"[red]{operation.value.capitalize()} failed![/red]")
        console.print(_summary(outcome, operation, table, file_path))
        raise click.ClickException(outcome.error.message if outcome.error else "transfer failed")

    console.print(f"[green]✨ {operation.value.capitalize()} completed successfully![/green]")
    console.print(_summary(outcome, operation, table, file_path))


def _connection_options(f):
    f = click.option(
        "--endpoint-url",
        help="Alternative DynamoDB endpoint (DynamoDB Local, LocalStack).",
    )(f)
    f = click.option("--profile", help="AWS profile name.")(f)
    f = click.option(
        "-r",
        "--region",
        envvar=REGION_ENVVARS,
        default=DEFAULT_REGION,
        show_default=True,
        help="AWS region to use.",
    )(f)
    return f


def _transfer_options(f):
    f = click.option(
        "--format",
        "file_format",
        type=click.Choice([fmt.value for fmt in FileFormat]),
        default=FileFormat.DOCUMENT.value,
        show_default=True,
        help="Line format of the file.",
    )(f)
    f = click.option("-f", "--file", "file_path", required=True, help="NDJSON file path.")(f)
    f = click.option("-t", "--table", required=True, help="DynamoDB table name.")(f)
    return f


@click.group()
@click.version_option(version=__version__, prog_name="dynoport")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """
    Dynoport - move DynamoDB tables to and from newline-delimited JSON.
    """
    _configure_logging(verbose)


@cli.command("export")
@_transfer_options
@_connection_options
@click.option("--scan-limit", type=click.IntRange(min=1), help="Items evaluated per scan page.")
def export_cmd(
    table: str,
    file_path: str,
    file_format: str,
    region: str,
    profile: str | None,
    endpoint_url: str | None,
    scan_limit: int | None,
) -> None:
    """Export every item of a table to a file (appends if the file exists)."""
    params = TransferParams(file_format=FileFormat(file_format))
    _run(Operation.EXPORT, table, file_path, region, profile, endpoint_url, params, scan_limit)


@cli.command("import")
@_transfer_options
@_connection_options
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=5,
    show_default=True,
    help="Bulk write calls in flight.",
)
@click.option(
    "--retries",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Resubmissions of items the service left unprocessed.",
)
def import_cmd(
    table: str,
    file_path: str,
    file_format: str,
    region: str,
    profile: str | None,
    endpoint_url: str | None,
    concurrency: int,
    retries: int,
) -> None:
    """Import a file into an existing table."""
    params = TransferParams(
        file_format=FileFormat(file_format),
        concurrency=concurrency,
        max_unprocessed_retries=retries,
    )
    _run(Operation.IMPORT, table, file_path, region, profile, endpoint_url, params)


@cli.command("tables")
@_connection_options
def tables_cmd(region: str, profile: str | None, endpoint_url: str | None) -> None:
    """List the tables of a region."""

    async def _list() -> list[str]:
        provider = await DynamoDBProvider.connect(
            DynamoDBCredentials(region=region, profile=profile, endpoint_url=endpoint_url),
            DynamoDBParams(),
        )
        try:
            return await provider.list_tables()
        finally:
            await provider.disconnect()

    try:
        names = asyncio.run(_list())
    except DynoportError as e:
        raise click.ClickException(e.message) from e

    if not names:
        console.print("[yellow]No tables found in the selected region.[/yellow]")
        return
    for name in names:
        click.echo(name)


def main() -> None:
    """Entry point for the `dynoport` command."""
    cli()


if __name__ == "__main__":
    main()
