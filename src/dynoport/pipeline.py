"""Batched transfer between a table and a newline-delimited JSON file.

Export scans the table page by page and appends every item to the file.
Import parses the whole file, splits the records into waves and write
groups, and writes the groups concurrently.

Service and file errors never escape `export_table` or `import_table`:
they end the operation in the `failed` state and the outcome carries the
counts accumulated so far.
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import NamedTuple, TypeAlias

from dynoport.batching import iter_waves
from dynoport.codec import decode_record, iter_lines, write_lines
from dynoport.errors import (
    DynoportError,
    InvalidArgumentError,
    MalformedInputError,
    ServiceError,
    TransferIOError,
)
from dynoport.models.contexts import ScanCursor
from dynoport.models.datatypes import Record, TableInfo
from dynoport.models.params import Operation, TransferParams, TransferRequest
from dynoport.models.stats import TransferOutcome, TransferState, TransferStats
from dynoport.progress import (
    GroupFailed,
    NullReporter,
    PageScanned,
    ProgressEvent,
    RecordsLoaded,
    TableDescribed,
    TransferFinished,
    WaveCompleted,
    notify,
)
from dynoport.protocols import RecordSink, RecordSource, TableInspector

logger = logging.getLogger(__name__)

Reporter: TypeAlias = Callable[[ProgressEvent], None]
Sleep: TypeAlias = Callable[[float], Awaitable[None]]


class _GroupResult(NamedTuple):
    written: int
    failed: int
    error: ServiceError | None = None


class _Run:
    """State of a single export or import."""

    def __init__(self, operation: Operation, table_name: str) -> None:
        self.operation = operation
        self.table_name = table_name
        self.stats = TransferStats()
        self.state = TransferState.INIT

    def transition(self, state: TransferState) -> None:
        logger.debug("%s '%s': %s -> %s", self.operation, self.table_name, self.state, state)
        self.state = state


def _require(value: str | Path | None, what: str) -> None:
    if value is None or not str(value).strip():
        msg = f"{what} must not be empty"
        raise InvalidArgumentError(msg)


class TransferPipeline:
    """Drives export and import through a table provider.

    The provider must implement `RecordSource` for export (and optionally
    `TableInspector` for the size estimate) and `RecordSink` for import.
    """

    def __init__(
        self,
        provider: object,
        params: TransferParams | None = None,
        reporter: Reporter | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._params = params or TransferParams()
        self._reporter: Reporter = reporter or NullReporter()
        self._sleep = sleep

    @property
    def params(self) -> TransferParams:
        return self._params

    def _emit(self, event: ProgressEvent) -> None:
        notify(self._reporter, event)

    def _finish(
        self,
        run: _Run,
        error: DynoportError | None = None,
        table_info: TableInfo | None = None,
        file_size_bytes: int | None = None,
    ) -> TransferOutcome:
        run.transition(TransferState.FAILED if error else TransferState.DONE)
        run.stats.finish()
        snapshot = run.stats.snapshot()
        if error:
            logger.error("%s of '%s' failed: %s", run.operation, run.table_name, error.message)
        self._emit(
            TransferFinished(
                operation=run.operation,
                table_name=run.table_name,
                stats=snapshot,
                state=run.state,
                error=error.message if error else None,
            )
        )
        return TransferOutcome(
            state=run.state,
            stats=snapshot,
            error=error,
            table_info=table_info,
            file_size_bytes=file_size_bytes,
        )

    async def run(self, request: TransferRequest) -> TransferOutcome:
        """Run the operation named by `request`."""
        if request.operation is Operation.EXPORT:
            return await self.export_table(request.table_name, request.file_path)
        return await self.import_table(request.table_name, request.file_path)

    # -------------------------
    # Export
    # -------------------------
    async def _describe(self, run: _Run) -> TableInfo | None:
        if not isinstance(self._provider, TableInspector):
            return None
        run.transition(TransferState.DESCRIBING_TABLE)
        info: TableInfo | None = None
        try:
            info = await self._provider.describe_table()
        except ServiceError as e:
            logger.info("Could not retrieve table size information: %s", e.message)
        self._emit(
            TableDescribed(
                operation=run.operation,
                table_name=run.table_name,
                stats=run.stats.snapshot(),
                info=info,
            )
        )
        return info

    async def export_table(self, table_name: str, output_path: str | Path) -> TransferOutcome:
        """Scan the whole table and append every item as one line of `output_path`.

        The file is opened in append mode and created if absent. Items are
        written in the order the scan returns them, without deduplication.
        On failure the partially written file is left in place; it holds
        exactly `stats.items_read` complete lines from this run.
        """
        _require(table_name, "table name")
        _require(output_path, "output path")
        if not isinstance(self._provider, RecordSource):
            msg = f"{type(self._provider).__name__} cannot scan tables"
            raise InvalidArgumentError(msg)
        source: RecordSource = self._provider

        run = _Run(Operation.EXPORT, table_name)
        table_info = await self._describe(run)

        run.transition(TransferState.SCANNING)
        logger.info("Exporting table '%s' to '%s'", table_name, output_path)
        fmt = self._params.file_format
        try:
            with Path(output_path).open("a", encoding="utf-8") as f:
                cursor: ScanCursor | None = None
                page_number = 0
                while True:
                    page = await source.scan_page(cursor)
                    page_number += 1
                    written = write_lines(f, page.items, fmt)
                    run.stats.items_read += written
                    run.stats.items_written += written
                    run.stats.pages_scanned += 1
                    self._emit(
                        PageScanned(
                            operation=run.operation,
                            table_name=table_name,
                            stats=run.stats.snapshot(),
                            page_number=page_number,
                            page_size=written,
                        )
                    )
                    cursor = page.next_cursor
                    if cursor is None:
                        break
                run.transition(TransferState.DRAINING)
                f.flush()
        except (ServiceError, MalformedInputError) as e:
            return self._finish(run, e, table_info=table_info)
        except OSError as e:
            err = TransferIOError(f"Failed to write '{output_path}': {e}", source=e)
            return self._finish(run, err, table_info=table_info)

        return self._finish(run, table_info=table_info)

    # -------------------------
    # Import
    # -------------------------
    def _read_records(self, run: _Run, input_path: Path) -> list[Record]:
        records: list[Record] = []
        fmt = self._params.file_format
        for number, text in iter_lines(input_path):
            records.append(decode_record(text, fmt, line_number=number))
            run.stats.items_read += 1
        return records

    async def _write_group(
        self,
        sink: RecordSink,
        table_name: str,
        group: Sequence[Record],
        semaphore: asyncio.Semaphore,
    ) -> _GroupResult:
        async with semaphore:
            pending: Sequence[Record] = group
            written = 0
            backoff = self._params.retry_backoff
            attempt = 0
            while True:
                try:
                    result = await sink.write_batch(table_name, pending)
                except ServiceError as e:
                    return _GroupResult(written, len(pending), e)
                unprocessed = result.unprocessed[: len(pending)]
                written += len(pending) - len(unprocessed)
                if not unprocessed or attempt >= self._params.max_unprocessed_retries:
                    return _GroupResult(written, len(unprocessed))
                attempt += 1
                logger.debug(
                    "Resubmitting %d unprocessed items (attempt %d) in %.2fs",
                    len(unprocessed),
                    attempt,
                    backoff,
                )
                await self._sleep(backoff)
                backoff = min(self._params.max_retry_backoff, backoff * 2)
                pending = unprocessed

    async def import_table(self, table_name: str, input_path: str | Path) -> TransferOutcome:
        """Load every line of `input_path` and bulk-write the records into the table.

        A malformed line fails the whole import before anything is written.
        A write group that raises a service error is counted as failed
        without affecting its siblings, so the import still ends in `done`.
        """
        _require(table_name, "table name")
        _require(input_path, "input path")
        path = Path(input_path)
        if not path.is_file():
            msg = f"Input file does not exist: {input_path}"
            raise InvalidArgumentError(msg)
        if not isinstance(self._provider, RecordSink):
            msg = f"{type(self._provider).__name__} cannot write tables"
            raise InvalidArgumentError(msg)
        sink: RecordSink = self._provider

        run = _Run(Operation.IMPORT, table_name)
        file_size = path.stat().st_size

        run.transition(TransferState.READING)
        logger.info("Importing '%s' into table '%s'", input_path, table_name)
        try:
            records = self._read_records(run, path)
        except (MalformedInputError, TransferIOError) as e:
            return self._finish(run, e, file_size_bytes=file_size)
        self._emit(
            RecordsLoaded(
                operation=run.operation,
                table_name=table_name,
                stats=run.stats.snapshot(),
                record_count=len(records),
            )
        )

        run.transition(TransferState.WRITING_WAVES)
        params = self._params
        wave_count = math.ceil(len(records) / params.wave_size)
        semaphore = asyncio.Semaphore(params.concurrency)
        for wave_number, groups in iter_waves(records, params.wave_size, params.batch_size):
            results = await asyncio.gather(
                *(self._write_group(sink, table_name, group, semaphore) for group in groups)
            )
            # Completions are folded here, after the wave settles, so counters have one writer.
            for group, result in zip(groups, results, strict=True):
                run.stats.items_written += result.written
                run.stats.items_failed += result.failed
                if result.error is not None:
                    run.stats.groups_failed += 1
                    logger.warning("Write group of %d items failed: %s", len(group), result.error)
                    self._emit(
                        GroupFailed(
                            operation=run.operation,
                            table_name=table_name,
                            stats=run.stats.snapshot(),
                            wave_number=wave_number,
                            group_size=len(group),
                            reason=result.error.message,
                        )
                    )
            run.stats.waves_completed += 1
            self._emit(
                WaveCompleted(
                    operation=run.operation,
                    table_name=table_name,
                    stats=run.stats.snapshot(),
                    wave_number=wave_number,
                    wave_count=wave_count,
                    wave_size=sum(len(g) for g in groups),
                )
            )

        if run.stats.items_failed:
            logger.warning(
                "%d of %d items were not written to '%s'",
                run.stats.items_failed,
                run.stats.items_read,
                table_name,
            )
        return self._finish(run, file_size_bytes=file_size)
