"""Progress events emitted by the transfer pipeline.

Reporters are pure observers: they receive immutable events and their
return value is ignored. A reporter that raises is logged and otherwise
ignored so that rendering problems never change the outcome of a transfer.
"""

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from dynoport.models.datatypes import TableInfo
from dynoport.models.params import Operation
from dynoport.models.stats import StatsSnapshot, TransferState

logger = logging.getLogger(__name__)


class ProgressEvent(BaseModel, frozen=True):
    """Base class of every progress event."""

    operation: Operation
    table_name: str
    stats: StatsSnapshot


class TableDescribed(ProgressEvent, frozen=True):
    """Table metadata was fetched before an export (`info` is None if it failed)."""

    info: TableInfo | None = None


class PageScanned(ProgressEvent, frozen=True):
    """One scan page was appended to the output file."""

    page_number: int
    page_size: int


class RecordsLoaded(ProgressEvent, frozen=True):
    """The input file was parsed completely."""

    record_count: int


class GroupFailed(ProgressEvent, frozen=True):
    """A write group raised a service error and was counted as failed."""

    wave_number: int
    group_size: int
    reason: str


class WaveCompleted(ProgressEvent, frozen=True):
    """Every write group of a wave has settled."""

    wave_number: int
    wave_count: int
    wave_size: int


class TransferFinished(ProgressEvent, frozen=True):
    """The operation reached `done` or `failed`."""

    state: TransferState
    error: str | None = None


@runtime_checkable
class ProgressReporter(Protocol):
    """Observer of pipeline progress."""

    def __call__(self, event: ProgressEvent) -> None: ...


class NullReporter:
    """Reporter that ignores every event."""

    def __call__(self, event: ProgressEvent) -> None:
        pass


class LoggingReporter:
    """Reporter that writes one log line per event."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._log = log or logger
        self._level = level

    def __call__(self, event: ProgressEvent) -> None:
        stats = event.stats
        match event:
            case TableDescribed(info=None):
                self._log.log(self._level, "Could not retrieve table size information")
            case TableDescribed(info=info):
                self._log.log(
                    self._level,
                    "Table info: ~%d items, %.2f MB",
                    info.item_count,
                    info.size_mb,
                )
            case PageScanned():
                self._log.log(
                    self._level,
                    "Batch #%d: retrieved %d items (total: %d)",
                    event.page_number,
                    event.page_size,
                    stats.items_read,
                )
            case RecordsLoaded():
                self._log.log(self._level, "Read %d items from file", event.record_count)
            case GroupFailed():
                self._log.warning(
                    "Wave %d: write group of %d items failed: %s",
                    event.wave_number,
                    event.group_size,
                    event.reason,
                )
            case WaveCompleted():
                self._log.log(
                    self._level,
                    "Completed batch %d/%d (%d items)",
                    event.wave_number,
                    event.wave_count,
                    event.wave_size,
                )
            case TransferFinished(state=TransferState.FAILED):
                self._log.error(
                    "%s of '%s' failed after %s: %s",
                    event.operation.value.capitalize(),
                    event.table_name,
                    stats.elapsed_display,
                    event.error,
                )
            case TransferFinished():
                self._log.log(
                    self._level,
                    "%s of '%s' completed in %s: %d read, %d written, %d failed",
                    event.operation.value.capitalize(),
                    event.table_name,
                    stats.elapsed_display,
                    stats.items_read,
                    stats.items_written,
                    stats.items_failed,
                )
            case _:
                self._log.debug("Unhandled progress event %r", event)


class CompositeReporter:
    """Fan an event out to several reporters."""

    def __init__(self, *reporters: Callable[[ProgressEvent], None]) -> None:
        self._reporters = reporters

    def __call__(self, event: ProgressEvent) -> None:
        for reporter in self._reporters:
            notify(reporter, event)


def notify(reporter: Callable[[ProgressEvent], None], event: ProgressEvent) -> None:
    """Deliver an event, logging and discarding any reporter error."""
    try:
        reporter(event)
    except Exception:
        logger.exception("Progress reporter %r failed on %s", reporter, type(event).__name__)
