"""Transfer accounting and outcome types."""

import time
from enum import StrEnum

from pydantic import BaseModel, Field

from dynoport.errors import DynoportError
from dynoport.models.datatypes import TableInfo


class TransferState(StrEnum):
    """States of the export and import state machines."""

    INIT = "init"
    DESCRIBING_TABLE = "describing_table"
    SCANNING = "scanning"
    DRAINING = "draining"
    READING = "reading"
    WRITING_WAVES = "writing_waves"
    DONE = "done"
    FAILED = "failed"


def format_elapsed(seconds: float) -> str:
    """Format a duration as `1h 2m 3s`, `2m 3s` or `3s`."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class TransferStats(BaseModel):
    """Mutable accumulator owned by the pipeline for one operation.

    Observers only ever receive frozen copies from `snapshot()`.
    """

    items_read: int = 0
    items_written: int = 0
    items_failed: int = 0
    pages_scanned: int = 0
    waves_completed: int = 0
    groups_failed: int = 0
    started_at: float = Field(default_factory=time.monotonic)
    finished_at: float | None = None

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    @property
    def elapsed_display(self) -> str:
        return format_elapsed(self.elapsed)

    @property
    def items_pending(self) -> int:
        """Items read but neither written nor failed yet."""
        return self.items_read - self.items_written - self.items_failed

    def finish(self) -> None:
        if self.finished_at is None:
            self.finished_at = time.monotonic()

    def snapshot(self) -> "StatsSnapshot":
        return StatsSnapshot(**self.model_dump())


class StatsSnapshot(TransferStats, frozen=True):
    """Read-only copy of `TransferStats`."""


class TransferOutcome(BaseModel, frozen=True, arbitrary_types_allowed=True):
    """Final result of an export or import."""

    state: TransferState
    """`done` or `failed`."""

    stats: StatsSnapshot
    """Counts at the moment the operation stopped."""

    error: DynoportError | None = None
    """Error that moved the operation to `failed`."""

    table_info: TableInfo | None = None
    """Table metadata, when the best-effort describe step succeeded."""

    file_size_bytes: int | None = None
    """Size of the input file (import only)."""

    @property
    def ok(self) -> bool:
        return self.state is TransferState.DONE
