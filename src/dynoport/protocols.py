"""Core protocols for table providers."""

from collections.abc import Sequence
from typing import Protocol, Self, TypeVar, runtime_checkable

from dynoport.models.contexts import ScanCursor
from dynoport.models.datatypes import Record, ScanPage, TableInfo, WriteResult

Cred_contra = TypeVar("Cred_contra", contravariant=True)
Params_contra = TypeVar("Params_contra", contravariant=True)


@runtime_checkable
class RecordSource(Protocol):
    """Protocol for reading every record of a table, one page at a time."""

    async def scan_page(self, cursor: ScanCursor | None) -> ScanPage:
        """Return the page starting at `cursor`.

        Must be called first with `None`. The returned page carries
        `next_cursor=None` once the table is exhausted.

        Raises `TransientServiceError` on throttling or network failures and
        `FatalServiceError` when the table does not exist.
        """
        ...


@runtime_checkable
class RecordSink(Protocol):
    """Protocol for writing records to a table in bulk."""

    async def write_batch(self, table_name: str, batch: Sequence[Record]) -> WriteResult:
        """Write one batch and return the records the service rejected.

        Partial failure is reported through `WriteResult.unprocessed`, never
        raised. Outright request failures raise a `ServiceError`.
        """
        ...


@runtime_checkable
class TableInspector(Protocol):
    """Protocol for fetching table metadata."""

    async def describe_table(self) -> TableInfo:
        """Return approximate item count and size of the table."""
        ...


@runtime_checkable
class Provider(Protocol[Cred_contra, Params_contra]):
    """Protocol for provider lifecycle management."""

    @classmethod
    async def connect(cls, credentials: Cred_contra, params: Params_contra) -> Self:
        """Establish connection to the external service."""
        ...

    async def disconnect(self) -> None:
        """Release resources and close connections."""
        ...
