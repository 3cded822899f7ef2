"""Data types for the transfer pipeline.

These types represent the data that flows between a table and a file:
- `Record` for a single table item (an open-ended attribute document)
- `ScanPage` for one page of a paginated table scan
- `WriteResult` for the outcome of one bulk write call
- `TableInfo` for best-effort table metadata
"""

from decimal import Decimal
from typing import Any, TypeAlias

from pydantic import BaseModel, Field

from dynoport.models.contexts import ScanCursor

# Recursive attribute value of a table item.
AttributeValue: TypeAlias = (
    str
    | int
    | float
    | Decimal
    | bool
    | bytes
    | None
    | list["AttributeValue"]
    | set[str]
    | set[Decimal]
    | set[bytes]
    | dict[str, "AttributeValue"]
)

# A table item keyed by attribute name.
Record: TypeAlias = dict[str, AttributeValue]


class ScanPage(BaseModel, frozen=True):
    """One page returned by a table scan."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    """Items in the order the service returned them."""

    next_cursor: ScanCursor | None = None
    """Cursor for the following page, or None when the table is exhausted."""


class WriteResult(BaseModel, frozen=True):
    """Outcome of a single bulk write call."""

    unprocessed: list[dict[str, Any]] = Field(default_factory=list)
    """Records the service did not write."""


class TableInfo(BaseModel, frozen=True):
    """Approximate table metadata (refreshed by the service every few hours)."""

    name: str
    """Table name."""

    item_count: int = 0
    """Approximate number of items."""

    size_bytes: int = 0
    """Approximate table size in bytes."""

    @property
    def size_mb(self) -> float:
        return round(self.size_bytes / (1024 * 1024), 2)
