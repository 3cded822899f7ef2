"""Types shared by the pipeline, the providers and progress reporters."""

from dynoport.models.contexts import ScanCursor
from dynoport.models.datatypes import AttributeValue, Record, ScanPage, TableInfo, WriteResult
from dynoport.models.params import (
    DEFAULT_REGION,
    MAX_BATCH_WRITE_ITEMS,
    FileFormat,
    Operation,
    TransferParams,
    TransferRequest,
)
from dynoport.models.stats import (
    StatsSnapshot,
    TransferOutcome,
    TransferState,
    TransferStats,
    format_elapsed,
)

__all__ = [
    # Contexts (runtime state)
    "ScanCursor",
    # Params (configuration)
    "DEFAULT_REGION",
    "MAX_BATCH_WRITE_ITEMS",
    "FileFormat",
    "Operation",
    "TransferParams",
    "TransferRequest",
    # Data types
    "AttributeValue",
    "Record",
    "ScanPage",
    "TableInfo",
    "WriteResult",
    # Accounting
    "StatsSnapshot",
    "TransferOutcome",
    "TransferState",
    "TransferStats",
    "format_elapsed",
]
