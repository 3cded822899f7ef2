"""Bulk export and import between DynamoDB tables and newline-delimited JSON."""

from dynoport.batching import chunk, iter_waves
from dynoport.errors import (
    DynoportError,
    ErrorKind,
    FatalServiceError,
    InvalidArgumentError,
    MalformedInputError,
    ServiceError,
    TransferIOError,
    TransientServiceError,
)
from dynoport.models import (
    FileFormat,
    Operation,
    ScanCursor,
    ScanPage,
    TableInfo,
    TransferOutcome,
    TransferParams,
    TransferRequest,
    TransferState,
    TransferStats,
    WriteResult,
)
from dynoport.pipeline import TransferPipeline
from dynoport.protocols import Provider, RecordSink, RecordSource, TableInspector

__version__ = "1.0.0"

__all__ = [
    "DynoportError",
    "ErrorKind",
    "FatalServiceError",
    "FileFormat",
    "InvalidArgumentError",
    "MalformedInputError",
    "Operation",
    "Provider",
    "RecordSink",
    "RecordSource",
    "ScanCursor",
    "ScanPage",
    "ServiceError",
    "TableInfo",
    "TableInspector",
    "TransferIOError",
    "TransferOutcome",
    "TransferParams",
    "TransferPipeline",
    "TransferRequest",
    "TransferState",
    "TransferStats",
    "TransientServiceError",
    "WriteResult",
    "__version__",
    "chunk",
    "iter_waves",
]
