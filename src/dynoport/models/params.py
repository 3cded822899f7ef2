"""Parameter types for transfer configuration.

Params define how the pipeline operates (batch sizes, concurrency, etc.),
while contexts carry runtime state (scan cursors).
"""

from enum import StrEnum
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator

MAX_BATCH_WRITE_ITEMS = 25
"""Hard provider limit on the number of puts in one bulk write call."""

DEFAULT_REGION = "us-east-1"


class FileFormat(StrEnum):
    """Line format of the transfer file."""

    DOCUMENT = "document"
    """Plain JSON documents, one per line."""

    DYNAMODB = "dynamodb"
    """Lossless DynamoDB JSON (`{"S": ...}`, `{"N": ...}`), one per line."""


class Operation(StrEnum):
    """Transfer direction."""

    EXPORT = "export"
    IMPORT = "import"


class TransferParams(BaseModel, frozen=True):
    """Tuning parameters for export and import."""

    wave_size: int = Field(default=500, ge=1)
    """Records per wave (soft batching unit for progress reporting)."""

    batch_size: int = Field(default=MAX_BATCH_WRITE_ITEMS, ge=1, le=MAX_BATCH_WRITE_ITEMS)
    """Records per bulk write call."""

    concurrency: int = Field(default=5, ge=1)
    """Maximum number of bulk write calls in flight."""

    max_unprocessed_retries: int = Field(default=0, ge=0)
    """Resubmissions of unprocessed records before they count as failed."""

    retry_backoff: float = Field(default=0.5, ge=0)
    """Initial delay in seconds before resubmitting unprocessed records."""

    max_retry_backoff: float = Field(default=16.0, ge=0)
    """Upper bound of the doubling resubmission delay."""

    file_format: FileFormat = FileFormat.DOCUMENT
    """Line format used to write and read the transfer file."""

    @model_validator(mode="after")
    def _check_backoff(self) -> Self:
        if self.max_retry_backoff < self.retry_backoff:
            msg = "max_retry_backoff must not be lower than retry_backoff"
            raise ValueError(msg)
        return self


class TransferRequest(BaseModel, frozen=True):
    """Everything the pipeline needs to run one operation."""

    operation: Operation
    """Transfer direction."""

    table_name: str
    """Source (export) or target (import) table."""

    file_path: str
    """Output (export) or input (import) NDJSON file."""

    region: str = DEFAULT_REGION
    """Region of the table service."""

    @field_validator("table_name", "file_path", "region")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            msg = "must not be empty"
            raise ValueError(msg)
        return value
