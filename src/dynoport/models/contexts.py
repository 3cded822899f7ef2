"""Context types for scan operations.

Contexts carry state needed to resume reading from a specific position.
They only track *where* to resume, not *how much* to read (that's in Params).
"""

from typing import Any

from pydantic import BaseModel


class ScanCursor(BaseModel, frozen=True):
    """Continuation token of a paginated table scan.

    Produced by one scan call and consumed by exactly the next one.
    """

    last_evaluated_key: dict[str, Any]
    """Primary key of the last item read (DynamoDB `LastEvaluatedKey`)."""
