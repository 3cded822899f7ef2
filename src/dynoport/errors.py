"""Error types for transfer operations."""

from enum import StrEnum

from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError


class ErrorKind(StrEnum):
    """Classification of transfer errors."""

    INVALID_ARGUMENT = "invalid_argument"
    MALFORMED_INPUT = "malformed_input"
    TRANSIENT = "transient"
    FATAL = "fatal"
    IO = "io"


class DynoportError(Exception):
    """Base error for all transfer operations."""

    __slots__ = ("kind", "message", "source")

    default_kind: ErrorKind = ErrorKind.FATAL

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        source: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.source = source

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, kind={self.kind!r})"


class InvalidArgumentError(DynoportError, ValueError):
    """Bad caller input to a pure function. Never retried."""

    default_kind = ErrorKind.INVALID_ARGUMENT


class MalformedInputError(DynoportError):
    """A line of the input file is not a valid record document."""

    __slots__ = ("line_number",)

    default_kind = ErrorKind.MALFORMED_INPUT

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        source: BaseException | None = None,
    ) -> None:
        super().__init__(message, source=source)
        self.line_number = line_number


class TransferIOError(DynoportError):
    """Reading or writing the local file failed."""

    default_kind = ErrorKind.IO


class ServiceError(DynoportError):
    """Failure reported by the table storage service."""


class TransientServiceError(ServiceError):
    """Throttling or network failure; may succeed if attempted later."""

    default_kind = ErrorKind.TRANSIENT


class FatalServiceError(ServiceError):
    """Missing table, bad credentials or a malformed request."""

    default_kind = ErrorKind.FATAL


TRANSIENT_ERROR_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
        "InternalServerError",
        "ServiceUnavailable",
    }
)


def error_code(error: ClientError) -> str:
    """Extract the service error code from a botocore ClientError."""
    return error.response.get("Error", {}).get("Code", "Unknown")


def translate_boto_error(error: Exception, action: str) -> ServiceError:
    """Map a botocore failure onto the service error taxonomy."""
    if isinstance(error, ClientError):
        code = error_code(error)
        msg = f"Failed to {action}: {code}: {error}"
        if code in TRANSIENT_ERROR_CODES:
            return TransientServiceError(msg, source=error)
        return FatalServiceError(msg, source=error)
    if isinstance(error, ParamValidationError):
        msg = f"Failed to {action}: invalid request: {error}"
        return FatalServiceError(msg, source=error)
    if isinstance(error, BotoCoreError):
        msg = f"Failed to {action}: {error}"
        return TransientServiceError(msg, source=error)
    msg = f"Failed to {action}: {error}"
    return FatalServiceError(msg, source=error)
