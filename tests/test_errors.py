"""Tests for the error taxonomy."""

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, ParamValidationError

from dynoport.errors import (
    ErrorKind,
    FatalServiceError,
    InvalidArgumentError,
    MalformedInputError,
    TransientServiceError,
    translate_boto_error,
)


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "details"}}, "BatchWriteItem")


@pytest.mark.parametrize(
    "code",
    [
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
        "InternalServerError",
        "ServiceUnavailable",
    ],
)
def test_throttling_codes_are_transient(code):
    error = translate_boto_error(client_error(code), "write to table 'items'")

    assert isinstance(error, TransientServiceError)
    assert error.kind is ErrorKind.TRANSIENT
    assert error.message.startswith(f"Failed to write to table 'items': {code}")


@pytest.mark.parametrize(
    "code", ["ResourceNotFoundException", "ValidationException", "AccessDeniedException"]
)
def test_other_codes_are_fatal(code):
    error = translate_boto_error(client_error(code), "scan table 'items'")

    assert isinstance(error, FatalServiceError)
    assert error.kind is ErrorKind.FATAL


def test_network_errors_are_transient():
    source = EndpointConnectionError(endpoint_url="http://localhost:8000")

    error = translate_boto_error(source, "scan table 'items'")

    assert isinstance(error, TransientServiceError)
    assert error.source is source


def test_client_side_validation_errors_are_fatal():
    source = ParamValidationError(report="Invalid type for parameter Limit")

    error = translate_boto_error(source, "scan table 'items'")

    assert isinstance(error, FatalServiceError)
    assert error.kind is ErrorKind.FATAL
    assert "Invalid type for parameter Limit" in error.message


def test_unknown_errors_are_fatal():
    assert isinstance(translate_boto_error(RuntimeError("boom"), "list tables"), FatalServiceError)


def test_invalid_argument_is_a_value_error():
    with pytest.raises(ValueError, match="bad"):
        raise InvalidArgumentError("bad")


def test_malformed_input_keeps_line_number():
    error = MalformedInputError("Invalid JSON on line 3", line_number=3)

    assert error.line_number == 3
    assert error.kind is ErrorKind.MALFORMED_INPUT
    assert str(error) == "Invalid JSON on line 3"
