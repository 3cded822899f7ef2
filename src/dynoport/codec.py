"""Newline-delimited JSON encoding of table records.

Two line formats are supported:

- `document`: plain JSON, numbers read back as `Decimal` (the table
  service rejects binary floats), binary values written as base64 text
  and sets written as sorted lists. This is the format other tools expect
  from a table dump.
- `dynamodb`: every attribute in DynamoDB JSON (`{"S": "x"}`), produced by
  boto3's `TypeSerializer`. Lossless for binary values and sets.
"""

import base64
import json
import logging
from collections.abc import Callable, Iterator, Sequence
from decimal import Decimal
from pathlib import Path
from typing import Any, TextIO

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from dynoport.errors import MalformedInputError, TransferIOError
from dynoport.models.datatypes import Record
from dynoport.models.params import FileFormat

logger = logging.getLogger(__name__)

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _plain_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, Binary):
        value = value.value
    if isinstance(value, (bytes, bytearray)):
        return _b64encode(bytes(value))
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=_sort_key)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def _sort_key(value: Any) -> Any:
    if isinstance(value, Binary):
        return value.value
    return value


def _convert_binary(attr: Any, convert: Callable[[Any], Any]) -> Any:
    # Binary attributes travel as base64 text in DynamoDB JSON.
    if not isinstance(attr, dict) or len(attr) != 1:
        return attr
    [(tag, value)] = attr.items()
    if tag == "B":
        return {"B": convert(value)}
    if tag == "BS":
        return {"BS": [convert(v) for v in value]}
    if tag == "L":
        return {"L": [_convert_binary(v, convert) for v in value]}
    if tag == "M":
        return {"M": {k: _convert_binary(v, convert) for k, v in value.items()}}
    return attr


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value, validate=True)


def _to_dynamodb_json(record: Record) -> dict[str, Any]:
    return {
        key: _convert_binary(_serializer.serialize(value), _b64encode)
        for key, value in record.items()
    }


def _from_dynamodb_json(document: dict[str, Any]) -> Record:
    return {
        key: _deserializer.deserialize(_convert_binary(value, _b64decode))
        for key, value in document.items()
    }


def encode_record(record: Record, fmt: FileFormat = FileFormat.DOCUMENT) -> str:
    """Serialize a record to a single line of text (without the newline)."""
    if not isinstance(record, dict):
        msg = f"Record must be a mapping, got {type(record).__name__}"
        raise MalformedInputError(msg)
    try:
        if fmt is FileFormat.DYNAMODB:
            line = json.dumps(
                _to_dynamodb_json(record),
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            )
        else:
            line = json.dumps(
                record,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
                default=_plain_default,
            )
    except (TypeError, ValueError, ArithmeticError) as e:
        msg = f"Record cannot be serialized: {e}"
        raise MalformedInputError(msg, source=e) from e
    # json.dumps escapes control characters, so a raw newline means a broken encoder.
    if "\n" in line or "\r" in line:
        msg = "Serialized record contains a line break"
        raise MalformedInputError(msg)
    return line


def decode_record(
    line: str,
    fmt: FileFormat = FileFormat.DOCUMENT,
    line_number: int | None = None,
) -> Record:
    """Parse one line of text into a record."""
    where = f" on line {line_number}" if line_number is not None else ""
    try:
        document = json.loads(line, parse_float=Decimal)
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON{where}: {e.msg}"
        raise MalformedInputError(msg, line_number=line_number, source=e) from e
    if not isinstance(document, dict):
        msg = f"Expected a JSON object{where}, got {type(document).__name__}"
        raise MalformedInputError(msg, line_number=line_number)
    if fmt is FileFormat.DYNAMODB:
        try:
            return _from_dynamodb_json(document)
        except (TypeError, ValueError, AttributeError, ArithmeticError) as e:
            msg = f"Invalid DynamoDB JSON{where}: {e}"
            raise MalformedInputError(msg, line_number=line_number, source=e) from e
    return document


def iter_lines(path: str | Path) -> Iterator[tuple[int, str]]:
    """Yield `(line_number, text)` for every non-blank line of a file."""
    try:
        with Path(path).open(encoding="utf-8") as f:
            for number, line in enumerate(f, start=1):
                text = line.strip()
                if not text:
                    continue
                yield number, text
    except UnicodeDecodeError as e:
        msg = f"Input file is not valid UTF-8: {path}"
        raise MalformedInputError(msg, source=e) from e
    except OSError as e:
        msg = f"Failed to read '{path}': {e}"
        raise TransferIOError(msg, source=e) from e


def write_lines(f: TextIO, records: Sequence[Record], fmt: FileFormat = FileFormat.DOCUMENT) -> int:
    """Append encoded records to an open text file. Returns the count written.

    Every record is encoded before anything is written, so a record that
    cannot be encoded leaves the file untouched.
    """
    lines = [encode_record(record, fmt) for record in records]
    if lines:
        f.write("\n".join(lines))
        f.write("\n")
    logger.debug("Appended %d records", len(lines))
    return len(lines)
