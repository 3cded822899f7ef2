"""DynamoDB provider using boto3."""

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, ClassVar, Self

from pydantic import BaseModel, Field

from dynoport.errors import FatalServiceError, InvalidArgumentError, translate_boto_error
from dynoport.models.contexts import ScanCursor
from dynoport.models.datatypes import Record, ScanPage, TableInfo, WriteResult
from dynoport.models.params import DEFAULT_REGION, MAX_BATCH_WRITE_ITEMS

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBClient

try:
    import boto3
    from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
    from botocore.config import Config
    from botocore.exceptions import BotoCoreError, ClientError
except ImportError as e:
    _msg = "boto3 is required for DynamoDB support. Install with: pip install dynoport"
    raise ImportError(_msg) from e

logger = logging.getLogger(__name__)


class DynamoDBCredentials(BaseModel, frozen=True):
    """Connection settings for DynamoDB.

    Anything left unset is resolved by boto3's default credential chain
    (environment, shared config, instance profile).
    """

    region: str = DEFAULT_REGION
    profile: str | None = None
    endpoint_url: str | None = None
    """Alternative endpoint (DynamoDB Local, LocalStack)."""

    access_key_id: str | None = None
    secret_access_key: str | None = None


class DynamoDBParams(BaseModel, frozen=True):
    """Parameters for DynamoDB operations."""

    table: str | None = None
    """Table scanned by `scan_page` and described by `describe_table`."""

    scan_limit: int | None = Field(default=None, ge=1)
    """Maximum items evaluated per scan page. None lets the service cap pages at 1 MB."""

    consistent_read: bool = False
    """Use strongly consistent reads while scanning."""

    max_attempts: int = Field(default=10, ge=1)
    """Attempts per request made by botocore's adaptive retry mode."""


class DynamoDBProvider:
    """DynamoDB provider for table scan and bulk write operations.

    Implements Provider[DynamoDBCredentials, DynamoDBParams], RecordSource,
    RecordSink and TableInspector.

    boto3 clients are blocking, so every call runs in a worker thread; this
    lets several bulk writes be in flight at once.
    """

    __slots__: ClassVar[tuple[str, ...]] = ("_client", "_deserializer", "_params", "_serializer")

    _client: "DynamoDBClient"
    _params: DynamoDBParams

    def __init__(self, client: "DynamoDBClient", params: DynamoDBParams) -> None:
        self._client = client
        self._params = params
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    @property
    def table(self) -> str | None:
        return self._params.table

    def _bound_table(self) -> str:
        if not self._params.table:
            msg = "No table is bound to this provider"
            raise InvalidArgumentError(msg)
        return self._params.table

    @classmethod
    async def connect(cls, credentials: DynamoDBCredentials, params: DynamoDBParams) -> Self:
        """Create the DynamoDB client."""
        try:
            session = boto3.Session(
                profile_name=credentials.profile,
                aws_access_key_id=credentials.access_key_id,
                aws_secret_access_key=credentials.secret_access_key,
                region_name=credentials.region,
            )
            client: DynamoDBClient = session.client(  # pyright: ignore[reportUnknownMemberType]
                "dynamodb",
                endpoint_url=credentials.endpoint_url,
                config=Config(retries={"max_attempts": params.max_attempts, "mode": "adaptive"}),
            )
        except Exception as e:
            msg = f"Failed to connect to DynamoDB: {e}"
            raise FatalServiceError(msg, source=e) from e

        logger.debug("Connected to DynamoDB in %s (table '%s')", credentials.region, params.table)
        return cls(client, params)

    async def disconnect(self) -> None:
        """Close the underlying HTTP connections."""
        self._client.close()

    def _serialize(self, record: Record) -> dict[str, Any]:
        return {k: self._serializer.serialize(v) for k, v in record.items()}

    def _deserialize(self, item: dict[str, Any]) -> Record:
        return {k: self._deserializer.deserialize(v) for k, v in item.items()}

    async def scan_page(self, cursor: ScanCursor | None) -> ScanPage:
        """Scan one page of the table."""
        table = self._bound_table()
        kwargs: dict[str, Any] = {"TableName": table}
        if self._params.scan_limit:
            kwargs["Limit"] = self._params.scan_limit
        if self._params.consistent_read:
            kwargs["ConsistentRead"] = True
        if cursor is not None:
            kwargs["ExclusiveStartKey"] = cursor.last_evaluated_key

        try:
            response = await asyncio.to_thread(self._client.scan, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise translate_boto_error(e, f"scan table '{table}'") from e

        items = [self._deserialize(item) for item in response.get("Items", [])]
        last_key = response.get("LastEvaluatedKey")
        next_cursor = ScanCursor(last_evaluated_key=last_key) if last_key else None
        return ScanPage(items=items, next_cursor=next_cursor)

    async def write_batch(self, table_name: str, batch: Sequence[Record]) -> WriteResult:
        """Put a batch of records with a single BatchWriteItem call."""
        if not batch:
            return WriteResult()
        if len(batch) > MAX_BATCH_WRITE_ITEMS:
            msg = f"A batch holds at most {MAX_BATCH_WRITE_ITEMS} records, got {len(batch)}"
            raise InvalidArgumentError(msg)

        try:
            put_requests = [{"PutRequest": {"Item": self._serialize(r)}} for r in batch]
        except (TypeError, ValueError, ArithmeticError) as e:
            msg = f"Failed to build write request for table '{table_name}': {e}"
            raise FatalServiceError(msg, source=e) from e

        try:
            response = await asyncio.to_thread(
                self._client.batch_write_item,
                RequestItems={table_name: put_requests},
            )
        except (ClientError, BotoCoreError) as e:
            raise translate_boto_error(e, f"write to table '{table_name}'") from e

        unprocessed = response.get("UnprocessedItems", {}).get(table_name, [])
        return WriteResult(
            unprocessed=[self._deserialize(req["PutRequest"]["Item"]) for req in unprocessed],
        )

    async def describe_table(self) -> TableInfo:
        """Fetch approximate item count and size of the table."""
        name = self._bound_table()
        try:
            response = await asyncio.to_thread(
                self._client.describe_table,
                TableName=name,
            )
        except (ClientError, BotoCoreError) as e:
            raise translate_boto_error(e, f"describe table '{name}'") from e

        table = response.get("Table", {})
        return TableInfo(
            name=name,
            item_count=table.get("ItemCount", 0),
            size_bytes=table.get("TableSizeBytes", 0),
        )

    async def list_tables(self) -> list[str]:
        """List every table name in the region."""

        def _collect() -> list[str]:
            paginator = self._client.get_paginator("list_tables")
            return [name for page in paginator.paginate() for name in page.get("TableNames", [])]

        try:
            return await asyncio.to_thread(_collect)
        except (ClientError, BotoCoreError) as e:
            raise translate_boto_error(e, "list tables") from e


Provider = DynamoDBProvider
