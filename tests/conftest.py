"""Shared fixtures and in-memory table doubles."""

import asyncio
from collections.abc import Sequence
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from dynoport.errors import ServiceError
from dynoport.models import ScanCursor, ScanPage, TableInfo, WriteResult
from dynoport.progress import ProgressEvent

REGION = "us-east-1"


class FakeSource:
    """Serves pre-built pages; the cursor is the index of the next page."""

    def __init__(
        self,
        pages: list[list[dict]],
        fail_on_page: int | None = None,
        error: ServiceError | None = None,
    ) -> None:
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.error = error
        self.cursors: list[ScanCursor | None] = []

    async def scan_page(self, cursor: ScanCursor | None) -> ScanPage:
        self.cursors.append(cursor)
        index = 0 if cursor is None else cursor.last_evaluated_key["page"]
        if self.fail_on_page is not None and index == self.fail_on_page:
            assert self.error is not None
            raise self.error
        following = index + 1
        next_cursor = (
            ScanCursor(last_evaluated_key={"page": following})
            if following < len(self.pages)
            else None
        )
        return ScanPage(items=self.pages[index], next_cursor=next_cursor)


class DescribedSource(FakeSource):
    """FakeSource that also answers describe_table."""

    def __init__(self, pages: list[list[dict]], describe_error: ServiceError | None = None) -> None:
        super().__init__(pages)
        self.describe_error = describe_error

    async def describe_table(self) -> TableInfo:
        if self.describe_error is not None:
            raise self.describe_error
        return TableInfo(
            name="items",
            item_count=sum(len(p) for p in self.pages),
            size_bytes=3 * 1024 * 1024,
        )


class FakeSink:
    """Records every write_batch call.

    `unprocessed` decides how many items of each call come back unprocessed;
    `fail_calls` lists the 1-based call numbers that raise `error`.
    """

    def __init__(
        self,
        unprocessed=None,
        fail_calls: Sequence[int] = (),
        error: ServiceError | None = None,
        delay: float = 0.0,
    ) -> None:
        self.unprocessed = unprocessed or (lambda call, batch: 0)
        self.fail_calls = set(fail_calls)
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, list[dict]]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def write_batch(self, table_name: str, batch: Sequence[dict]) -> WriteResult:
        self.calls.append((table_name, list(batch)))
        call = len(self.calls)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if call in self.fail_calls:
                assert self.error is not None
                raise self.error
            count = self.unprocessed(call, batch)
            return WriteResult(unprocessed=list(batch[:count]))
        finally:
            self.in_flight -= 1


class EventLog:
    """Reporter that keeps every event."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def of(self, kind: type) -> list:
        return [e for e in self.events if isinstance(e, kind)]


def make_items(count: int, prefix: str = "item") -> list[dict]:
    return [
        {"pk": f"{prefix}-{i}", "index": i, "tags": ["a", "b"], "nested": {"ok": True}}
        for i in range(count)
    ]


def write_ndjson(path: Path, lines: list[str]) -> Path:
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return path


@pytest.fixture
def events() -> EventLog:
    return EventLog()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("DYNOPORT_REGION", raising=False)


def create_table(client, name: str) -> None:
    client.create_table(
        TableName=name,
        KeySchema=[{"AttributeName": "pk", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "pk", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def dynamodb(aws_credentials):
    """A mocked DynamoDB with an empty `items` table."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name=REGION)
        create_table(client, "items")
        yield client
