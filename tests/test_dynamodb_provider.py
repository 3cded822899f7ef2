"""Tests for the DynamoDB provider against moto."""

import json
from decimal import Decimal

import pytest
from conftest import REGION, create_table, write_ndjson

from dynoport import TransferPipeline
from dynoport.errors import FatalServiceError, InvalidArgumentError
from dynoport.protocols import Provider, RecordSink, RecordSource, TableInspector
from dynoport.providers.dynamodb import DynamoDBCredentials, DynamoDBParams, DynamoDBProvider


async def connect(table="items", **params) -> DynamoDBProvider:
    return await DynamoDBProvider.connect(
        DynamoDBCredentials(region=REGION),
        DynamoDBParams(table=table, **params),
    )


def put_items(client, count, table="items"):
    for i in range(count):
        client.put_item(
            TableName=table,
            Item={"pk": {"S": f"item-{i:03d}"}, "n": {"N": str(i)}, "tags": {"SS": ["a", "b"]}},
        )


@pytest.mark.asyncio
async def test_provider_implements_protocols(dynamodb):
    provider = await connect()

    assert isinstance(provider, Provider)
    assert isinstance(provider, RecordSource)
    assert isinstance(provider, RecordSink)
    assert isinstance(provider, TableInspector)
    assert provider.table == "items"
    await provider.disconnect()


@pytest.mark.asyncio
async def test_scan_pages_until_exhausted(dynamodb):
    put_items(dynamodb, 7)
    provider = await connect(scan_limit=3)

    items, cursor, pages = [], None, 0
    while True:
        page = await provider.scan_page(cursor)
        pages += 1
        items.extend(page.items)
        cursor = page.next_cursor
        if cursor is None:
            break

    assert pages >= 3
    assert sorted(item["pk"] for item in items) == [f"item-{i:03d}" for i in range(7)]
    first = next(item for item in items if item["pk"] == "item-003")
    assert first["n"] == Decimal("3")
    assert first["tags"] == {"a", "b"}


@pytest.mark.asyncio
async def test_scan_missing_table_is_fatal(dynamodb):
    provider = await connect(table="missing")

    with pytest.raises(FatalServiceError, match="ResourceNotFoundException"):
        await provider.scan_page(None)


@pytest.mark.asyncio
async def test_write_batch_puts_records(dynamodb):
    provider = await connect()
    batch = [{"pk": f"w-{i}", "price": Decimal("9.5"), "raw": b"\x01"} for i in range(3)]

    result = await provider.write_batch("items", batch)

    assert result.unprocessed == []
    stored = dynamodb.get_item(TableName="items", Key={"pk": {"S": "w-1"}})["Item"]
    assert stored["price"] == {"N": "9.5"}
    assert stored["raw"] == {"B": b"\x01"}


@pytest.mark.asyncio
async def test_write_batch_empty_is_a_no_op(dynamodb):
    provider = await connect()

    assert (await provider.write_batch("items", [])).unprocessed == []


@pytest.mark.asyncio
async def test_write_batch_over_limit_is_rejected(dynamodb):
    provider = await connect()

    with pytest.raises(InvalidArgumentError):
        await provider.write_batch("items", [{"pk": str(i)} for i in range(26)])


@pytest.mark.asyncio
async def test_write_batch_with_float_is_fatal(dynamodb):
    provider = await connect()

    with pytest.raises(FatalServiceError, match="write request"):
        await provider.write_batch("items", [{"pk": "a", "value": 1.5}])


@pytest.mark.asyncio
async def test_write_batch_missing_table_is_fatal(dynamodb):
    provider = await connect()

    with pytest.raises(FatalServiceError):
        await provider.write_batch("missing", [{"pk": "a"}])


@pytest.mark.asyncio
async def test_describe_table(dynamodb):
    put_items(dynamodb, 2)
    provider = await connect()

    info = await provider.describe_table()

    assert info.name == "items"
    assert info.item_count >= 0
    assert info.size_bytes >= 0


@pytest.mark.asyncio
async def test_list_tables(dynamodb):
    create_table(dynamodb, "other")
    provider = await DynamoDBProvider.connect(DynamoDBCredentials(region=REGION), DynamoDBParams())

    assert sorted(await provider.list_tables()) == ["items", "other"]


@pytest.mark.asyncio
async def test_unbound_provider_cannot_scan(dynamodb):
    provider = await DynamoDBProvider.connect(DynamoDBCredentials(region=REGION), DynamoDBParams())

    with pytest.raises(InvalidArgumentError, match="No table"):
        await provider.scan_page(None)


@pytest.mark.asyncio
async def test_connect_with_unknown_profile_is_fatal(aws_credentials):
    with pytest.raises(FatalServiceError, match="Failed to connect"):
        await DynamoDBProvider.connect(
            DynamoDBCredentials(region=REGION, profile="no-such-profile"),
            DynamoDBParams(table="items"),
        )


@pytest.mark.asyncio
async def test_export_then_import_between_tables(dynamodb, tmp_path):
    put_items(dynamodb, 60)
    create_table(dynamodb, "copy")
    dump = tmp_path / "items.jsonl"

    exported = await TransferPipeline(await connect(scan_limit=25)).export_table("items", dump)
    imported = await TransferPipeline(await connect(table="copy")).import_table("copy", dump)

    assert exported.ok
    assert exported.stats.items_read == 60
    assert exported.table_info is not None
    assert imported.ok
    assert imported.stats.items_written == 60
    assert dynamodb.scan(TableName="copy", Select="COUNT")["Count"] == 60
    copied = dynamodb.get_item(TableName="copy", Key={"pk": {"S": "item-042"}})["Item"]
    assert copied["n"] == {"N": "42"}


@pytest.mark.asyncio
async def test_import_into_missing_table_counts_every_item_failed(dynamodb, tmp_path):
    path = write_ndjson(tmp_path / "in.jsonl", [json.dumps({"pk": f"k{i}"}) for i in range(30)])

    outcome = await TransferPipeline(await connect(table="missing")).import_table("missing", path)

    assert outcome.ok
    assert outcome.stats.items_failed == 30
    assert outcome.stats.items_written == 0
    assert outcome.stats.groups_failed == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [10**40, Decimal("1e400")])
async def test_write_batch_with_unrepresentable_number_is_fatal(dynamodb, value):
    provider = await connect()

    with pytest.raises(FatalServiceError, match="write request"):
        await provider.write_batch("items", [{"pk": "big", "n": value}])


@pytest.mark.asyncio
async def test_import_isolates_group_with_unrepresentable_number(dynamodb, tmp_path):
    lines = [json.dumps({"pk": f"k{i}", "n": i}) for i in range(40)]
    lines[3] = '{"pk":"big","n":10000000000000000000000000000000000000000}'
    path = write_ndjson(tmp_path / "in.jsonl", lines)

    outcome = await TransferPipeline(await connect()).import_table("items", path)

    assert outcome.ok
    assert outcome.stats.items_read == 40
    assert outcome.stats.items_failed == 25
    assert outcome.stats.items_written == 15
    assert outcome.stats.groups_failed == 1
    assert dynamodb.scan(TableName="items", Select="COUNT")["Count"] == 15
