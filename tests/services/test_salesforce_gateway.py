"""Tests for the Salesforce REST gateway using httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime

import httpx
import pytest

from workpunch_relay.services.errors import (
    ExternalAuthError,
    ExternalRejectedError,
    ExternalTransientError,
)
from workpunch_relay.services.salesforce import (
    Credential,
    GatewayMetrics,
    LocationType,
    SalesforceGateway,
    escape_soql,
    format_instant,
)

INSTANCE_URL = "https://acme.my.salesforce.com"
ACCESS_TOKEN = "00Dxx0000000001!token"
DATA_PATH = "/services/data/v59.0"

ACTIVE_ROW = {
    "Id": "a0X000000000001AAA",
    "Name": "alice-2024-01-01",
    "Employee_Email__c": "alice@acme.com",
    "Employee_Name__c": "Alice",
    "Punch_In_Time__c": "2024-01-01T14:00:00.000+0000",
    "Punch_Out_Time__c": None,
    "Location_Type__c": "Remote",
}


def make_gateway(
    handler: Callable[[httpx.Request], httpx.Response],
    metrics: GatewayMetrics | None = None,
) -> SalesforceGateway:
    client = httpx.AsyncClient(base_url=INSTANCE_URL, transport=httpx.MockTransport(handler))
    return SalesforceGateway(
        Credential(access_token=ACCESS_TOKEN, instance_url=INSTANCE_URL),
        client=client,
        api_version="v59.0",
        metrics=metrics or GatewayMetrics(),
    )


def test_escape_soql_escapes_quotes_and_backslashes() -> None:
    assert escape_soql("o'brien\\x@acme.com") == "o\\'brien\\\\x@acme.com"


def test_escape_soql_escapes_control_characters_and_double_quotes() -> None:
    assert escape_soql('a\nb\rc\td\be\ff"g') == 'a\\nb\\rc\\td\\be\\ff\\"g'


def test_format_instant_uses_salesforce_layout() -> None:
    assert format_instant(datetime(2024, 1, 1, 9, 0, tzinfo=UTC)) == "2024-01-01T09:00:00.000+0000"


@pytest.mark.asyncio
async def test_find_active_record_parses_row_and_sends_bearer() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"done": True, "totalSize": 1, "records": [ACTIVE_ROW]})

    gateway = make_gateway(handler)
    record = await gateway.find_active_record("alice@acme.com")

    assert record is not None
    assert record.record_id == "a0X000000000001AAA"
    assert record.punch_in == datetime(2024, 1, 1, 14, 0, tzinfo=UTC)
    assert record.punch_out is None
    assert record.location_type is LocationType.REMOTE
    assert record.is_active

    request = requests[0]
    assert request.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"
    assert request.url.path == f"{DATA_PATH}/query"
    soql = request.url.params["q"]
    assert "Employee_Email__c = 'alice@acme.com'" in soql
    assert "Punch_Out_Time__c = null" in soql
    assert soql.endswith("ORDER BY Punch_In_Time__c DESC LIMIT 1")


@pytest.mark.asyncio
async def test_find_active_record_escapes_subject() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params["q"])
        return httpx.Response(200, json={"done": True, "records": []})

    gateway = make_gateway(handler)
    assert await gateway.find_active_record("x' OR Name != '") is None
    assert "Employee_Email__c = 'x\\' OR Name != \\''" in seen[0]


@pytest.mark.asyncio
async def test_create_record_posts_fields_and_returns_id() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == f"{DATA_PATH}/sobjects/Workpunch__c"
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"id": "a0XNEW", "success": True, "errors": []})

    gateway = make_gateway(handler)
    record_id = await gateway.create_record(
        subject_id="alice@acme.com",
        punch_in=datetime(2024, 1, 1, 14, 0, tzinfo=UTC),
        is_remote=False,
        name="alice-2024-01-01",
    )

    assert record_id == "a0XNEW"
    assert bodies == [
        {
            "Employee_Email__c": "alice@acme.com",
            "Punch_In_Time__c": "2024-01-01T14:00:00.000+0000",
            "Location_Type__c": "In Office",
            "Name": "alice-2024-01-01",
        }
    ]


@pytest.mark.asyncio
async def test_close_record_patches_punch_out() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    gateway = make_gateway(handler)
    await gateway.close_record("a0X1", datetime(2024, 1, 1, 22, 0, tzinfo=UTC))

    assert requests[0].method == "PATCH"
    assert requests[0].url.path == f"{DATA_PATH}/sobjects/Workpunch__c/a0X1"
    assert json.loads(requests[0].content) == {"Punch_Out_Time__c": "2024-01-01T22:00:00.000+0000"}


@pytest.mark.asyncio
async def test_query_records_follows_pagination() -> None:
    next_url = f"{DATA_PATH}/query/01gxx-2000"

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == next_url:
            return httpx.Response(200, json={"done": True, "records": [{"Id": "2"}]})
        return httpx.Response(
            200, json={"done": False, "nextRecordsUrl": next_url, "records": [{"Id": "1"}]}
        )

    gateway = make_gateway(handler)
    rows = await gateway.query_records("SELECT Id FROM Workpunch__c")

    assert [row["Id"] for row in rows] == ["1", "2"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "body", "error_type"),
    [
        (401, [{"errorCode": "INVALID_SESSION_ID", "message": "Session expired"}], ExternalAuthError),
        (403, [{"errorCode": "INSUFFICIENT_ACCESS", "message": "no"}], ExternalAuthError),
        (503, {"message": "Service unavailable"}, ExternalTransientError),
        (400, [{"errorCode": "MALFORMED_QUERY", "message": "unexpected token"}], ExternalRejectedError),
        (404, [{"errorCode": "NOT_FOUND", "message": "missing"}], ExternalRejectedError),
    ],
)
async def test_failures_are_classified(status: int, body: object, error_type: type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    metrics = GatewayMetrics()
    gateway = make_gateway(handler, metrics)

    with pytest.raises(error_type) as excinfo:
        await gateway.find_active_record("alice@acme.com")

    assert excinfo.value.status == status
    assert metrics.error_count == 1
    assert metrics.error_counts_by_kind[error_type.kind] == 1


@pytest.mark.asyncio
async def test_rejected_error_carries_salesforce_error_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json=[{"errorCode": "MALFORMED_QUERY", "message": "bad"}])

    gateway = make_gateway(handler)
    with pytest.raises(ExternalRejectedError) as excinfo:
        await gateway.query_records("SELECT")

    assert excinfo.value.error_code == "MALFORMED_QUERY"
    assert "bad" in excinfo.value.message


@pytest.mark.asyncio
async def test_transport_error_is_transient() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    metrics = GatewayMetrics()
    gateway = make_gateway(handler, metrics)

    with pytest.raises(ExternalTransientError):
        await gateway.create_record(
            subject_id="alice@acme.com",
            punch_in=datetime(2024, 1, 1, 14, 0, tzinfo=UTC),
            is_remote=True,
        )
    assert metrics.error_counts_by_kind["ExternalTransientError"] == 1


@pytest.mark.asyncio
async def test_list_punch_records_skips_rows_without_punch_in() -> None:
    closed = dict(ACTIVE_ROW, Id="a0X2", Punch_Out_Time__c="2024-01-01T22:00:00.000+0000")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"done": True, "records": [closed, dict(ACTIVE_ROW, Punch_In_Time__c=None)]},
        )

    gateway = make_gateway(handler)
    records = await gateway.list_punch_records()

    assert [record.record_id for record in records] == ["a0X2"]
    assert records[0].punch_out == datetime(2024, 1, 1, 22, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_gateway_does_not_close_injected_client() -> None:
    client = httpx.AsyncClient(
        base_url=INSTANCE_URL,
        transport=httpx.MockTransport(lambda request: httpx.Response(204)),
    )
    async with SalesforceGateway(
        Credential(access_token=ACCESS_TOKEN, instance_url=INSTANCE_URL), client=client
    ) as gateway:
        await gateway.close_record("a0X1", datetime(2024, 1, 1, 22, 0, tzinfo=UTC))

    assert not client.is_closed
    await client.aclose()
