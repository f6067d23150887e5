"""Salesforce REST gateway for ``Workpunch__c`` records.

This module provides the SalesforceGateway class that owns every call the
relay makes against a tenant's Salesforce instance. It includes:

- Bearer authentication with the tenant's access token
- Typed punch records parsed from SOQL query results
- Failure classification (auth / transient / rejected), never retried here
- Metrics collection for diagnostics
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import httpx

from workpunch_relay.core.settings import settings
from workpunch_relay.services.errors import (
    ExternalAuthError,
    ExternalRejectedError,
    ExternalTransientError,
    InvalidInstantError,
)
from workpunch_relay.services.time_normalizer import parse_instant

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_INTERNAL_SERVER_ERROR = 500

SOBJECT = "Workpunch__c"
RECORD_FIELDS = (
    "Id",
    "Name",
    "Employee_Email__c",
    "Employee_Name__c",
    "Punch_In_Time__c",
    "Punch_Out_Time__c",
    "Location_Type__c",
)


class LocationType(str, Enum):
    """Picklist values of ``Location_Type__c``."""

    REMOTE = "Remote"
    IN_OFFICE = "In Office"

    @classmethod
    def from_flag(cls, is_remote: bool) -> LocationType:
        return cls.REMOTE if is_remote else cls.IN_OFFICE


@dataclass(frozen=True)
class Credential:
    """Access material for one Salesforce organization."""

    access_token: str
    instance_url: str


@dataclass(frozen=True)
class ExternalPunchRecord:
    """A ``Workpunch__c`` record as stored in Salesforce."""

    record_id: str
    subject_id: str
    punch_in: datetime
    punch_out: datetime | None
    location_type: LocationType
    name: str | None = None
    employee_name: str | None = None

    @property
    def is_active(self) -> bool:
        return self.punch_out is None

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-friendly representation for API responses."""
        return {
            "recordId": self.record_id,
            "subjectId": self.subject_id,
            "name": self.name,
            "punchIn": self.punch_in.isoformat(),
            "punchOut": self.punch_out.isoformat() if self.punch_out else None,
            "locationType": self.location_type.value,
        }


@dataclass
class GatewayMetrics:
    """Process-wide counters for Salesforce calls. Diagnostics only."""

    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_response_time: float = 0.0
    max_response_time: float = 0.0
    error_counts_by_kind: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    endpoint_counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_request(
        self, endpoint: str, response_time: float, success: bool, error_kind: str | None = None
    ) -> None:
        """Record a request metric."""
        self.request_count += 1
        self.total_response_time += response_time
        self.max_response_time = max(self.max_response_time, response_time)
        self.endpoint_counts[endpoint] += 1

        if success:
            self.success_count += 1
        else:
            self.error_count += 1
            if error_kind:
                self.error_counts_by_kind[error_kind] += 1

    def get_average_response_time(self) -> float:
        """Get average response time."""
        return self.total_response_time / self.request_count if self.request_count > 0 else 0.0

    def snapshot(self) -> dict[str, object]:
        return {
            "requests": self.request_count,
            "successes": self.success_count,
            "errors": self.error_count,
            "average_response_time": round(self.get_average_response_time(), 4),
            "max_response_time": round(self.max_response_time, 4),
            "errors_by_kind": dict(self.error_counts_by_kind),
            "endpoints": dict(self.endpoint_counts),
        }


_METRICS = GatewayMetrics()


def get_gateway_metrics() -> GatewayMetrics:
    """Return the process-wide gateway metrics."""
    return _METRICS


_SOQL_ESCAPES = str.maketrans(
    {
        "\\": "\\\\",
        "'": "\\'",
        '"': '\\"',
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
        "\b": "\\b",
        "\f": "\\f",
    }
)


def escape_soql(value: str) -> str:
    """Escape a value for use inside a single-quoted SOQL string literal."""
    return value.translate(_SOQL_ESCAPES)


def format_instant(value: datetime) -> str:
    """Format an instant the way Salesforce datetime fields expect."""
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.000+0000")


def _error_details(response: httpx.Response) -> tuple[str | None, str]:
    """Extract Salesforce ``errorCode``/``message`` from an error body."""
    try:
        body = response.json()
    except ValueError:
        return None, response.text[:200] or f"HTTP {response.status_code}"

    if isinstance(body, list) and body and isinstance(body[0], Mapping):
        first = body[0]
        return first.get("errorCode"), str(first.get("message", ""))
    if isinstance(body, Mapping):
        return body.get("error") or body.get("errorCode"), str(
            body.get("error_description") or body.get("message", "")
        )
    return None, f"HTTP {response.status_code}"


def classify_response(response: httpx.Response, endpoint: str) -> None:
    """Raise the taxonomy error matching a non-success response."""
    if response.is_success:
        return

    error_code, message = _error_details(response)
    detail = f"Salesforce {endpoint} failed ({response.status_code}): {message}"
    if response.status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
        raise ExternalAuthError(detail, status=response.status_code, error_code=error_code)
    if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
        raise ExternalTransientError(detail, status=response.status_code, error_code=error_code)
    raise ExternalRejectedError(detail, status=response.status_code, error_code=error_code)


def parse_punch_record(row: Mapping[str, Any]) -> ExternalPunchRecord:
    """Build a punch record from one SOQL result row."""
    try:
        punch_in = parse_instant(str(row["Punch_In_Time__c"]))
        raw_out = row.get("Punch_Out_Time__c")
        punch_out = parse_instant(str(raw_out)) if raw_out else None
    except (KeyError, InvalidInstantError) as exc:
        raise ExternalRejectedError(
            f"Salesforce returned an unreadable punch record: {row.get('Id')}"
        ) from exc

    location = row.get("Location_Type__c")
    return ExternalPunchRecord(
        record_id=str(row["Id"]),
        subject_id=str(row.get("Employee_Email__c") or ""),
        punch_in=punch_in,
        punch_out=punch_out,
        location_type=LocationType.REMOTE if location == "Remote" else LocationType.IN_OFFICE,
        name=row.get("Name"),
        employee_name=row.get("Employee_Name__c"),
    )


class SalesforceGateway:
    """Typed async wrapper over the Salesforce REST API for one tenant.

    No call made through this class is retried: creates are not idempotent
    on the Salesforce side, so retry policy belongs to the caller.
    """

    def __init__(
        self,
        credential: Credential,
        *,
        client: httpx.AsyncClient | None = None,
        api_version: str | None = None,
        metrics: GatewayMetrics | None = None,
    ) -> None:
        self.credential = credential
        self.api_version = api_version or settings.salesforce_api_version
        self._client = client
        self._owns_client = client is None
        self._metrics = metrics or _METRICS

    @property
    def data_path(self) -> str:
        return f"/services/data/{self.api_version}"

    async def __aenter__(self) -> SalesforceGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.credential.instance_url.rstrip("/"),
                timeout=httpx.Timeout(settings.salesforce_http_timeout_seconds),
            )
        return self._client

    @dataclass
    class RequestParams:
        """Parameters for HTTP requests."""
        method: str
        path: str
        json_data: Any | None = None
        params: Mapping[str, Any] | None = None

    async def _request(self, params: RequestParams) -> httpx.Response:
        client = self._ensure_client()
        headers = {
            "Authorization": f"Bearer {self.credential.access_token}",
            "Accept": "application/json",
        }
        endpoint = f"{params.method} {params.path.split('?', 1)[0]}"
        start_time = time.monotonic()
        error_kind: str | None = None

        try:
            response = await client.request(
                params.method,
                params.path,
                json=params.json_data,
                params=params.params,
                headers=headers,
            )
            classify_response(response, endpoint)
        except httpx.HTTPError as exc:
            error_kind = ExternalTransientError.kind
            logger.warning("Salesforce %s network failure: %s", endpoint, exc)
            raise ExternalTransientError(f"Salesforce {endpoint} failed: {exc}") from exc
        except (ExternalAuthError, ExternalTransientError, ExternalRejectedError) as exc:
            error_kind = exc.kind
            logger.warning("%s (errorCode=%s)", exc.message, exc.error_code)
            raise
        finally:
            self._metrics.record_request(
                endpoint, time.monotonic() - start_time, error_kind is None, error_kind
            )

        return response

    async def query_records(self, soql: str) -> list[dict[str, Any]]:
        """Run a SOQL query and return every result row, following pagination."""
        response = await self._request(
            self.RequestParams(method="GET", path=f"{self.data_path}/query", params={"q": soql})
        )
        body = response.json()
        records: list[dict[str, Any]] = list(body.get("records", []))

        while not body.get("done", True) and body.get("nextRecordsUrl"):
            response = await self._request(
                self.RequestParams(method="GET", path=body["nextRecordsUrl"])
            )
            body = response.json()
            records.extend(body.get("records", []))

        return records

    async def find_active_record(self, subject_id: str) -> ExternalPunchRecord | None:
        """Return the newest record for ``subject_id`` that has no punch-out."""
        soql = (
            f"SELECT {', '.join(RECORD_FIELDS)} FROM {SOBJECT} "
            f"WHERE Employee_Email__c = '{escape_soql(subject_id)}' "
            "AND Punch_Out_Time__c = null "
            "ORDER BY Punch_In_Time__c DESC LIMIT 1"
        )
        rows = await self.query_records(soql)
        if not rows:
            return None
        return parse_punch_record(rows[0])

    async def list_punch_records(self) -> list[ExternalPunchRecord]:
        """Return all punch records ordered by employee and newest punch-in first."""
        soql = (
            f"SELECT {', '.join(RECORD_FIELDS)} FROM {SOBJECT} "
            "ORDER BY Employee_Email__c, Punch_In_Time__c DESC"
        )
        rows = await self.query_records(soql)
        return [parse_punch_record(row) for row in rows if row.get("Punch_In_Time__c")]

    async def create_record(
        self,
        *,
        subject_id: str,
        punch_in: datetime,
        is_remote: bool,
        name: str | None = None,
    ) -> str:
        """Create an active punch record and return its Salesforce Id."""
        payload: dict[str, Any] = {
            "Employee_Email__c": subject_id,
            "Punch_In_Time__c": format_instant(punch_in),
            "Location_Type__c": LocationType.from_flag(is_remote).value,
        }
        if name:
            payload["Name"] = name

        response = await self._request(
            self.RequestParams(
                method="POST",
                path=f"{self.data_path}/sobjects/{SOBJECT}",
                json_data=payload,
            )
        )
        body = response.json()
        record_id = body.get("id")
        if not record_id:
            raise ExternalRejectedError("Salesforce create returned no record id")
        return str(record_id)

    async def close_record(self, record_id: str, punch_out: datetime) -> None:
        """Set the punch-out time on an existing record."""
        await self._request(
            self.RequestParams(
                method="PATCH",
                path=f"{self.data_path}/sobjects/{SOBJECT}/{record_id}",
                json_data={"Punch_Out_Time__c": format_instant(punch_out)},
            )
        )
