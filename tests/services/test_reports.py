"""Tests for per-employee punch summaries."""

from datetime import UTC, datetime, timedelta

from workpunch_relay.services.reports import summarize_employees
from workpunch_relay.services.salesforce import ExternalPunchRecord, LocationType

MONDAY = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def record(
    record_id: str,
    subject_id: str,
    start: datetime,
    hours: float | None,
    location: LocationType = LocationType.IN_OFFICE,
    employee_name: str | None = None,
) -> ExternalPunchRecord:
    return ExternalPunchRecord(
        record_id=record_id,
        subject_id=subject_id,
        punch_in=start,
        punch_out=start + timedelta(hours=hours) if hours is not None else None,
        location_type=location,
        employee_name=employee_name,
    )


def test_hours_are_split_by_location_and_grouped_by_employee() -> None:
    records = [
        record("1", "alice@acme.com", MONDAY, 8, LocationType.REMOTE, "Alice"),
        record("2", "alice@acme.com", MONDAY + timedelta(days=1), 7.5),
        record("3", "bob@acme.com", MONDAY, 4),
    ]

    summaries = {summary.id: summary for summary in summarize_employees(records)}

    assert summaries["alice@acme.com"].total_remote_hours == 8
    assert summaries["alice@acme.com"].total_in_person_hours == 7.5
    assert summaries["alice@acme.com"].name == "Alice"
    assert summaries["bob@acme.com"].total_in_person_hours == 4
    assert len(summaries["alice@acme.com"].clock_records) == 2


def test_active_records_are_listed_without_hours() -> None:
    summaries = summarize_employees([record("1", "alice@acme.com", MONDAY, None)])

    assert summaries[0].total_in_person_hours == 0
    assert summaries[0].total_remote_hours == 0
    payload = summaries[0].to_payload()
    assert payload["clockRecords"] == [
        {"clockIn": MONDAY.isoformat(), "clockOut": None, "isRemote": False}
    ]


def test_payload_uses_camel_case_and_rounds_hours() -> None:
    summaries = summarize_employees(
        [record("1", "alice@acme.com", MONDAY, 1 / 3, LocationType.REMOTE)],
        organization_code="org_1",
    )

    payload = summaries[0].to_payload()
    assert payload["organizationCode"] == "org_1"
    assert payload["totalRemoteHours"] == 0.33
    assert payload["totalInPersonHours"] == 0
