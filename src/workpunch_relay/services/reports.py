"""Per-employee summaries of Salesforce punch records."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from workpunch_relay.services.salesforce import ExternalPunchRecord, LocationType

SECONDS_PER_HOUR = 3600


@dataclass
class EmployeeSummary:
    """Clock records and worked hours for one employee."""

    id: str
    name: str | None
    organization_code: str | None
    clock_records: list[ExternalPunchRecord] = field(default_factory=list)
    total_remote_hours: float = 0.0
    total_in_person_hours: float = 0.0

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "organizationCode": self.organization_code,
            "clockRecords": [
                {
                    "clockIn": record.punch_in.isoformat(),
                    "clockOut": record.punch_out.isoformat() if record.punch_out else None,
                    "isRemote": record.location_type is LocationType.REMOTE,
                }
                for record in self.clock_records
            ],
            "totalRemoteHours": round(self.total_remote_hours, 2),
            "totalInPersonHours": round(self.total_in_person_hours, 2),
        }


def summarize_employees(
    records: Iterable[ExternalPunchRecord],
    *,
    organization_code: str | None = None,
) -> list[EmployeeSummary]:
    """Group punch records by employee and total the closed hours.

    Active records are listed but contribute no hours.
    """
    summaries: dict[str, EmployeeSummary] = {}
    for record in records:
        summary = summaries.get(record.subject_id)
        if summary is None:
            summary = EmployeeSummary(
                id=record.subject_id,
                name=record.employee_name,
                organization_code=organization_code,
            )
            summaries[record.subject_id] = summary
        elif summary.name is None and record.employee_name:
            summary.name = record.employee_name

        summary.clock_records.append(record)
        if record.punch_out is None:
            continue

        hours = (record.punch_out - record.punch_in).total_seconds() / SECONDS_PER_HOUR
        if record.location_type is LocationType.REMOTE:
            summary.total_remote_hours += hours
        else:
            summary.total_in_person_hours += hours

    return list(summaries.values())
