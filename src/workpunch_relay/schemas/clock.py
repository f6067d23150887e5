"""Clock synchronization Pydantic schemas."""
from __future__ import annotations

from pydantic import Field

from .common import CamelModel


class SyncClockRequest(CamelModel):
    """Schema for one clock-in or clock-out submission."""

    subject_id: str = Field(..., min_length=1, description="Stable subject identifier (email).")
    clock_in: str = Field(..., description="ISO-8601 clock-in instant with UTC offset.")
    clock_out: str | None = Field(
        None, description="ISO-8601 clock-out instant; absent for a clock-in."
    )
    is_remote: bool = False
    timezone_hint: str | None = Field(
        None, description="Zone abbreviation used for display only."
    )
    time_zone: str | None = Field(
        None, description="IANA zone used to interpret timestamps without an offset."
    )
    organization_code: str | None = Field(
        None, description="Tenant key; defaults to the most recently connected company."
    )


class PunchRecordResponse(CamelModel):
    """A Salesforce punch record as surfaced to clients."""

    record_id: str
    subject_id: str
    name: str | None = None
    punch_in: str
    punch_out: str | None = None
    location_type: str


class SyncClockResponse(CamelModel):
    """Successful sync outcome; ``None`` fields are omitted from the body."""

    success: bool = True
    record_id: str | None = None
    message: str | None = None
    existing_record: PunchRecordResponse | None = None
