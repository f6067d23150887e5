"""Reconciliation of clock events against Salesforce punch records.

One invocation handles one sync request and decides, from a fresh query of
the subject's active record, which single external write (if any) to issue:

==========================  =====================  ==========================
Request                     Active record          Outcome
==========================  =====================  ==========================
clock-in only               none                   create -> CREATED
clock-in only               exists                 no write -> ALREADY_ACTIVE
clock-in + clock-out        punch-in matches       patch -> CLOSED
clock-in + clock-out        punch-in differs       ClockInMismatchError
clock-in + clock-out        ends before punch-in   OrderingViolationError
clock-in + clock-out        none                   NoActiveRecordError
==========================  =====================  ==========================

The reconciler keeps no state between invocations; callers must hold the
subject's sync lock for the whole query-then-write sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

from workpunch_relay.core.settings import settings
from workpunch_relay.services.errors import (
    ClockInMismatchError,
    NoActiveRecordError,
    OrderingViolationError,
)
from workpunch_relay.services.salesforce import ExternalPunchRecord
from workpunch_relay.services.time_normalizer import resolve_display_zone

logger = logging.getLogger(__name__)


class RecordGateway(Protocol):
    """The subset of the Salesforce gateway the reconciler depends on."""

    async def find_active_record(self, subject_id: str) -> ExternalPunchRecord | None: ...

    async def create_record(
        self,
        *,
        subject_id: str,
        punch_in: datetime,
        is_remote: bool,
        name: str | None = None,
    ) -> str: ...

    async def close_record(self, record_id: str, punch_out: datetime) -> None: ...


@dataclass(frozen=True)
class ClockEvent:
    """A normalized clock event submitted by a client."""

    subject_id: str
    clock_in: datetime
    clock_out: datetime | None
    is_remote: bool
    timezone_hint: str | None = None

    def __post_init__(self) -> None:
        if self.clock_out is not None and self.clock_out <= self.clock_in:
            raise ValueError("clock_out must be strictly later than clock_in")

    @property
    def is_clock_out(self) -> bool:
        return self.clock_out is not None


class ReconcileAction(str, Enum):
    CREATED = "created"
    ALREADY_ACTIVE = "already_active"
    CLOSED = "closed"


@dataclass(frozen=True)
class ReconcileOutcome:
    """Result of a successful reconciliation."""

    action: ReconcileAction
    record_id: str
    existing_record: ExternalPunchRecord | None = None
    name: str | None = None


def record_name(subject_id: str, clock_in: datetime, timezone_hint: str | None) -> str:
    """Return the human-facing record name ``"{person}-{YYYY-MM-DD}"``."""
    person = subject_id.split("@", 1)[0] or subject_id
    local_date = clock_in.astimezone(resolve_display_zone(timezone_hint)).date()
    return f"{person}-{local_date.isoformat()}"


class Reconciler:
    """Decides and issues the single correct external write for a clock event."""

    def __init__(self, *, match_tolerance_seconds: int | None = None) -> None:
        self.match_tolerance = timedelta(
            seconds=(
                settings.clock_match_tolerance_seconds
                if match_tolerance_seconds is None
                else match_tolerance_seconds
            )
        )

    def punch_in_matches(self, active: ExternalPunchRecord, clock_in: datetime) -> bool:
        """Return True when ``clock_in`` is within tolerance of the record's punch-in."""
        return abs(active.punch_in - clock_in) <= self.match_tolerance

    async def reconcile(self, event: ClockEvent, gateway: RecordGateway) -> ReconcileOutcome:
        """Reconcile ``event`` against the subject's current Salesforce state.

        Raises:
            NoActiveRecordError: Clock-out with no active record.
            ClockInMismatchError: Clock-out whose clock-in does not match the
                active record.
            OrderingViolationError: Clock-out not later than the active
                record's punch-in.
            ExternalError: Any Salesforce failure, unchanged.
        """
        active = await gateway.find_active_record(event.subject_id)

        if event.clock_out is None:
            if active is not None:
                logger.info(
                    "Subject %s already clocked in (record %s)", event.subject_id, active.record_id
                )
                return ReconcileOutcome(
                    action=ReconcileAction.ALREADY_ACTIVE,
                    record_id=active.record_id,
                    existing_record=active,
                )

            name = record_name(event.subject_id, event.clock_in, event.timezone_hint)
            record_id = await gateway.create_record(
                subject_id=event.subject_id,
                punch_in=event.clock_in,
                is_remote=event.is_remote,
                name=name,
            )
            logger.info("Created punch record %s for %s", record_id, event.subject_id)
            return ReconcileOutcome(action=ReconcileAction.CREATED, record_id=record_id, name=name)

        if active is None:
            raise NoActiveRecordError(
                f"No active punch record found for {event.subject_id}"
            )

        if not self.punch_in_matches(active, event.clock_in):
            raise ClockInMismatchError(
                f"Active record {active.record_id} punched in at {active.punch_in.isoformat()}, "
                f"request says {event.clock_in.isoformat()}"
            )

        if event.clock_out <= active.punch_in:
            raise OrderingViolationError(
                f"Clock-out {event.clock_out.isoformat()} is not after active record "
                f"{active.record_id} punch-in {active.punch_in.isoformat()}"
            )

        await gateway.close_record(active.record_id, event.clock_out)
        logger.info("Closed punch record %s for %s", active.record_id, event.subject_id)
        return ReconcileOutcome(
            action=ReconcileAction.CLOSED,
            record_id=active.record_id,
            name=active.name,
        )
