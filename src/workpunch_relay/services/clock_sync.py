"""Clock synchronization service.

Runs one sync request end to end: take the subject's lock, normalize the
timestamps, resolve the tenant credential, reconcile against Salesforce and
release the lock on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from workpunch_relay.services.errors import SyncError
from workpunch_relay.services.locks import LockManager
from workpunch_relay.services.reconciler import (
    ClockEvent,
    ReconcileAction,
    Reconciler,
    RecordGateway,
)
from workpunch_relay.services.salesforce import (
    Credential,
    ExternalPunchRecord,
    SalesforceGateway,
)
from workpunch_relay.services.time_normalizer import normalize

logger = logging.getLogger(__name__)

class PunchRecordGateway(RecordGateway, Protocol):
    """Reconciler operations plus the full record listing used by reports."""

    async def list_punch_records(self) -> list[ExternalPunchRecord]: ...


# Builds a gateway for one tenant; used as ``async with factory(credential) as gw``.
GatewayFactory = Callable[[Credential], AbstractAsyncContextManager[PunchRecordGateway]]


class CredentialLookup(Protocol):
    def get_credentials(self, organization_code: str | None = None) -> Credential: ...


class SyncStatus(str, Enum):
    CREATED = "created"
    CLOSED = "closed"
    ALREADY_ACTIVE = "already_active"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True)
class ClockSyncRequest:
    """Raw clock event as received from a client."""

    subject_id: str
    clock_in: str
    clock_out: str | None
    is_remote: bool
    timezone_hint: str | None = None
    time_zone: str | None = None
    organization_code: str | None = None


@dataclass(frozen=True)
class SyncResult:
    """Successful outcome of one sync request."""

    status: SyncStatus
    record_id: str | None = None
    existing_record: ExternalPunchRecord | None = None

    @property
    def message(self) -> str | None:
        if self.status is SyncStatus.ALREADY_ACTIVE:
            return "already active"
        if self.status is SyncStatus.IN_PROGRESS:
            return "sync already in progress"
        return None


_ACTION_STATUS = {
    ReconcileAction.CREATED: SyncStatus.CREATED,
    ReconcileAction.CLOSED: SyncStatus.CLOSED,
    ReconcileAction.ALREADY_ACTIVE: SyncStatus.ALREADY_ACTIVE,
}


def default_gateway_factory(credential: Credential) -> SalesforceGateway:
    return SalesforceGateway(credential)


class ClockSyncService:
    """Serializes and executes clock syncs for one subject at a time."""

    def __init__(
        self,
        *,
        lock_manager: LockManager,
        credentials: CredentialLookup,
        gateway_factory: GatewayFactory = default_gateway_factory,
        reconciler: Reconciler | None = None,
    ) -> None:
        self.lock_manager = lock_manager
        self.credentials = credentials
        self.gateway_factory = gateway_factory
        self.reconciler = reconciler or Reconciler()

    async def sync(self, request: ClockSyncRequest, *, correlation_id: str = "-") -> SyncResult:
        """Synchronize one clock event.

        A request that finds the subject's lock taken returns
        ``SyncStatus.IN_PROGRESS`` without touching Salesforce.

        Raises:
            SyncError: Any validation, conflict, credential or external
                failure. The lock has been released by the time it propagates.
        """
        subject_id = request.subject_id
        # Lock sessions are blocking database work; keep them off the event loop.
        if await asyncio.to_thread(self.lock_manager.acquire, subject_id) is None:
            logger.info("[%s] sync for %s skipped: already in progress", correlation_id, subject_id)
            return SyncResult(status=SyncStatus.IN_PROGRESS)

        try:
            times = normalize(
                request.clock_in,
                request.clock_out,
                request.timezone_hint,
                time_zone=request.time_zone,
            )
            event = ClockEvent(
                subject_id=subject_id,
                clock_in=times.clock_in,
                clock_out=times.clock_out,
                is_remote=request.is_remote,
                timezone_hint=request.timezone_hint,
            )
            credential = self.credentials.get_credentials(request.organization_code)

            async with self.gateway_factory(credential) as gateway:
                outcome = await self.reconciler.reconcile(event, gateway)
        except SyncError as exc:
            logger.warning(
                "[%s] sync for %s rejected: %s: %s",
                correlation_id,
                subject_id,
                exc.kind,
                exc.message,
            )
            raise
        except Exception:
            logger.error(
                "[%s] sync for %s failed unexpectedly", correlation_id, subject_id, exc_info=True
            )
            raise
        finally:
            await self._release(subject_id, correlation_id)

        logger.info(
            "[%s] sync for %s: %s record %s",
            correlation_id,
            subject_id,
            outcome.action.value,
            outcome.record_id,
        )
        return SyncResult(
            status=_ACTION_STATUS[outcome.action],
            record_id=outcome.record_id,
            existing_record=outcome.existing_record,
        )

    async def _release(self, subject_id: str, correlation_id: str) -> None:
        # Never raises: the staleness sweep reclaims a row left behind.
        try:
            await asyncio.to_thread(self.lock_manager.release, subject_id)
        except SQLAlchemyError:
            logger.error(
                "[%s] failed to release sync lock for %s; the staleness sweep will reclaim it",
                correlation_id,
                subject_id,
                exc_info=True,
            )
