"""Clock synchronization endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from workpunch_relay.schemas.clock import (
    PunchRecordResponse,
    SyncClockRequest,
    SyncClockResponse,
)
from workpunch_relay.schemas.common import ErrorResponse
from workpunch_relay.services.clock_sync import ClockSyncRequest, ClockSyncService, SyncStatus

from ..dependencies import CredentialStoreDep, GatewayFactoryDep, LockManagerDep, RequestIdDep

router = APIRouter(tags=["clock"])


@router.post(
    "/sync-clock",
    response_model=SyncClockResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid timestamps or clock-in mismatch"},
        401: {"model": ErrorResponse, "description": "Salesforce credential rejected"},
        404: {"model": ErrorResponse, "description": "No active record or no credentials"},
        500: {"model": ErrorResponse, "description": "Salesforce failure"},
    },
)
async def sync_clock(
    payload: SyncClockRequest,
    lock_manager: LockManagerDep,
    credentials: CredentialStoreDep,
    gateway_factory: GatewayFactoryDep,
    request_id: RequestIdDep,
) -> SyncClockResponse:
    """Forward one clock-in or clock-out to Salesforce.

    A clock-in creates an active punch record unless one already exists; a
    clock-out closes the active record whose punch-in matches. Duplicate
    submissions that arrive while another sync for the same subject is in
    flight succeed without doing anything.
    """
    service = ClockSyncService(
        lock_manager=lock_manager,
        credentials=credentials,
        gateway_factory=gateway_factory,
    )
    result = await service.sync(
        ClockSyncRequest(
            subject_id=payload.subject_id,
            clock_in=payload.clock_in,
            clock_out=payload.clock_out,
            is_remote=payload.is_remote,
            timezone_hint=payload.timezone_hint,
            time_zone=payload.time_zone,
            organization_code=payload.organization_code,
        ),
        correlation_id=request_id,
    )

    if result.status is SyncStatus.ALREADY_ACTIVE and result.existing_record is not None:
        return SyncClockResponse(
            message=result.message,
            existing_record=PunchRecordResponse.model_validate(
                result.existing_record.to_payload()
            ),
        )
    if result.status is SyncStatus.IN_PROGRESS:
        return SyncClockResponse(message=result.message)
    return SyncClockResponse(record_id=result.record_id)
