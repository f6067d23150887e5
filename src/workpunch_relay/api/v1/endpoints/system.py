"""System and diagnostics endpoints."""

from __future__ import annotations

import time

from fastapi import APIRouter
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from workpunch_relay.api.middleware import server_state
from workpunch_relay.core.settings import settings
from workpunch_relay.models import SyncLock
from workpunch_relay.services.salesforce import get_gateway_metrics

from ..dependencies import SessionDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health")
async def get_system_health(db: SessionDep) -> dict[str, object]:
    """Health check including database connectivity.

    Returns:
        Dictionary with overall status, component health, and version info
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e}"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {"database": db_status},
        "version": settings.app_version,
    }


@router.get("/metrics")
async def get_system_metrics(db: SessionDep) -> dict[str, object]:
    """Diagnostic counters: requests served, Salesforce calls and held locks."""
    held_locks = db.execute(select(func.count()).select_from(SyncLock)).scalar_one()
    return {
        "timestamp": int(time.time()),
        "server": server_state.snapshot(),
        "salesforce": get_gateway_metrics().snapshot(),
        "locks": {
            "held": int(held_locks),
            "stale_after_seconds": settings.lock_stale_after_seconds,
        },
    }
