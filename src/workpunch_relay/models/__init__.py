# src/workpunch_relay/models/__init__.py
"""SQLAlchemy models for the Workpunch relay."""

from .company import Company
from .sync_lock import SyncLock

__all__ = [
    "Company",
    "SyncLock",
]
