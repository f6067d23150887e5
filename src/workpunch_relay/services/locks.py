"""Per-subject advisory locks backed by the ``user_locks`` table.

A lock row exists while one request is reconciling a subject's clock event.
Acquisition is an atomic insert keyed by the subject; a primary-key conflict
means another request already holds the lock. Rows left behind by crashed
holders are reclaimed by a staleness sweep that runs before every
acquisition attempt, so a leaked lock blocks its subject for at most
``LOCK_STALE_AFTER_SECONDS``.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy import delete, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workpunch_relay.core.settings import settings
from workpunch_relay.db.session import SessionLocal
from workpunch_relay.db.time import utcnow
from workpunch_relay.models import SyncLock

logger = logging.getLogger(__name__)


class LockManager:
    """Grants and releases per-subject sync locks.

    Every operation runs in its own short-lived session and commits before
    returning, so a granted lock is visible to concurrent requests before the
    holder makes any external call.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        *,
        stale_after_seconds: int | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self.stale_after = timedelta(
            seconds=(
                settings.lock_stale_after_seconds
                if stale_after_seconds is None
                else stale_after_seconds
            )
        )

    def acquire(self, subject_id: str, *, now: datetime | None = None) -> str | None:
        """Try to take the lock for ``subject_id``.

        Returns:
            A fresh lock token, or None when another request holds the lock.
        """
        now = now or utcnow()
        self.sweep_stale(now=now)

        token = secrets.token_hex(16)
        with self._session_factory() as db:
            try:
                db.execute(
                    insert(SyncLock).values(user_id=subject_id, lock_id=token, created_at=now)
                )
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info("Sync lock for %s is already held", subject_id)
                return None

        logger.debug("Acquired sync lock for %s", subject_id)
        return token

    def release(self, subject_id: str) -> None:
        """Delete the lock row for ``subject_id`` regardless of its token."""
        with self._session_factory() as db:
            db.execute(delete(SyncLock).where(SyncLock.user_id == subject_id))
            db.commit()
        logger.debug("Released sync lock for %s", subject_id)

    def sweep_stale(self, *, now: datetime | None = None) -> int:
        """Delete locks older than the staleness threshold.

        Returns:
            Number of reclaimed locks.
        """
        cutoff = (now or utcnow()) - self.stale_after
        with self._session_factory() as db:
            result = db.execute(delete(SyncLock).where(SyncLock.created_at < cutoff))
            db.commit()
        reclaimed = int(result.rowcount or 0)
        if reclaimed:
            logger.warning("Reclaimed %d stale sync lock(s) older than %s", reclaimed, cutoff)
        return reclaimed


def get_lock_manager() -> LockManager:
    """Return a lock manager bound to the application session factory."""
    return LockManager()
