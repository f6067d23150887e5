"""Advisory per-subject lock used to serialize clock synchronization."""

from datetime import datetime

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from workpunch_relay.db.session import Base
from workpunch_relay.db.time import utcnow


class SyncLock(Base):
    """Existence of a row means a sync for ``user_id`` is in flight."""

    __tablename__ = "user_locks"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    lock_id: Mapped[str] = mapped_column(Text, nullable=False)
    # Indexed for the staleness sweep.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
