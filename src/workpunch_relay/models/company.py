# src/workpunch_relay/models/company.py
"""SQLAlchemy model for a connected Salesforce organization."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from workpunch_relay.db.session import Base
from workpunch_relay.db.time import utcnow


class Company(Base):
    """Tenant record holding the Salesforce credentials for one organization.

    Rows are created in a pending state by the connect flow (tokens null) and
    completed by the OAuth callback.
    """

    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    organization_code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    company_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_domain: Mapped[str | None] = mapped_column(Text, nullable=True)
    salesforce_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    salesforce_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    salesforce_instance_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def is_connected(self) -> bool:
        """Return True when the organization has usable Salesforce credentials."""
        return bool(self.salesforce_access_token and self.salesforce_instance_url)
