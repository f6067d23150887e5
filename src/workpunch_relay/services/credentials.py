"""Salesforce credential storage backed by the ``companies`` table."""

from __future__ import annotations

import logging
import secrets
import time

from sqlalchemy.orm import Session

from workpunch_relay.models import Company
from workpunch_relay.services.errors import CredentialsNotFoundError
from workpunch_relay.services.oauth import OAuthTokens
from workpunch_relay.services.salesforce import Credential

logger = logging.getLogger(__name__)


def generate_organization_code() -> str:
    """Return a new tenant key of the form ``org_<millis><hex>``."""
    return f"org_{int(time.time() * 1000)}{secrets.token_hex(3)}"


class CredentialStore:
    """Read and write per-organization Salesforce credentials.

    Reads are safe to share between concurrent requests; each request uses
    its own session.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_company(self, organization_code: str) -> Company | None:
        return (
            self.db.query(Company)
            .filter(Company.organization_code == organization_code)
            .first()
        )

    def latest_connected_company(self) -> Company | None:
        """Return the most recently created company that holds tokens."""
        return (
            self.db.query(Company)
            .filter(
                Company.salesforce_access_token.is_not(None),
                Company.salesforce_instance_url.is_not(None),
            )
            .order_by(Company.created_at.desc(), Company.id.desc())
            .first()
        )

    def get_credentials(
        self,
        organization_code: str | None = None,
        *,
        company_domain: str | None = None,
    ) -> Credential:
        """Resolve the credential for a tenant.

        With no ``organization_code`` the most recently connected company is
        used, which covers single-company deployments. A ``company_domain``
        must match the resolved company's domain.

        Raises:
            CredentialsNotFoundError: If no connected company matches.
        """
        if organization_code:
            company = self.get_company(organization_code)
        else:
            company = self.latest_connected_company()

        if (
            company is None
            or not company.is_connected
            or (company_domain is not None and company.company_domain != company_domain)
        ):
            raise CredentialsNotFoundError(
                "Company not authorized for this organization"
                if organization_code
                else "No Salesforce organization has been connected"
            )

        return Credential(
            access_token=company.salesforce_access_token or "",
            instance_url=company.salesforce_instance_url or "",
        )

    def create_pending(self, company_domain: str, company_name: str | None = None) -> Company:
        """Create a company awaiting OAuth authorization."""
        company = Company(
            organization_code=generate_organization_code(),
            company_domain=company_domain,
            company_name=company_name or company_domain.split(".", 1)[0],
        )
        self.db.add(company)
        self.db.commit()
        self.db.refresh(company)
        logger.info("Created pending company %s for %s", company.organization_code, company_domain)
        return company

    def store_tokens(
        self,
        tokens: OAuthTokens,
        *,
        organization_code: str | None = None,
        company_name: str | None = None,
        company_domain: str | None = None,
    ) -> Company:
        """Insert or update the credentials of an organization."""
        company = self.get_company(organization_code) if organization_code else None
        if company is None:
            company = Company(organization_code=organization_code or generate_organization_code())
            self.db.add(company)

        if company_name is not None:
            company.company_name = company_name
        if company_domain is not None:
            company.company_domain = company_domain
        company.salesforce_access_token = tokens.access_token
        if tokens.refresh_token:
            company.salesforce_refresh_token = tokens.refresh_token
        company.salesforce_instance_url = tokens.instance_url

        self.db.commit()
        self.db.refresh(company)
        logger.info("Stored Salesforce tokens for %s", company.organization_code)
        return company

    def invalidate(self, organization_code: str) -> bool:
        """Clear stored tokens. Returns False if the organization is unknown."""
        company = self.get_company(organization_code)
        if company is None:
            return False
        company.salesforce_access_token = None
        company.salesforce_refresh_token = None
        self.db.commit()
        logger.info("Invalidated Salesforce tokens for %s", organization_code)
        return True
