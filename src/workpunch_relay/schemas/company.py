"""Company credential Pydantic schemas."""
from __future__ import annotations

from pydantic import Field

from .common import CamelModel


class TokenUpsertRequest(CamelModel):
    """Schema for storing Salesforce tokens directly."""

    company_name: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    instance_url: str = Field(..., min_length=1)
    organization_code: str | None = None
    company_domain: str | None = None


class CompanyResponse(CamelModel):
    """Schema for company information; token values are redacted."""

    organization_code: str
    company_name: str | None
    company_domain: str | None
    instance_url: str | None
    access_token: str | None
    has_refresh_token: bool
    connected: bool
