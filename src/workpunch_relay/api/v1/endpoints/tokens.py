"""Stored credential management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from workpunch_relay.models import Company
from workpunch_relay.schemas.common import MessageResponse
from workpunch_relay.schemas.company import CompanyResponse, TokenUpsertRequest
from workpunch_relay.services.oauth import OAuthTokens

from ..dependencies import CredentialStoreDep, OAuthClientDep

router = APIRouter(prefix="/tokens", tags=["tokens"])

_VISIBLE_TOKEN_CHARS = 4


def _redact(token: str | None) -> str | None:
    if not token:
        return None
    return f"****{token[-_VISIBLE_TOKEN_CHARS:]}"


def _to_response(company: Company) -> CompanyResponse:
    return CompanyResponse(
        organization_code=company.organization_code,
        company_name=company.company_name,
        company_domain=company.company_domain,
        instance_url=company.salesforce_instance_url,
        access_token=_redact(company.salesforce_access_token),
        has_refresh_token=bool(company.salesforce_refresh_token),
        connected=company.is_connected,
    )


def _get_company_or_404(credentials: CredentialStoreDep, organization_code: str) -> Company:
    company = credentials.get_company(organization_code)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


@router.post("", response_model=CompanyResponse)
async def store_tokens(
    payload: TokenUpsertRequest,
    credentials: CredentialStoreDep,
) -> CompanyResponse:
    """Store Salesforce tokens for a company, creating it when needed."""
    company = credentials.store_tokens(
        OAuthTokens(
            access_token=payload.access_token,
            refresh_token=payload.refresh_token,
            instance_url=payload.instance_url,
        ),
        organization_code=payload.organization_code,
        company_name=payload.company_name,
        company_domain=payload.company_domain,
    )
    return _to_response(company)


@router.get("/{organization_code}", response_model=CompanyResponse)
async def get_tokens(organization_code: str, credentials: CredentialStoreDep) -> CompanyResponse:
    """Return a company's connection details with tokens redacted."""
    return _to_response(_get_company_or_404(credentials, organization_code))


@router.delete("/{organization_code}", response_model=MessageResponse)
async def invalidate_tokens(
    organization_code: str,
    credentials: CredentialStoreDep,
) -> MessageResponse:
    """Invalidate a company's stored tokens."""
    if not credentials.invalidate(organization_code):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return MessageResponse(message="Tokens invalidated successfully")


@router.post("/{organization_code}/refresh", response_model=CompanyResponse)
async def refresh_tokens(
    organization_code: str,
    credentials: CredentialStoreDep,
    oauth_client: OAuthClientDep,
) -> CompanyResponse:
    """Exchange the stored refresh token for a new access token."""
    company = _get_company_or_404(credentials, organization_code)
    if not company.salesforce_refresh_token:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No refresh token stored; reconnect the organization",
        )

    tokens = await oauth_client.refresh_access_token(company.salesforce_refresh_token)
    company = credentials.store_tokens(tokens, organization_code=organization_code)
    return _to_response(company)
