"""Salesforce connection endpoints (OAuth 2.0 authorization-code flow).

The flow:
  1. POST /connect
     - Creates a pending company and its organization code.
     - Returns the Salesforce authorization URL; its ``state`` is a signed
       token naming the organization code.

  2. GET /callback
     - Validates the state, exchanges the authorization code for tokens and
       stores them on the company. Token values are never logged.

  3. GET /connection-status
     - Reports whether an organization holds usable credentials.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from workpunch_relay.core.security import InvalidStateError, create_state_token, decode_state_token
from workpunch_relay.schemas.oauth import (
    CallbackResponse,
    ConnectionStatusResponse,
    ConnectRequest,
    ConnectResponse,
)

from ..dependencies import CredentialStoreDep, OAuthClientDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


@router.post("/connect", response_model=ConnectResponse)
async def connect_salesforce(
    payload: ConnectRequest,
    credentials: CredentialStoreDep,
    oauth_client: OAuthClientDep,
) -> ConnectResponse:
    """Start connecting a company's Salesforce organization."""
    company = credentials.create_pending(payload.company_domain)
    state = create_state_token(company.organization_code)
    return ConnectResponse(
        organization_code=company.organization_code,
        auth_url=oauth_client.authorization_url(state),
    )


@router.get("/callback", response_model=CallbackResponse)
async def oauth_callback(
    credentials: CredentialStoreDep,
    oauth_client: OAuthClientDep,
    code: Annotated[str | None, Query(description="Authorization code from Salesforce.")] = None,
    state: Annotated[str | None, Query(description="Signed state from /connect.")] = None,
    error: Annotated[str | None, Query(description="OAuth error code from Salesforce.")] = None,
) -> CallbackResponse:
    """Complete the OAuth flow and persist the organization's tokens."""
    if error:
        logger.warning("Salesforce authorization denied: %s", error)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Salesforce authorization failed: {error}",
        )
    if not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Authorization code is missing",
        )
    if not state:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="OAuth state is missing",
        )

    try:
        organization_code = decode_state_token(state)
    except InvalidStateError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err

    if credentials.get_company(organization_code) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Company information not found",
        )

    tokens = await oauth_client.exchange_authorization_code(code)
    credentials.store_tokens(tokens, organization_code=organization_code)
    logger.info("Salesforce connected for %s", organization_code)

    return CallbackResponse(
        organization_code=organization_code,
        message=(
            "Salesforce successfully connected! "
            f"Your organization code is: {organization_code}"
        ),
    )


@router.get("/connection-status", response_model=ConnectionStatusResponse)
async def connection_status(
    credentials: CredentialStoreDep,
    organization_code: Annotated[str, Query(alias="organizationCode", min_length=1)],
    company_domain: Annotated[str | None, Query(alias="companyDomain")] = None,
) -> ConnectionStatusResponse:
    """Report whether an organization is connected to Salesforce."""
    company = credentials.get_company(organization_code)
    if (
        company is None
        or not company.is_connected
        or (company_domain is not None and company.company_domain != company_domain)
    ):
        return ConnectionStatusResponse(connected=False, message="Not connected to Salesforce")
    return ConnectionStatusResponse(connected=True, message="Connected to Salesforce")
