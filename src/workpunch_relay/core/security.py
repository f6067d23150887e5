"""Signed OAuth ``state`` tokens.

The state parameter of the Salesforce authorization URL is a short-lived JWT
naming the organization being connected, so the callback can be tied back
to the connect request without server-side state.
"""
from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from workpunch_relay.core.settings import settings

_STATE_PURPOSE = "salesforce-connect"


class InvalidStateError(ValueError):
    """Raised when an OAuth state token is malformed, forged or expired."""


def create_state_token(organization_code: str, *, ttl_seconds: int | None = None) -> str:
    """Create a signed state token for ``organization_code``."""
    ttl = settings.oauth_state_ttl_seconds if ttl_seconds is None else ttl_seconds
    now = datetime.now(UTC)
    claims: dict[str, object] = {
        "sub": organization_code,
        "purpose": _STATE_PURPOSE,
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
        "nonce": secrets.token_hex(8),
    }
    encoded: str = jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded


def decode_state_token(token: str) -> str:
    """Return the organization code carried by a valid state token.

    Raises:
        InvalidStateError: If the signature, purpose or expiry check fails.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise InvalidStateError("Invalid or expired OAuth state") from err

    subject = payload.get("sub")
    if payload.get("purpose") != _STATE_PURPOSE or not subject:
        raise InvalidStateError("OAuth state was not issued for a Salesforce connection")
    return str(subject)
