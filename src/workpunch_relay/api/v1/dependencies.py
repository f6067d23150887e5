"""Shared API dependencies for the v1 endpoints."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from workpunch_relay.api.middleware import get_request_id
from workpunch_relay.db.session import get_db
from workpunch_relay.services.clock_sync import GatewayFactory, default_gateway_factory
from workpunch_relay.services.credentials import CredentialStore
from workpunch_relay.services.locks import LockManager, get_lock_manager
from workpunch_relay.services.oauth import SalesforceOAuthClient, get_oauth_client

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_lock_manager_dep() -> LockManager:
    """Return the lock manager bound to the application database."""
    return get_lock_manager()


def get_gateway_factory() -> GatewayFactory:
    """Return the factory that builds a Salesforce gateway per tenant."""
    return default_gateway_factory


def get_oauth_client_dep() -> SalesforceOAuthClient:
    """Return the Salesforce OAuth client."""
    return get_oauth_client()


def get_credential_store(db: SessionDep) -> CredentialStore:
    """Return a credential store on the request's session."""
    return CredentialStore(db)


def get_request_id_dep(request: Request) -> str:
    return get_request_id(request)


LockManagerDep = Annotated[LockManager, Depends(get_lock_manager_dep)]
GatewayFactoryDep = Annotated[GatewayFactory, Depends(get_gateway_factory)]
OAuthClientDep = Annotated[SalesforceOAuthClient, Depends(get_oauth_client_dep)]
CredentialStoreDep = Annotated[CredentialStore, Depends(get_credential_store)]
RequestIdDep = Annotated[str, Depends(get_request_id_dep)]
