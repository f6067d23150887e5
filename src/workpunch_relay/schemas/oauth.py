"""Salesforce connection Pydantic schemas."""
from __future__ import annotations

from pydantic import Field

from .common import CamelModel


class ConnectRequest(CamelModel):
    company_domain: str = Field(..., min_length=1)


class ConnectResponse(CamelModel):
    success: bool = True
    organization_code: str
    auth_url: str


class CallbackResponse(CamelModel):
    success: bool = True
    organization_code: str
    message: str


class ConnectionStatusResponse(CamelModel):
    connected: bool
    message: str
