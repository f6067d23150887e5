# src/workpunch_relay/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .clock import PunchRecordResponse, SyncClockRequest, SyncClockResponse
from .common import CamelModel, ErrorResponse, MessageResponse
from .company import CompanyResponse, TokenUpsertRequest
from .oauth import CallbackResponse, ConnectionStatusResponse, ConnectRequest, ConnectResponse

__all__ = [
    "CamelModel", "ErrorResponse", "MessageResponse",
    "PunchRecordResponse", "SyncClockRequest", "SyncClockResponse",
    "CompanyResponse", "TokenUpsertRequest",
    "CallbackResponse", "ConnectionStatusResponse", "ConnectRequest", "ConnectResponse",
]
