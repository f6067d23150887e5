# src/workpunch_relay/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .clock import router as clock_router
from .employees import router as employees_router
from .oauth import router as oauth_router
from .system import router as system_router
from .tokens import router as tokens_router

__all__ = [
    "clock_router",
    "employees_router",
    "oauth_router",
    "system_router",
    "tokens_router",
]
