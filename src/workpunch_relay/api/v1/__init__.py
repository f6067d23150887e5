# src/workpunch_relay/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    clock_router,
    employees_router,
    oauth_router,
    system_router,
    tokens_router,
)

__all__ = [
    "clock_router",
    "employees_router",
    "oauth_router",
    "system_router",
    "tokens_router",
]
