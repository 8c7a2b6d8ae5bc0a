# src/staff_registry/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import staff_router, system_router

__all__ = [
    "staff_router",
    "system_router",
]
