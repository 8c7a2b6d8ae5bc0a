# src/staff_registry/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .staff import router as staff_router
from .system import router as system_router

__all__ = [
    "staff_router",
    "system_router",
]
