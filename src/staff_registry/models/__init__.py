# src/staff_registry/models/__init__.py
"""SQLAlchemy models for the fixed staff registry tables."""

from .counter import COUNTER_ROW_ID, StaffCounter
from .staff_form import StaffForm, StaffFormField
from .staff_user import StaffUser

__all__ = [
    "COUNTER_ROW_ID", "StaffCounter",
    "StaffForm", "StaffFormField",
    "StaffUser",
]
