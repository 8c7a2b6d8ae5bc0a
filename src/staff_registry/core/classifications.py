"""Staff classifications and the namespaces derived from them."""

from __future__ import annotations

import re
from typing import Final

from staff_registry.core.errors import ValidationError

STAFF_TYPES: Final[tuple[str, ...]] = (
    "Teachers",
    "Administrative Staff",
    "Supportive Staff",
)

_WHITESPACE = re.compile(r"\s+")


def schema_name_for(staff_type: str | None) -> str:
    """Return the namespace name for a staff classification.

    Raises:
        ValidationError: If ``staff_type`` is not a known classification.
    """
    if not staff_type or staff_type not in STAFF_TYPES:
        raise ValidationError(
            "Invalid staff type",
            detail=f"Expected one of: {', '.join(STAFF_TYPES)}",
        )
    return "staff_" + _WHITESPACE.sub("_", staff_type).lower()


def all_schema_names() -> list[str]:
    """Return the namespace of every known classification."""
    return [schema_name_for(staff_type) for staff_type in STAFF_TYPES]
