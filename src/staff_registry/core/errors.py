"""Domain exceptions raised by the staff registry services.

Every exception carries a human-readable message, an optional underlying
detail and the HTTP status code the API layer should answer with.
"""

from __future__ import annotations

from collections.abc import Iterable


class StaffRegistryError(Exception):
    """Base exception for all staff registry failures."""

    status_code: int = 500

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, str | None]:
        """Return the JSON body used for error responses."""
        return {"error": self.message, "details": self.detail}


class ValidationError(StaffRegistryError):
    """Raised when caller-supplied input is rejected before any write."""

    status_code = 400


class InvalidNameError(ValidationError):
    """Raised when a table or column name contains disallowed characters."""


class UnsupportedFieldTypeError(ValidationError):
    """Raised when a field descriptor declares an unknown semantic type."""


class _ColumnListError(ValidationError):
    label = ""

    def __init__(self, columns: Iterable[str]) -> None:
        # Keep first-seen order while removing duplicates.
        self.columns = list(dict.fromkeys(columns))
        super().__init__(f"{self.label}: {', '.join(self.columns)}")


class InvalidColumnError(_ColumnListError):
    """Raised when submitted rows reference columns the table does not have."""

    label = "Invalid columns"


class MissingRequiredFieldError(_ColumnListError):
    """Raised when submitted rows omit a value for a non-nullable column."""

    label = "Missing required fields"


class DuplicateTableError(StaffRegistryError):
    """Raised when a classification already has a provisioned table."""

    status_code = 409


class TableNotFoundError(StaffRegistryError):
    """Raised when the requested form table does not exist."""

    status_code = 404


class RecordNotFoundError(StaffRegistryError):
    """Raised when no record matches the requested global identifier."""

    status_code = 404


class DependencyError(StaffRegistryError):
    """Raised when the database or another backing store fails mid-operation."""

    status_code = 500


class CredentialIssuanceError(StaffRegistryError):
    """Raised when a login credential cannot be minted for a record.

    Never surfaced as an HTTP failure of the surrounding write; callers log it
    and report a partial success instead.
    """

    status_code = 500


class AuthenticationError(StaffRegistryError):
    """Raised when a username/password pair does not verify."""

    status_code = 401
