# src/staff_registry/services/__init__.py
"""Business logic services for the staff registry."""

from .credentials import CredentialIssuer, get_credential_issuer
from .record_writer import BatchOutcome, InsertOutcome

__all__ = [
    "CredentialIssuer",
    "get_credential_issuer",
    "InsertOutcome",
    "BatchOutcome",
]
