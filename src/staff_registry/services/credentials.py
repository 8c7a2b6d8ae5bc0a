"""Login credentials for staff records.

Credentials are minted after the record write that creates a staff member
has committed. Issuance is best-effort from the writer's point of view: a
failure here is reported to the caller but never undoes the record.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from staff_registry.core import security
from staff_registry.core.errors import (
    AuthenticationError,
    CredentialIssuanceError,
    RecordNotFoundError,
)
from staff_registry.models import StaffUser
from staff_registry.schemas.staff import IssuedCredential

logger = logging.getLogger(__name__)

MAX_USERNAME_ATTEMPTS = 10


class CredentialIssuer:
    """Mints, verifies and resets staff login credentials."""

    def __init__(self, max_username_attempts: int = MAX_USERNAME_ATTEMPTS) -> None:
        self.max_username_attempts = max_username_attempts

    @staticmethod
    def get_by_global_id(db: Session, global_staff_id: int) -> StaffUser | None:
        return db.execute(
            select(StaffUser).where(StaffUser.global_staff_id == global_staff_id)
        ).scalar_one_or_none()

    @staticmethod
    def get_by_username(db: Session, username: str) -> StaffUser | None:
        return db.execute(
            select(StaffUser).where(StaffUser.username == username)
        ).scalar_one_or_none()

    def _unique_username(self, db: Session, name: str) -> str:
        for _ in range(self.max_username_attempts):
            candidate = security.generate_username(name)
            if self.get_by_username(db, candidate) is None:
                return candidate
        raise CredentialIssuanceError(
            "Unable to generate unique username", detail=f"name={name!r}"
        )

    def issue(
        self,
        db: Session,
        global_staff_id: int,
        name: str,
        staff_type: str,
        class_name: str,
    ) -> IssuedCredential | None:
        """Create the credential of a staff record.

        Returns ``None`` when the record already has a credential.

        Raises:
            CredentialIssuanceError: If no unique username could be found or
                any credential lookup or write failed in the database.
        """
        try:
            if self.get_by_global_id(db, global_staff_id) is not None:
                logger.info("User already exists for global_staff_id: %s", global_staff_id)
                return None

            username = self._unique_username(db, name)
            password = security.generate_password()
            user = StaffUser(
                global_staff_id=global_staff_id,
                username=username,
                password_hash=security.hash_password(password),
                staff_type=staff_type,
                class_name=class_name,
            )
            db.add(user)
            db.commit()
        except IntegrityError as err:
            db.rollback()
            raise CredentialIssuanceError(
                "Credential collided with an existing account", detail=str(err.orig)
            ) from err
        except SQLAlchemyError as err:
            db.rollback()
            raise CredentialIssuanceError(
                "Failed to store credential", detail=str(err)
            ) from err

        logger.info("Created staff user account for %s: username=%s", name, username)
        return IssuedCredential(
            username=username,
            password=password,
            global_staff_id=global_staff_id,
        )

    def verify(self, db: Session, username: str, password: str) -> StaffUser:
        """Return the credential matching a username/password pair.

        Raises:
            AuthenticationError: If the pair does not verify.
        """
        user = self.get_by_username(db, username)
        if user is None or not security.verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        return user

    def reset_password(self, db: Session, global_staff_id: int) -> tuple[StaffUser, str]:
        """Replace a credential's password and return the new plain value."""
        user = self.get_by_global_id(db, global_staff_id)
        if user is None:
            raise RecordNotFoundError("Staff user not found", detail=f"global_staff_id={global_staff_id}")
        password = security.generate_password()
        user.password_hash = security.hash_password(password)
        db.commit()
        logger.info("Password reset for user: %s (global_staff_id: %s)", user.username, global_staff_id)
        return user, password

    @staticmethod
    def list_users(db: Session) -> list[StaffUser]:
        """Return every credential, newest first."""
        return list(
            db.execute(
                select(StaffUser).order_by(StaffUser.created_at.desc(), StaffUser.id.desc())
            ).scalars()
        )

    @staticmethod
    def remove(db: Session, global_staff_id: int) -> int:
        """Delete the credential of a record inside the caller's transaction."""
        return (
            db.query(StaffUser)
            .filter(StaffUser.global_staff_id == global_staff_id)
            .delete(synchronize_session=False)
        )

    @staticmethod
    def describe(user: StaffUser) -> dict[str, Any]:
        """Public view of a credential used in login and profile responses."""
        return {
            "id": user.global_staff_id,
            "username": user.username,
            "role": "teacher" if user.staff_type == "Teachers" else "staff",
            "staffType": user.staff_type,
            "className": user.class_name,
        }


_issuer: CredentialIssuer | None = None


def get_credential_issuer() -> CredentialIssuer:
    """Return the process-wide credential issuer."""
    global _issuer
    if _issuer is None:
        _issuer = CredentialIssuer()
    return _issuer
