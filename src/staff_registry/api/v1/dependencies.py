"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from staff_registry.core.security import decode_access_token
from staff_registry.db.session import get_db
from staff_registry.models import StaffUser
from staff_registry.services.credentials import CredentialIssuer, get_credential_issuer

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_issuer_dep() -> CredentialIssuer:
    return get_credential_issuer()


IssuerDep = Annotated[CredentialIssuer, Depends(get_issuer_dep)]


def get_current_staff(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
    issuer: IssuerDep,
) -> StaffUser:
    """Get the authenticated staff credential from a JWT bearer token.

    Raises:
        HTTPException: If the token is invalid or the account no longer exists.
    """
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not isinstance(subject, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = issuer.get_by_username(db, subject)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user
