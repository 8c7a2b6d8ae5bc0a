"""Password hashing, credential generation and access tokens."""
from __future__ import annotations

import re
import secrets
import string
from datetime import UTC, datetime, timedelta

from jose import jwt
from passlib.context import CryptContext

from staff_registry.core.settings import settings

PASSWORD_LENGTH = 8
PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def hash_password(password: str) -> str:
    """Return a bcrypt hash of ``password``."""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored hash; malformed hashes never verify."""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """Return a random password drawn from letters, digits and symbols."""
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def generate_username(name: str) -> str:
    """Derive a candidate username: the alphanumeric name plus a 3-digit suffix."""
    base = _NON_ALNUM.sub("", name).lower() or "staff"
    return f"{base}{secrets.randbelow(1000):03d}"


def create_access_token(subject: str, extra_claims: dict[str, object] | None = None) -> str:
    """Create a signed JWT for an authenticated staff member."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, object]:
    """Decode and verify a JWT, raising ``jose.JWTError`` when invalid."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
