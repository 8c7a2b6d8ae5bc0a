"""Tests for staff credential issuance and verification."""

import re

import pytest
from sqlalchemy.orm import Session

from staff_registry.core import security
from staff_registry.core.errors import (
    AuthenticationError,
    CredentialIssuanceError,
    RecordNotFoundError,
)
from staff_registry.models import StaffUser
from staff_registry.services.credentials import CredentialIssuer


@pytest.fixture()
def issuer() -> CredentialIssuer:
    return CredentialIssuer()


def test_generated_username_and_password_shapes() -> None:
    assert re.fullmatch(r"ameliaokafor\d{3}", security.generate_username("Amelia O'Kafor"))
    assert re.fullmatch(r"staff\d{3}", security.generate_username("!!!"))

    password = security.generate_password()
    assert len(password) == 8
    assert set(password) <= set(security.PASSWORD_ALPHABET)


def test_issue_stores_only_a_hash(db_session: Session, issuer: CredentialIssuer) -> None:
    credential = issuer.issue(db_session, 1, "Amina Yusuf", "Teachers", "grade_teachers")

    assert credential is not None
    assert credential.global_staff_id == 1
    assert credential.username.startswith("aminayusuf")
    stored = issuer.get_by_global_id(db_session, 1)
    assert stored is not None
    assert stored.password_hash != credential.password
    assert security.verify_password(credential.password, stored.password_hash)


def test_issue_is_once_per_record(db_session: Session, issuer: CredentialIssuer) -> None:
    assert issuer.issue(db_session, 1, "Amina", "Teachers", "grade_teachers") is not None
    assert issuer.issue(db_session, 1, "Amina", "Teachers", "grade_teachers") is None
    assert db_session.query(StaffUser).count() == 1


def test_username_exhaustion_fails(
    db_session: Session, issuer: CredentialIssuer, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(security, "generate_username", lambda name: "amina001")
    issuer.issue(db_session, 1, "Amina", "Teachers", "grade_teachers")

    with pytest.raises(CredentialIssuanceError):
        issuer.issue(db_session, 2, "Amina", "Teachers", "grade_teachers")
    assert issuer.get_by_global_id(db_session, 2) is None


def test_verify(db_session: Session, issuer: CredentialIssuer) -> None:
    credential = issuer.issue(db_session, 1, "Amina", "Teachers", "grade_teachers")
    assert credential is not None

    user = issuer.verify(db_session, credential.username, credential.password)
    assert user.global_staff_id == 1

    with pytest.raises(AuthenticationError):
        issuer.verify(db_session, credential.username, "wrong-password")
    with pytest.raises(AuthenticationError):
        issuer.verify(db_session, "nobody", credential.password)


def test_reset_password(db_session: Session, issuer: CredentialIssuer) -> None:
    credential = issuer.issue(db_session, 1, "Amina", "Teachers", "grade_teachers")
    assert credential is not None

    user, new_password = issuer.reset_password(db_session, 1)

    assert issuer.verify(db_session, user.username, new_password).id == user.id
    with pytest.raises(RecordNotFoundError):
        issuer.reset_password(db_session, 999)


def test_describe_maps_teachers_to_teacher_role(db_session: Session, issuer: CredentialIssuer) -> None:
    issuer.issue(db_session, 1, "Amina", "Teachers", "grade_teachers")
    issuer.issue(db_session, 2, "Lena", "Administrative Staff", "office")

    roles = {user.global_staff_id: issuer.describe(user)["role"] for user in issuer.list_users(db_session)}

    assert roles == {1: "teacher", 2: "staff"}


def test_access_token_round_trip() -> None:
    token = security.create_access_token("amina001", {"staffType": "Teachers"})

    payload = security.decode_access_token(token)

    assert payload["sub"] == "amina001"
    assert payload["staffType"] == "Teachers"
