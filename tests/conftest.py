# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from staff_registry.core.settings import settings
from staff_registry.db.session import Base, build_engine
from staff_registry.db.session import get_db as app_get_session
from staff_registry.main import app as fastapi_app
from staff_registry.schemas.staff import FieldDescriptor
from staff_registry.services import provisioner
from staff_registry.services.counter import ensure_counter

TEST_DB_URL = "sqlite://"

TEACHER_ROW = {
    "name": "Amina",
    "gender": "Female",
    "role": "Teacher",
    "staff_enrollment_type": "Permanent",
    "staff_work_time": "Full time",
    "subject": "Math",
}


def staff_row(name: str, **overrides: Any) -> dict[str, Any]:
    """Return a valid Teachers row for ``name``."""
    return {**TEACHER_ROW, "name": name, **overrides}


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    # Form tables are created per test, so each test gets a fresh database.
    engine = build_engine(TEST_DB_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    ensure_counter(session)
    session.commit()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path: Path) -> Iterator[Path]:
    """Point file uploads at a per-test directory."""
    previous = settings.upload_dir
    target = tmp_path / "uploads"
    settings.upload_dir = str(target)
    try:
        yield target
    finally:
        settings.upload_dir = previous


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def teachers_form(db_session: Session) -> str:
    """Provision the Teachers form with a required ``subject`` field."""
    provisioner.create_table(
        db_session,
        "Teachers",
        "grade_teachers",
        [FieldDescriptor(name="subject", type="text", required=True)],
    )
    return "grade_teachers"


@pytest.fixture()
def make_row() -> Any:
    """Return the factory building valid Teachers rows."""
    return staff_row
