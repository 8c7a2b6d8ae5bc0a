"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from staff_registry.core.classifications import all_schema_names
from staff_registry.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def configure_sqlite(engine: Engine) -> Engine:
    """Make a SQLite engine behave like the PostgreSQL deployment.

    Every staff namespace is attached as a separate database (in-memory when
    the main database is) on each new connection, and pysqlite's implicit
    transaction handling is replaced with explicit ``BEGIN`` so DDL
    participates in transactions and rolls back.
    """
    if engine.dialect.name != "sqlite":
        return engine

    database = engine.url.database
    in_memory = not database or database == ":memory:"

    def _attach_target(schema: str) -> str:
        if in_memory:
            return ":memory:"
        return f"{database}.{schema}"

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            for schema in all_schema_names():
                cursor.execute(f'ATTACH DATABASE ? AS "{schema}"', (_attach_target(schema),))
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


def build_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine for ``url`` with the service's dialect adjustments."""
    kwargs.setdefault("echo", settings.sql_debug)
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return configure_sqlite(create_engine(url, **kwargs))


# Ensure model modules are imported so that metadata is populated when create_all runs.
import staff_registry.models  # noqa: E402,F401

engine = build_engine(settings.effective_database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine | None = None) -> None:
    """Create all fixed database tables."""
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind: Engine | None = None) -> None:
    """Drop all fixed database tables."""
    Base.metadata.drop_all(bind=bind or engine)
