"""Runtime provisioning of per-classification form tables.

Each staff classification owns a namespace (a PostgreSQL schema, or an
attached database on SQLite) holding at most one form table. The
``staff_forms`` registry records which table is live for a classification;
its unique constraint keeps the check-then-create safe when two requests
race, and the whole creation runs in a single transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy import MetaData, Table, inspect, select, text
from sqlalchemy.exc import IntegrityError, NoSuchTableError
from sqlalchemy.orm import Session

from staff_registry.core.classifications import schema_name_for
from staff_registry.core.errors import DuplicateTableError, TableNotFoundError
from staff_registry.models import StaffForm, StaffFormField, StaffUser
from staff_registry.schemas.staff import ColumnInfo, FieldDescriptor
from staff_registry.services.field_types import (
    FIXED_OPTIONS,
    custom_column,
    fixed_columns,
    normalize_descriptors,
    semantic_type_for,
    validate_table_name,
)
from staff_registry.services.transactions import atomic

logger = logging.getLogger(__name__)

__all__ = [
    "create_namespace",
    "create_table",
    "describe_columns",
    "drop_table",
    "get_form",
    "list_forms",
    "list_tables",
    "reflect_table",
    "schema_name_for",
]


def _is_postgres(db: Session) -> bool:
    return db.get_bind().dialect.name == "postgresql"


def create_namespace(db: Session, staff_type: str) -> str:
    """Ensure the namespace for ``staff_type`` exists and return its name.

    Idempotent. SQLite namespaces are attached per connection, so nothing is
    emitted there.
    """
    schema = schema_name_for(staff_type)
    if _is_postgres(db):
        preparer = db.get_bind().dialect.identifier_preparer
        db.execute(text(f"CREATE SCHEMA IF NOT EXISTS {preparer.quote_schema(schema)}"))
        logger.info("Schema %s created or already exists", schema)
    return schema


def list_tables(db: Session, staff_type: str) -> list[str]:
    """Return the names of the tables in a classification's namespace."""
    schema = schema_name_for(staff_type)
    inspector = inspect(db.connection())
    if _is_postgres(db) and not inspector.has_schema(schema):
        return []
    return inspector.get_table_names(schema=schema)


def get_form(db: Session, staff_type: str) -> StaffForm | None:
    """Return the registry entry of the classification's live form, if any."""
    return db.execute(
        select(StaffForm).where(StaffForm.staff_type == staff_type)
    ).scalar_one_or_none()


def list_forms(db: Session) -> list[StaffForm]:
    """Return every registered form."""
    return list(db.execute(select(StaffForm).order_by(StaffForm.id)).scalars())


def reflect_table(db: Session, staff_type: str, table_name: str) -> Table:
    """Load the live definition of a form table.

    Raises:
        TableNotFoundError: If the table does not exist.
    """
    schema = schema_name_for(staff_type)
    validate_table_name(table_name)
    try:
        return Table(table_name, MetaData(), schema=schema, autoload_with=db.connection())
    except NoSuchTableError as err:
        raise TableNotFoundError(
            "Target table does not exist",
            detail=f"{schema}.{table_name}",
        ) from err


def create_table(
    db: Session,
    staff_type: str,
    table_name: str,
    descriptors: list[FieldDescriptor],
) -> Table:
    """Provision the form table of a classification.

    The namespace, the duplicate check, the registry rows and the table
    itself are created in one transaction.

    Raises:
        ValidationError: For an unknown classification or a bad field.
        InvalidNameError: If ``table_name`` is not ``[A-Za-z0-9_]+``.
        DuplicateTableError: If the classification already has a table.
    """
    schema = schema_name_for(staff_type)
    validate_table_name(table_name)
    fields = normalize_descriptors(descriptors)

    with atomic(db, "create form"):
        create_namespace(db, staff_type)
        logger.info("Starting transaction for creating form for %s: %s", staff_type, table_name)

        if get_form(db, staff_type) is not None or list_tables(db, staff_type):
            raise DuplicateTableError(
                "A form already exists for this staff type",
                detail=f"Delete the existing form in {schema} first",
            )

        form = StaffForm(
            staff_type=staff_type,
            schema_name=schema,
            table_name=table_name,
            fields=[
                StaffFormField(
                    column_name=field.name,
                    field_type=field.type,
                    required=field.required,
                    options=list(field.options),
                    position=position,
                )
                for position, field in enumerate(fields)
            ],
        )
        db.add(form)
        try:
            db.flush()
        except IntegrityError as err:
            raise DuplicateTableError(
                "A form already exists for this staff type", detail=str(err.orig)
            ) from err

        table = Table(
            table_name,
            MetaData(),
            *fixed_columns(),
            *(custom_column(field) for field in fields),
            schema=schema,
        )
        table.create(bind=db.connection())

    logger.info("Created table: %s.%s", schema, table_name)
    return table


def drop_table(db: Session, staff_type: str, table_name: str) -> None:
    """Remove a form table, its registry rows and its credentials.

    Idempotent when the table is already absent.
    """
    schema = schema_name_for(staff_type)
    validate_table_name(table_name)

    with atomic(db, "delete form"):
        if _is_postgres(db):
            preparer = db.get_bind().dialect.identifier_preparer
            qualified = f"{preparer.quote_schema(schema)}.{preparer.quote(table_name)}"
            db.execute(text(f"DROP TABLE IF EXISTS {qualified} CASCADE"))
        else:
            Table(table_name, MetaData(), schema=schema).drop(
                bind=db.connection(), checkfirst=True
            )

        form = get_form(db, staff_type)
        if form is not None and form.table_name == table_name:
            db.delete(form)
        db.query(StaffUser).filter(
            StaffUser.staff_type == staff_type,
            StaffUser.class_name == table_name,
        ).delete(synchronize_session=False)

    logger.info("Dropped table: %s.%s", schema, table_name)


def describe_columns(db: Session, staff_type: str, table_name: str) -> list[ColumnInfo]:
    """Return column metadata for rendering a form.

    Registry entries supply the original semantic type and select options;
    fixed enumerated columns carry their static option lists.
    """
    table = reflect_table(db, staff_type, table_name)
    form = get_form(db, staff_type)
    registry: dict[str, StaffFormField] = {}
    if form is not None and form.table_name == table_name:
        registry = {field.column_name: field for field in form.fields}

    columns: list[ColumnInfo] = []
    for column in table.columns:
        nullable = bool(column.nullable) and not column.primary_key
        entry = registry.get(column.name)
        if entry is not None:
            data_type = entry.field_type
            required = entry.required
            options = list(entry.options) or None
        else:
            data_type = semantic_type_for(column.name, column.type)
            required = not nullable
            options = None
        if column.name in FIXED_OPTIONS:
            options = list(FIXED_OPTIONS[column.name])
        columns.append(
            ColumnInfo(
                column_name=column.name,
                data_type=data_type,
                is_nullable="YES" if nullable else "NO",
                required=required,
                options=options,
            )
        )
    logger.debug("Fetched %d columns for %s.%s", len(columns), table.schema, table_name)
    return columns
