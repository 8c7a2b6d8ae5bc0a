"""Insertion, deletion and lookup of staff records in form tables.

Every write allocates identity inside one transaction: a global id from the
counter, a provisional ``staff_id`` past the current maximum, the insert
itself and a full resequence of the table. Credentials are requested only
after that transaction has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Table, func, select
from sqlalchemy.orm import Session

from staff_registry.core.errors import (
    CredentialIssuanceError,
    InvalidColumnError,
    MissingRequiredFieldError,
    RecordNotFoundError,
    TableNotFoundError,
)
from staff_registry.models import StaffUser
from staff_registry.schemas.staff import CreatedUser, FailedUser, IssuedCredential
from staff_registry.services.counter import next_global_id
from staff_registry.services.credentials import CredentialIssuer, get_credential_issuer
from staff_registry.services.field_types import IDENTITY_COLUMNS, coerce_value
from staff_registry.services.provisioner import get_form, list_forms, reflect_table
from staff_registry.services.resequencer import resequence_table
from staff_registry.services.transactions import atomic
from staff_registry.services.uploads import StoredUpload, remove_upload, resolve_upload

logger = logging.getLogger(__name__)


@dataclass
class InsertOutcome:
    """Result of a single record insertion."""

    global_staff_id: int
    credentials: IssuedCredential | None = None
    credential_error: str | None = None


@dataclass
class BatchOutcome:
    """Result of a bulk insertion."""

    inserted: int
    created_users: list[CreatedUser] = field(default_factory=list)
    failed_users: list[FailedUser] = field(default_factory=list)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def required_columns(table: Table) -> list[str]:
    """Columns every submitted row must fill."""
    return [
        column.name
        for column in table.columns
        if column.name not in IDENTITY_COLUMNS
        and not column.nullable
        and column.server_default is None
    ]


def validate_rows(table: Table, rows: Sequence[Mapping[str, Any]]) -> None:
    """Check every row against the table before anything is written.

    Raises:
        InvalidColumnError: If any row names a column the table lacks.
        MissingRequiredFieldError: If any row leaves a non-nullable column empty.
    """
    known = set(table.c.keys())
    invalid = [
        key
        for row in rows
        for key in row
        if key not in IDENTITY_COLUMNS and key not in known
    ]
    if invalid:
        logger.warning("Invalid columns in data: %s", sorted(set(invalid)))
        raise InvalidColumnError(invalid)

    required = required_columns(table)
    missing = [column for row in rows for column in required if _is_blank(row.get(column))]
    if missing:
        logger.warning("Missing required fields: %s", sorted(set(missing)))
        raise MissingRequiredFieldError(missing)


def coerce_row(table: Table, row: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a validated row into column values, dropping identity keys."""
    return {
        key: coerce_value(key, table.c[key].type, value)
        for key, value in row.items()
        if key not in IDENTITY_COLUMNS
    }


def build_form_values(
    table: Table,
    fields: Mapping[str, Any],
    *,
    image_staff: str | None = None,
    uploads: Sequence[StoredUpload] = (),
    upload_fields: Iterable[str] = (),
) -> dict[str, Any]:
    """Assemble the raw values of a form submission.

    Keys that are not columns of the table are ignored. File-backed fields
    take the stored name of their matching upload instead of the submitted
    value.
    """
    file_fields = {name for name in upload_fields if name in table.c}
    values: dict[str, Any] = {}
    for key, value in fields.items():
        if key in IDENTITY_COLUMNS or key in file_fields:
            continue
        if key not in table.c:
            logger.debug("Ignoring unknown form field %s", key)
            continue
        values[key] = value
    for key in file_fields:
        values[key] = resolve_upload(key, uploads)
    if image_staff:
        values["image_staff"] = image_staff
    return values


def _max_position(db: Session, table: Table) -> int:
    return int(db.execute(select(func.coalesce(func.max(table.c.staff_id), 0))).scalar_one())


def _insert_row(db: Session, table: Table, values: Mapping[str, Any], position: int, global_id: int) -> None:
    db.execute(
        table.insert().values(global_staff_id=global_id, staff_id=position, **values)
    )


def insert_record(
    db: Session,
    staff_type: str,
    table_name: str,
    fields: Mapping[str, Any],
    *,
    image_staff: str | None = None,
    uploads: Sequence[StoredUpload] = (),
    upload_fields: Iterable[str] = (),
    issuer: CredentialIssuer | None = None,
) -> InsertOutcome:
    """Insert one staff record and mint its credential.

    The global id is allocated before the maximum position is read, so the
    counter's row lock orders concurrent inserts into the same table.
    Credential failures are logged and reported on the outcome; the record
    stays committed.

    The stored files named by ``image_staff`` and ``uploads`` are removed if
    the record transaction fails. Once it commits the record owns them.
    """
    issuer = issuer or get_credential_issuer()

    try:
        with atomic(db, "add staff"):
            table = reflect_table(db, staff_type, table_name)
            raw = build_form_values(
                table, fields, image_staff=image_staff, uploads=uploads, upload_fields=upload_fields
            )
            validate_rows(table, [raw])
            values = coerce_row(table, raw)

            global_id = next_global_id(db)
            position = _max_position(db, table) + 1
            _insert_row(db, table, values, position, global_id)
            resequence_table(db, table)
    except Exception:
        remove_upload(image_staff)
        for item in uploads:
            remove_upload(item.stored_name)
        raise

    logger.info("Staff added successfully to %s.%s (global_staff_id=%d)", table.schema, table_name, global_id)

    outcome = InsertOutcome(global_staff_id=global_id)
    name = values.get("name")
    if name:
        try:
            outcome.credentials = issuer.issue(db, global_id, str(name), staff_type, table_name)
        except CredentialIssuanceError as err:
            logger.warning("User creation error for global_staff_id %d: %s", global_id, err.message)
            outcome.credential_error = err.message
    return outcome


def insert_batch(
    db: Session,
    staff_type: str,
    table_name: str,
    rows: Sequence[Mapping[str, Any]],
    *,
    issuer: CredentialIssuer | None = None,
) -> BatchOutcome:
    """Insert pre-parsed rows all-or-nothing, then mint their credentials.

    Every row is validated before the first insert. Positions continue from
    the pre-batch maximum and the table is resequenced once at the end.
    Per-row credential failures are collected without affecting other rows.
    """
    issuer = issuer or get_credential_issuer()
    inserted: list[tuple[int, Any]] = []

    with atomic(db, "upload staff rows"):
        table = reflect_table(db, staff_type, table_name)
        validate_rows(table, rows)
        prepared = [coerce_row(table, row) for row in rows]

        position: int | None = None
        for values in prepared:
            global_id = next_global_id(db)
            if position is None:
                position = _max_position(db, table)
            position += 1
            _insert_row(db, table, values, position, global_id)
            inserted.append((global_id, values.get("name")))
        resequence_table(db, table)

    logger.info("Uploaded %d rows to %s.%s", len(inserted), table.schema, table_name)

    outcome = BatchOutcome(inserted=len(inserted))
    for global_id, name in inserted:
        if not name:
            continue
        try:
            credential = issuer.issue(db, global_id, str(name), staff_type, table_name)
        except CredentialIssuanceError as err:
            logger.warning("Error creating user for %s: %s", name, err.message)
            outcome.failed_users.append(
                FailedUser(name=str(name), global_staff_id=global_id, error=err.message)
            )
            continue
        if credential is not None:
            outcome.created_users.append(
                CreatedUser(
                    name=str(name),
                    username=credential.username,
                    password=credential.password,
                    global_staff_id=global_id,
                )
            )
    return outcome


def delete_record(
    db: Session,
    staff_type: str,
    table_name: str,
    global_staff_id: int,
    *,
    issuer: CredentialIssuer | None = None,
) -> dict[str, Any]:
    """Delete a staff record and its credential, then resequence the table.

    Stored files referenced by the record are removed after commit.

    Raises:
        RecordNotFoundError: If the table has no such record.
    """
    issuer = issuer or get_credential_issuer()

    with atomic(db, "delete staff member"):
        table = reflect_table(db, staff_type, table_name)
        row = db.execute(
            select(table).where(table.c.global_staff_id == global_staff_id)
        ).mappings().first()
        if row is None:
            raise RecordNotFoundError(
                "Staff member not found", detail=f"global_staff_id={global_staff_id}"
            )
        deleted = dict(row)
        db.execute(table.delete().where(table.c.global_staff_id == global_staff_id))
        issuer.remove(db, global_staff_id)
        resequence_table(db, table)

    form = get_form(db, staff_type)
    file_columns = ["image_staff"]
    if form is not None and form.table_name == table_name:
        file_columns += [f.column_name for f in form.fields if f.field_type == "upload"]
    for column in file_columns:
        remove_upload(deleted.get(column))

    logger.info("Deleted staff %s from %s.%s", global_staff_id, table.schema, table_name)
    return deleted


def fetch_rows(db: Session, staff_type: str, table_name: str) -> list[dict[str, Any]]:
    """Return every record ordered by name, with its credential username."""
    table = reflect_table(db, staff_type, table_name)
    users = StaffUser.__table__
    columns: list[Any] = list(table.c)
    if "username" not in table.c:
        columns.append(users.c.username)
    stmt = (
        select(*columns)
        .select_from(table.outerjoin(users, users.c.global_staff_id == table.c.global_staff_id))
        .order_by(func.lower(table.c.name), table.c.id)
    )
    return [dict(row) for row in db.execute(stmt).mappings()]


def get_record(db: Session, staff_type: str, table_name: str, global_staff_id: int) -> dict[str, Any] | None:
    """Return one record of a form table, or ``None``."""
    try:
        table = reflect_table(db, staff_type, table_name)
    except TableNotFoundError:
        return None
    row = db.execute(
        select(table).where(table.c.global_staff_id == global_staff_id)
    ).mappings().first()
    return dict(row) if row is not None else None


def find_record(db: Session, global_staff_id: int) -> dict[str, Any]:
    """Search every registered form for a global id.

    Raises:
        RecordNotFoundError: If no form holds the record.
    """
    for form in list_forms(db):
        row = get_record(db, form.staff_type, form.table_name, global_staff_id)
        if row is not None:
            return {**row, "staffType": form.staff_type, "className": form.table_name}
    raise RecordNotFoundError("Staff member not found", detail=f"global_staff_id={global_staff_id}")
