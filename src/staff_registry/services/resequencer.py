"""Recomputation of the per-table ``staff_id`` positions."""

from __future__ import annotations

import logging

from sqlalchemy import Table, bindparam, func, select
from sqlalchemy.orm import Session

from staff_registry.services.provisioner import reflect_table

logger = logging.getLogger(__name__)


def resequence_table(db: Session, table: Table) -> int:
    """Rewrite ``staff_id`` as the 1-based rank of each row by name.

    Ordering is case-insensitive on ``name`` with the surrogate key as a
    tie-breaker. Runs inside the caller's transaction and only writes rows
    whose position changed. Returns the number of rows in the table.
    """
    rows = db.execute(
        select(table.c.id, table.c.staff_id).order_by(func.lower(table.c.name), table.c.id)
    ).all()

    changes = [
        {"row_id": row_id, "position": position}
        for position, (row_id, current) in enumerate(rows, start=1)
        if current != position
    ]
    if changes:
        stmt = (
            table.update()
            .where(table.c.id == bindparam("row_id"))
            .values(staff_id=bindparam("position"))
        )
        db.connection().execute(stmt, changes)
    logger.info(
        "Updated staff_ids for %s.%s (%d rows, %d changed)",
        table.schema, table.name, len(rows), len(changes),
    )
    return len(rows)


def resequence(db: Session, staff_type: str, table_name: str) -> int:
    """Resequence a form table identified by classification and name."""
    return resequence_table(db, reflect_table(db, staff_type, table_name))
