"""Global staff identifier allocation."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from staff_registry.core.errors import DependencyError
from staff_registry.models import COUNTER_ROW_ID, StaffCounter

logger = logging.getLogger(__name__)


def ensure_counter(db: Session) -> None:
    """Seed the counter row if it does not exist yet.

    Flushes but does not commit; callers own the transaction.
    """
    exists = db.execute(
        select(StaffCounter.id).where(StaffCounter.id == COUNTER_ROW_ID)
    ).scalar_one_or_none()
    if exists is None:
        db.add(StaffCounter(id=COUNTER_ROW_ID, count=0))
        db.flush()
        logger.info("Staff counter initialized")


def _increment(db: Session) -> int | None:
    stmt = (
        update(StaffCounter)
        .where(StaffCounter.id == COUNTER_ROW_ID)
        .values(count=StaffCounter.count + 1)
        .returning(StaffCounter.count)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).scalar_one_or_none()


def next_global_id(db: Session) -> int:
    """Atomically increment the counter and return the new value.

    The increment is one ``UPDATE ... RETURNING`` statement, so concurrent
    callers on separate connections never observe the same value; the row
    lock is held until the caller's transaction ends.

    Raises:
        DependencyError: If the counter store cannot be reached.
    """
    try:
        value = _increment(db)
        if value is None:
            ensure_counter(db)
            value = _increment(db)
    except SQLAlchemyError as err:
        logger.error("Error getting global_staff_id: %s", err)
        raise DependencyError("Failed to allocate a global staff id", detail=str(err)) from err
    if value is None:  # pragma: no cover - row was just seeded
        raise DependencyError("Staff counter row is missing")
    logger.debug("Allocated global_staff_id %d", value)
    return int(value)
