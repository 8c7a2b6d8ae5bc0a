"""Transaction boundary shared by the multi-statement services."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from staff_registry.core.errors import DependencyError, StaffRegistryError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(db: Session, action: str) -> Iterator[Session]:
    """Run the enclosed statements as one transaction.

    Commits on success. On any failure the transaction is rolled back;
    domain errors propagate unchanged and database errors are wrapped in
    ``DependencyError``.
    """
    try:
        yield db
        db.commit()
    except StaffRegistryError:
        db.rollback()
        raise
    except SQLAlchemyError as err:
        db.rollback()
        logger.error("Failed to %s, transaction rolled back", action, exc_info=True)
        raise DependencyError(f"Failed to {action}", detail=str(err)) from err
    except Exception:
        db.rollback()
        raise
