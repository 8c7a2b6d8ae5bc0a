"""System endpoints for the staff registry API."""

from __future__ import annotations

import time

from fastapi import APIRouter
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from staff_registry.api.v1.dependencies import SessionDep
from staff_registry.core.settings import settings
from staff_registry.models import COUNTER_ROW_ID, StaffCounter, StaffForm, StaffUser

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health")
async def get_system_health(db: SessionDep) -> dict[str, object]:
    """Health check covering database connectivity and the global counter.

    Args:
        db: Database session

    Returns:
        Dictionary with overall status, component health and version info
    """
    counter_value: int | None = None
    try:
        db.execute(text("SELECT 1"))
        counter_value = db.execute(
            select(StaffCounter.count).where(StaffCounter.id == COUNTER_ROW_ID)
        ).scalar_one_or_none()
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"

    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": int(time.time()),
        "components": {
            "database": db_status,
            "counter": "seeded" if counter_value is not None else "missing",
        },
        "version": settings.app_version,
    }


@router.get("/stats")
async def get_registry_stats(db: SessionDep) -> dict[str, object]:
    """Registry counters for monitoring.

    Returns:
        Dictionary with the last issued global id and form/account counts
    """
    counter = db.get(StaffCounter, COUNTER_ROW_ID)
    forms = db.query(StaffForm).count() or 0
    users = db.query(StaffUser).count() or 0
    return {
        "last_global_staff_id": int(counter.count) if counter else 0,
        "forms": int(forms),
        "accounts": int(users),
    }
