"""Global staff identifier counter."""
from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column

from staff_registry.db.session import Base

COUNTER_ROW_ID = 1


class StaffCounter(Base):
    """Single-row counter issuing ``global_staff_id`` values."""

    __tablename__ = "staff_counter"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=COUNTER_ROW_ID)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
