"""Registry of provisioned staff forms and their field descriptors."""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staff_registry.db.session import Base


class StaffForm(Base):
    """The single active form table of a staff classification."""

    __tablename__ = "staff_forms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    staff_type: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    schema_name: Mapped[str] = mapped_column(String(100), nullable=False)
    table_name: Mapped[str] = mapped_column(String(100), nullable=False)

    fields: Mapped[list[StaffFormField]] = relationship(
        "StaffFormField",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="StaffFormField.position",
    )


class StaffFormField(Base):
    """A caller-defined column as it was originally described."""

    __tablename__ = "staff_form_fields"
    __table_args__ = (UniqueConstraint("form_id", "column_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    form_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("staff_forms.id", ondelete="CASCADE"), nullable=False
    )
    column_name: Mapped[str] = mapped_column(String(63), nullable=False)
    field_type: Mapped[str] = mapped_column(String(30), nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    form: Mapped[StaffForm] = relationship("StaffForm", back_populates="fields")
