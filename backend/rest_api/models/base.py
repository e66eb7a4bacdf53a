"""
Base class and AuditMixin for all SQLAlchemy ORM models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_uuid() -> str:
    """Primary keys are UUID strings generated by the application."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class AuditMixin:
    """
    Mixin providing soft delete and audit trail fields.

    Fields added:
    - is_active: Soft delete flag (False = deleted, True = active)
    - created_at, updated_at, deleted_at: Audit timestamps
    - created_by_id, updated_by_id, deleted_by_id: Acting staff ids

    Timestamps are set client-side so rows created within the same second
    still order correctly; the server default covers raw inserts.
    """

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow, nullable=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Staff ids, no FK: the staff table itself carries this mixin
    created_by_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    updated_by_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    deleted_by_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    def soft_delete(self, staff_id: str | None) -> None:
        """Mark the row deleted, keeping it for history."""
        self.is_active = False
        self.deleted_at = utcnow()
        self.deleted_by_id = staff_id

    def restore(self, staff_id: str | None) -> None:
        self.is_active = True
        self.deleted_at = None
        self.deleted_by_id = None
        self.set_updated_by(staff_id)

    def set_created_by(self, staff_id: str | None) -> None:
        self.created_by_id = staff_id

    def set_updated_by(self, staff_id: str | None) -> None:
        self.updated_by_id = staff_id
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        active = "active" if self.is_active else "deleted"
        return f"<{class_name}(id={id_val}, {active})>"
