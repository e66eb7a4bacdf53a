"""
Floor Models: RestaurantTable, DiningSession.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderStatus, SessionStatus, TableStatus
from .base import AuditMixin, Base, new_uuid

if TYPE_CHECKING:
    from .franchise import Branch
    from .order import Order


class RestaurantTable(AuditMixin, Base):
    """
    Physical table in a branch.
    Status is driven by the order lifecycle: the first order occupies it,
    payment releases it.
    """

    __tablename__ = "restaurant_tables"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    branch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("branches.id"), nullable=False, index=True
    )
    table_number: Mapped[str] = mapped_column(String(20), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    status: Mapped[TableStatus] = mapped_column(
        SQLEnum(TableStatus, name="table_status", native_enum=False, length=20),
        default=TableStatus.AVAILABLE,
        nullable=False,
    )
    last_status_update: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("branch_id", "table_number", name="uq_table_branch_number"),
        Index("ix_table_branch_status", "branch_id", "status"),
    )

    branch: Mapped["Branch"] = relationship(back_populates="tables")
    sessions: Mapped[list["DiningSession"]] = relationship(back_populates="table")


class DiningSession(AuditMixin, Base):
    """
    The open tab for one table, covering every order until payment.

    total_amount is the running item subtotal and tax_amount the running tax,
    both at full precision. At most one IN_PROGRESS session exists per table,
    enforced by a partial unique index.
    """

    __tablename__ = "dining_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    branch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("branches.id"), nullable=False, index=True
    )
    table_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("restaurant_tables.id"), nullable=False, index=True
    )
    status: Mapped[SessionStatus] = mapped_column(
        SQLEnum(SessionStatus, name="session_status", native_enum=False, length=20),
        default=SessionStatus.IN_PROGRESS,
        nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    is_bill_printed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    number_of_guests: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    changed_by: Mapped[Optional[str]] = mapped_column(String(36))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index(
            "uq_dining_session_open_table",
            "table_id",
            unique=True,
            sqlite_where=text("status = 'IN_PROGRESS'"),
            postgresql_where=text("status = 'IN_PROGRESS'"),
        ),
    )

    table: Mapped["RestaurantTable"] = relationship(back_populates="sessions")
    orders: Mapped[list["Order"]] = relationship(
        back_populates="session", order_by="Order.created_at"
    )

    @property
    def grand_total(self) -> Decimal:
        """Amount due: subtotal plus tax."""
        return (self.total_amount or Decimal("0")) + (self.tax_amount or Decimal("0"))

    @property
    def billable_orders(self) -> list["Order"]:
        return [o for o in self.orders if o.status != OrderStatus.CANCELLED]
