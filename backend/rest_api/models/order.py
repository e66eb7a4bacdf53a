"""
Order Models: Order, OrderItem.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderStatus
from .base import AuditMixin, Base, new_uuid

if TYPE_CHECKING:
    from .menu import MenuItem
    from .table import DiningSession, RestaurantTable


class Order(AuditMixin, Base):
    """
    One kitchen-facing ticket within a dining session.

    total_amount is the item subtotal at placement time and tax_amount the
    tax computed from it then; neither is recomputed later.
    Status flow: IN_PROGRESS -> COMPLETED -> SERVED, or IN_PROGRESS -> CANCELLED.
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    branch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("branches.id"), nullable=False, index=True
    )
    dining_session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("dining_sessions.id"), nullable=False, index=True
    )
    table_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("restaurant_tables.id"), nullable=False, index=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, name="order_status", native_enum=False, length=20),
        default=OrderStatus.IN_PROGRESS,
        nullable=False,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    # Staff member who carried the order to the table
    waiter_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("staff.id"))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    served_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_orders_branch_status", "branch_id", "status"),
        Index("ix_orders_branch_created", "branch_id", "created_at"),
    )

    session: Mapped["DiningSession"] = relationship(back_populates="orders")
    table: Mapped["RestaurantTable"] = relationship()
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan"
    )


class OrderItem(Base):
    """Quantity of one menu item within an order, with an optional note."""

    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id"), nullable=False, index=True
    )
    item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("menu.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    item_special_requests: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_positive"),
    )

    order: Mapped["Order"] = relationship(back_populates="items")
    menu_item: Mapped["MenuItem"] = relationship()
