"""
Menu Model: MenuItem.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import AuditMixin, Base, new_uuid


class MenuItem(AuditMixin, Base):
    """
    A dish or drink sold at a branch.

    Order items reference menu items by id; the cost is read live when
    totals are displayed or analysed, it is not copied onto the order item.
    Deleting a menu item is a soft delete so history keeps resolving.
    """

    __tablename__ = "menu"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    branch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("branches.id"), nullable=False, index=True
    )
    name_of_item: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text)
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("cost >= 0", name="chk_menu_cost_non_negative"),
    )
