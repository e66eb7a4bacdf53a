"""
Billing Model: Payment.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import PaymentMethod, PaymentStatus
from .base import AuditMixin, Base, new_uuid

if TYPE_CHECKING:
    from .table import DiningSession


class Payment(AuditMixin, Base):
    """
    Terminal payment record for a dining session.

    amount is the session total plus tax. order_id points at the first order
    of the session for reference. One payment per session.
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    branch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("branches.id"), nullable=False, index=True
    )
    dining_session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("dining_sessions.id"), unique=True, nullable=False
    )
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status", native_enum=False, length=20),
        default=PaymentStatus.COMPLETED,
        nullable=False,
    )
    method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method", native_enum=False, length=20),
        default=PaymentMethod.CASH,
        nullable=False,
    )
    processed_by: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("staff.id"))

    session: Mapped["DiningSession"] = relationship()
