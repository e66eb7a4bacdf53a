"""
Outbox model for transactional change events.

Change events are inserted in the same transaction as the business rows
they describe. The sequence id doubles as the change-feed cursor, and a
background processor publishes PENDING rows to Redis.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, DateTime, Enum as SQLEnum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class OutboxStatus(str, Enum):
    """Delivery status of an outbox event."""
    PENDING = "PENDING"      # Ready to be published
    PROCESSING = "PROCESSING"  # Claimed by a processor batch
    PUBLISHED = "PUBLISHED"  # Delivered to Redis
    FAILED = "FAILED"        # Gave up after max retries


class OutboxEvent(Base):
    """
    One change event awaiting (or past) delivery.

    event_type is "<entity>.<operation>", e.g. "order.UPDATE".
    """
    __tablename__ = "outbox_event"

    # Monotonic sequence, also the change-feed cursor
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )

    franchise_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    branch_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    aggregate_type: Mapped[str] = mapped_column(String(50), nullable=False)
    aggregate_id: Mapped[str] = mapped_column(String(36), nullable=False)

    # JSON serialized ChangeEvent
    payload: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[OutboxStatus] = mapped_column(
        SQLEnum(OutboxStatus, name="outbox_status", native_enum=False, length=20),
        default=OutboxStatus.PENDING,
        nullable=False,
        index=True,
    )

    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_outbox_event_status_created", "status", "created_at"),
        Index("ix_outbox_event_branch_seq", "branch_id", "id"),
    )

    def __repr__(self) -> str:
        return f"<OutboxEvent(id={self.id}, type={self.event_type}, status={self.status.value})>"
