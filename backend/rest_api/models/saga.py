"""
Saga log models: SagaLog, SagaStep.

A saga is a multi-step write where each step commits on its own.
The log records which steps completed so a partial failure is visible
and, for forward-only sagas, can be resumed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import SagaKind, SagaStatus, SagaStepStatus
from .base import Base, new_uuid, utcnow


class SagaLog(Base):
    __tablename__ = "saga_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    kind: Mapped[SagaKind] = mapped_column(
        SQLEnum(SagaKind, name="saga_kind", native_enum=False, length=30), nullable=False, index=True
    )
    status: Mapped[SagaStatus] = mapped_column(
        SQLEnum(SagaStatus, name="saga_status", native_enum=False, length=30),
        default=SagaStatus.RUNNING,
        nullable=False,
        index=True,
    )
    # Entity the saga is about (dining session id, staff email, ...)
    aggregate_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    franchise_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    branch_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    context: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    failed_step: Mapped[Optional[str]] = mapped_column(String(50))
    error: Mapped[Optional[str]] = mapped_column(Text)
    started_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    steps: Mapped[list["SagaStep"]] = relationship(
        back_populates="saga", order_by="SagaStep.ordinal", cascade="all, delete-orphan"
    )

    def completed_step_names(self) -> list[str]:
        return [s.name for s in self.steps if s.status == SagaStepStatus.COMPLETED]

    def __repr__(self) -> str:
        return f"<SagaLog(id={self.id}, kind={self.kind.value}, status={self.status.value})>"


class SagaStep(Base):
    __tablename__ = "saga_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    saga_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("saga_log.id"), nullable=False, index=True
    )
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[SagaStepStatus] = mapped_column(
        SQLEnum(SagaStepStatus, name="saga_step_status", native_enum=False, length=30),
        nullable=False,
    )
    error: Mapped[Optional[str]] = mapped_column(Text)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    saga: Mapped["SagaLog"] = relationship(back_populates="steps")
