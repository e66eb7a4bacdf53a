"""
Saga log helpers.

A saga step and its log entry are committed together, so after a crash
the log never claims a step that did not happen. Failure and compensation
records are written in their own commit after the failed step rolled back.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import SagaLog, SagaStep, utcnow
from shared.config.constants import SagaKind, SagaStatus, SagaStepStatus
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import NotFoundError


def start_saga(
    db: Session,
    kind: SagaKind,
    aggregate_id: str,
    *,
    franchise_id: str,
    branch_id: str | None = None,
    context: dict[str, Any] | None = None,
    started_by: str | None = None,
) -> SagaLog:
    """Create and commit a RUNNING saga."""
    saga = SagaLog(
        kind=kind,
        status=SagaStatus.RUNNING,
        aggregate_id=aggregate_id,
        franchise_id=franchise_id,
        branch_id=branch_id,
        context=context or {},
        started_by=started_by,
    )
    db.add(saga)
    safe_commit(db)
    db.refresh(saga)
    return saga


def add_step(
    saga: SagaLog,
    name: str,
    status: SagaStepStatus,
    error: str | None = None,
) -> SagaStep:
    """Append a step record to the saga. Does not commit."""
    step = SagaStep(
        saga_id=saga.id,
        ordinal=len(saga.steps) + 1,
        name=name,
        status=status,
        error=error,
    )
    saga.steps.append(step)
    return step


def finish_saga(
    saga: SagaLog,
    status: SagaStatus,
    *,
    failed_step: str | None = None,
    error: str | None = None,
) -> None:
    """Set the saga's terminal status. Does not commit."""
    saga.status = status
    saga.failed_step = failed_step
    saga.error = error
    saga.finished_at = utcnow()


def get_saga(db: Session, saga_id: str, franchise_id: str | None = None) -> SagaLog:
    """
    Raises:
        NotFoundError: Unknown saga, or saga of another franchise.
    """
    stmt = select(SagaLog).options(selectinload(SagaLog.steps)).where(SagaLog.id == saga_id)
    if franchise_id is not None:
        stmt = stmt.where(SagaLog.franchise_id == franchise_id)
    saga = db.scalar(stmt)
    if saga is None:
        raise NotFoundError("Saga", saga_id)
    return saga


def list_sagas(
    db: Session,
    *,
    franchise_id: str | None = None,
    status: SagaStatus | None = None,
    kind: SagaKind | None = None,
    limit: int = 50,
) -> list[SagaLog]:
    """Most recent sagas first."""
    stmt = select(SagaLog).options(selectinload(SagaLog.steps))
    if franchise_id is not None:
        stmt = stmt.where(SagaLog.franchise_id == franchise_id)
    if status is not None:
        stmt = stmt.where(SagaLog.status == status)
    if kind is not None:
        stmt = stmt.where(SagaLog.kind == kind)
    stmt = stmt.order_by(SagaLog.created_at.desc()).limit(min(max(1, limit), 200))
    return list(db.execute(stmt).scalars().all())
