"""
Outbox service for transactional change events.

Change events are written to the outbox table with the same session as
the business rows, so both commit (or roll back) together. The outbox
processor publishes them afterwards.

Usage:
    order = Order(...)
    db.add(order)
    record_change(db, EntityKind.ORDER, order.id, ChangeOperation.INSERT,
                  franchise_id=ctx.franchise_id, branch_id=order.branch_id,
                  actor_staff_id=ctx.staff_id)
    safe_commit(db)  # order row and change event saved together
"""

import json
from typing import Any

from sqlalchemy.orm import Session

from rest_api.models import OutboxEvent, OutboxStatus
from shared.config.logging import get_logger
from .change_event import ChangeEvent, ChangeOperation, EntityKind

logger = get_logger(__name__)


def write_outbox_event(
    db: Session,
    franchise_id: str,
    branch_id: str | None,
    event_type: str,
    aggregate_type: str,
    aggregate_id: str,
    payload: dict[str, Any],
) -> OutboxEvent:
    """
    Add an event to the outbox. Does not commit.

    MUST be called within the same transaction as the business operation.
    """
    outbox_event = OutboxEvent(
        franchise_id=franchise_id,
        branch_id=branch_id,
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        payload=json.dumps(payload, default=str),
        status=OutboxStatus.PENDING,
        retry_count=0,
    )
    db.add(outbox_event)

    logger.debug(
        "Outbox event written",
        event_type=event_type,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        branch_id=branch_id,
    )
    return outbox_event


def record_change(
    db: Session,
    entity: EntityKind,
    entity_id: str,
    operation: ChangeOperation,
    *,
    franchise_id: str,
    branch_id: str | None = None,
    actor_staff_id: str | None = None,
    changes: dict[str, Any] | None = None,
) -> ChangeEvent:
    """Build a ChangeEvent and write it to the outbox."""
    event = ChangeEvent(
        entity=entity,
        entity_id=entity_id,
        operation=operation,
        franchise_id=franchise_id,
        branch_id=branch_id,
        actor_staff_id=actor_staff_id,
        changes=changes,
    )
    write_outbox_event(
        db=db,
        franchise_id=franchise_id,
        branch_id=branch_id,
        event_type=event.event_type,
        aggregate_type=entity.value,
        aggregate_id=entity_id,
        payload=event.to_dict(),
    )
    return event
