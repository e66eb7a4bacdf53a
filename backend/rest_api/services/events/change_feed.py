"""
Change feed reader.

Reads change events back out of the outbox in sequence order for HTTP
polling clients. Independent of Redis delivery status: a client sees an
event as soon as its transaction commits.
"""

from __future__ import annotations

import json

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from rest_api.models import OutboxEvent
from rest_api.services.permissions import BranchScope
from shared.config.settings import settings
from .change_event import ChangeEvent


def list_changes(
    db: Session,
    scope: BranchScope,
    after: int = 0,
    limit: int | None = None,
) -> tuple[list[ChangeEvent], int]:
    """
    Change events visible to the scope with sequence > after.

    Includes events of the branches in scope plus franchise-wide events
    (roles, franchise) of the scope's franchise.

    Returns:
        (events, cursor) where cursor is the last sequence returned, or
        `after` unchanged when there is nothing new.
    """
    if limit is None:
        limit = settings.change_feed_page_size

    rows = db.execute(
        select(OutboxEvent)
        .where(
            OutboxEvent.id > after,
            or_(
                OutboxEvent.branch_id.in_(scope.branch_ids),
                and_(
                    OutboxEvent.branch_id.is_(None),
                    OutboxEvent.franchise_id == scope.franchise_id,
                ),
            ),
        )
        .order_by(OutboxEvent.id.asc())
        .limit(limit)
    ).scalars().all()

    events = [ChangeEvent.from_dict(json.loads(row.payload), sequence=row.id) for row in rows]
    cursor = rows[-1].id if rows else after
    return events, cursor
