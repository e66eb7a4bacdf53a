"""
Franchise Service.

The franchise module is owner-only: non-owner roles can never hold
franchise_* capabilities, so every call here is effectively owner-gated.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select

from rest_api.models import Franchise
from rest_api.services.base_service import BaseService
from rest_api.services.events import ChangeOperation, EntityKind, record_change
from rest_api.services.permissions import Action, Module, StaffContext
from shared.config.logging import get_logger
from shared.utils.exceptions import NotFoundError

logger = get_logger(__name__)


class FranchiseService(BaseService):
    """View and edit the caller's own franchise."""

    def get_own(self, ctx: StaffContext) -> Franchise:
        ctx.require(Module.FRANCHISE, Action.VIEW)
        franchise = self._db.scalar(select(Franchise).where(Franchise.id == ctx.franchise_id))
        if franchise is None:
            raise NotFoundError("Franchise", ctx.franchise_id)
        return franchise

    def update_own(self, data: dict[str, Any], ctx: StaffContext) -> Franchise:
        ctx.require(Module.FRANCHISE, Action.EDIT)
        franchise = self.get_own(ctx)

        changed = {}
        for key, value in data.items():
            if hasattr(franchise, key) and getattr(franchise, key) != value:
                setattr(franchise, key, value)
                changed[key] = value.value if hasattr(value, "value") else value
        franchise.set_updated_by(ctx.staff_id)

        record_change(
            self._db,
            EntityKind.FRANCHISE,
            franchise.id,
            ChangeOperation.UPDATE,
            franchise_id=franchise.id,
            actor_staff_id=ctx.staff_id,
            changes=changed,
        )
        self._commit("update franchise")
        self._db.refresh(franchise)

        logger.info("Franchise updated", franchise_id=franchise.id, fields=sorted(changed))
        return franchise
