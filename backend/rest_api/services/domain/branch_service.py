"""
Branch Service.

Branches are franchise-owned. Owners see every branch of the franchise,
other staff only their own. Create/edit/delete are gated by the branch_*
capabilities on the server, whatever the client shows.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from rest_api.models import Branch, RestaurantTable
from rest_api.services.base_service import BaseCRUDService
from rest_api.services.events import EntityKind
from rest_api.services.permissions import BranchScope, Module, StaffContext
from shared.config.constants import BranchStatus, TableStatus
from shared.utils.admin_schemas import BranchOutput
from shared.utils.exceptions import ConflictError, DuplicateEntityError


class BranchService(BaseCRUDService[Branch, BranchOutput]):
    """Service for branch management."""

    module = Module.BRANCH

    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=Branch,
            output_schema=BranchOutput,
            entity_name="Branch",
            entity_kind=EntityKind.BRANCH,
        )

    def _scoped(self, stmt: Select, ctx: StaffContext, scope: BranchScope | None) -> Select:
        stmt = stmt.where(Branch.franchise_id == ctx.franchise_id)
        if not ctx.is_owner:
            stmt = stmt.where(Branch.id == ctx.branch_id)
        return stmt

    def _branch_of(self, entity: Branch) -> str | None:
        # A branch is its own branch
        return entity.id

    def list_all(self, ctx, scope=None, *, include_inactive=False, order_by=None):
        return super().list_all(
            ctx, scope, include_inactive=include_inactive, order_by=order_by or Branch.name
        )

    def _validate_create(self, data: dict[str, Any], ctx: StaffContext) -> None:
        self._check_code_free(data["code"], ctx)

    def _validate_update(self, entity: Branch, data: dict[str, Any], ctx: StaffContext) -> None:
        if data.get("code") and data["code"] != entity.code:
            self._check_code_free(data["code"], ctx)

    def _validate_delete(self, entity: Branch, ctx: StaffContext) -> None:
        if entity.id == ctx.branch_id:
            raise ConflictError("Cannot delete the branch you are assigned to", branch_id=entity.id)
        occupied = self._db.scalar(
            select(RestaurantTable.id).where(
                RestaurantTable.branch_id == entity.id,
                RestaurantTable.status == TableStatus.OCCUPIED,
            )
        )
        if occupied is not None:
            raise ConflictError("Branch has occupied tables", branch_id=entity.id)

    def _before_soft_delete(self, entity: Branch) -> None:
        entity.status = BranchStatus.INACTIVE

    def _check_code_free(self, code: str, ctx: StaffContext) -> None:
        taken = self._db.scalar(
            select(Branch.id).where(Branch.franchise_id == ctx.franchise_id, Branch.code == code)
        )
        if taken is not None:
            raise DuplicateEntityError("Branch", code)
