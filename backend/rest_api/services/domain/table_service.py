"""
Table Service.

Tables are created and renumbered here. Their status is owned by the
order lifecycle (first order occupies, payment releases) and cannot be
set directly.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import RestaurantTable
from rest_api.services.base_service import BranchScopedService
from rest_api.services.events import EntityKind
from rest_api.services.permissions import Action, BranchScope, Module, StaffContext
from shared.config.constants import TableStatus
from shared.utils.admin_schemas import TableOutput
from shared.utils.exceptions import ConflictError, DuplicateEntityError


class TableService(BranchScopedService[RestaurantTable, TableOutput]):
    """Service for table management."""

    module = Module.TABLES
    # Floor-plan changes all fall under tables_edit
    create_action = Action.EDIT
    delete_action = Action.EDIT

    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=RestaurantTable,
            output_schema=TableOutput,
            entity_name="Table",
            entity_kind=EntityKind.TABLE,
        )

    def list_all(self, ctx, scope=None, *, include_inactive=False, order_by=None):
        return super().list_all(
            ctx,
            scope,
            include_inactive=include_inactive,
            order_by=order_by if order_by is not None else RestaurantTable.table_number,
        )

    def create(self, data: dict[str, Any], ctx: StaffContext, scope: BranchScope | None = None):
        data = {**data, "status": TableStatus.AVAILABLE}
        return super().create(data, ctx, scope)

    def _validate_create(self, data: dict[str, Any], ctx: StaffContext) -> None:
        self._check_number_free(data["branch_id"], data["table_number"])

    def _validate_update(self, entity: RestaurantTable, data: dict[str, Any], ctx: StaffContext) -> None:
        data.pop("status", None)
        if data.get("table_number") and data["table_number"] != entity.table_number:
            self._check_number_free(entity.branch_id, data["table_number"])

    def _validate_delete(self, entity: RestaurantTable, ctx: StaffContext) -> None:
        if entity.status == TableStatus.OCCUPIED:
            raise ConflictError("Table is occupied", table_id=entity.id)

    def _check_number_free(self, branch_id: str, table_number: str) -> None:
        taken = self._db.scalar(
            select(RestaurantTable.id).where(
                RestaurantTable.branch_id == branch_id,
                RestaurantTable.table_number == table_number,
            )
        )
        if taken is not None:
            raise DuplicateEntityError("Table", table_number)
