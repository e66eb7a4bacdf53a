"""
Menu Service.

Menu items belong to a branch. Deletion is soft (unavailable and
inactive) so past orders keep resolving their items.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from rest_api.models import MenuItem
from rest_api.services.base_service import BranchScopedService
from rest_api.services.events import EntityKind
from rest_api.services.permissions import Module
from shared.utils.admin_schemas import MenuItemOutput


class MenuService(BranchScopedService[MenuItem, MenuItemOutput]):
    """Service for menu management."""

    module = Module.MENU

    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=MenuItem,
            output_schema=MenuItemOutput,
            entity_name="Menu item",
            entity_kind=EntityKind.MENU_ITEM,
        )

    def list_all(self, ctx, scope=None, *, include_inactive=False, order_by=None):
        return super().list_all(
            ctx,
            scope,
            include_inactive=include_inactive,
            order_by=order_by if order_by is not None else MenuItem.name_of_item,
        )

    def _before_soft_delete(self, entity: MenuItem) -> None:
        entity.is_available = False
