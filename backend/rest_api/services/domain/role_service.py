"""
Role Service.

Roles are franchise-wide permission bundles. Permission keys are checked
against the closed capability registry on every write, and any change to
a role drops the cached capabilities of everyone holding it.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rest_api.models import Role, Staff
from rest_api.services.base_service import BaseCRUDService
from rest_api.services.events import EntityKind
from rest_api.services.permissions import (
    CapabilityCache,
    Module,
    StaffContext,
    capability_cache,
    validate_permission_map,
)
from shared.utils.admin_schemas import RoleOutput
from shared.utils.exceptions import ConflictError, DuplicateEntityError, ValidationError


class RoleService(BaseCRUDService[Role, RoleOutput]):
    """
    Service for role management.

    Business rules:
    - Owner roles are never created or deleted through the API
    - Permission keys must exist in the capability registry
    - A role still assigned to staff cannot be deleted
    """

    module = Module.ROLES

    def __init__(self, db: Session, cache: CapabilityCache = capability_cache):
        super().__init__(
            db=db,
            model=Role,
            output_schema=RoleOutput,
            entity_name="Role",
            entity_kind=EntityKind.ROLE,
        )
        self._cache = cache

    def list_all(self, ctx, scope=None, *, include_inactive=False, order_by=None):
        return super().list_all(
            ctx, scope, include_inactive=include_inactive, order_by=order_by or Role.name
        )

    def _validate_create(self, data: dict[str, Any], ctx: StaffContext) -> None:
        if data.get("is_owner"):
            raise ValidationError("Owner roles cannot be created through the API")
        data["permissions"] = self._validated_permissions(data.get("permissions") or {})
        self._check_name_free(data["name"], ctx)

    def _validate_update(self, entity: Role, data: dict[str, Any], ctx: StaffContext) -> None:
        data.pop("is_owner", None)
        if data.get("permissions") is not None:
            data["permissions"] = self._validated_permissions(data["permissions"])
        else:
            data.pop("permissions", None)
        if data.get("name") and data["name"] != entity.name:
            self._check_name_free(data["name"], ctx)

    def _validate_delete(self, entity: Role, ctx: StaffContext) -> None:
        if entity.is_owner:
            raise ConflictError("Owner roles cannot be deleted", role_id=entity.id)
        holders = self._db.scalar(select(func.count(Staff.id)).where(Staff.role_id == entity.id))
        if holders:
            raise ConflictError(
                f"Role is still assigned to {holders} staff member(s)",
                role_id=entity.id,
            )

    def _after_update(self, entity: Role, changed: dict[str, Any], ctx: StaffContext) -> None:
        self._cache.invalidate_role(entity.id)

    def _after_delete(self, entity_id: str, ctx: StaffContext) -> None:
        self._cache.invalidate_role(entity_id)

    def _validated_permissions(self, permissions: dict[str, Any]) -> dict[str, bool]:
        try:
            return validate_permission_map(permissions)
        except ValueError as e:
            raise ValidationError(str(e), field="permissions") from e

    def _check_name_free(self, name: str, ctx: StaffContext) -> None:
        taken = self._db.scalar(
            select(Role.id).where(Role.franchise_id == ctx.franchise_id, Role.name == name)
        )
        if taken is not None:
            raise DuplicateEntityError("Role", name)
