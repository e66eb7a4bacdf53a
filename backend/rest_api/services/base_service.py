"""
Base Service Classes.

Provides the shared plumbing for application services:
- Explicit StaffContext / BranchScope instead of ambient state
- Commit with IntegrityError translated to 400/409
- Change events recorded in the same transaction as the write

Architecture:
    Router (thin) → Service (business logic) → Model

Usage:
    from rest_api.services.base_service import BranchScopedService

    class MenuService(BranchScopedService[MenuItem, MenuItemOutput]):
        module = Module.MENU

        def __init__(self, db: Session):
            super().__init__(
                db=db,
                model=MenuItem,
                output_schema=MenuItemOutput,
                entity_name="Menu item",
                entity_kind=EntityKind.MENU_ITEM,
            )
"""

from __future__ import annotations

from typing import Any, Generic, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.models import Base, new_uuid
from rest_api.services.events import ChangeOperation, EntityKind, record_change
from rest_api.services.permissions import Action, BranchScope, Module, StaffContext
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
OutputT = TypeVar("OutputT", bound=BaseModel)


class BaseService:
    """
    Common infrastructure for domain services: session access and commits.
    """

    def __init__(self, db: Session):
        self._db = db

    @property
    def db(self) -> Session:
        """Database session."""
        return self._db

    def _commit(self, operation: str, *, conflict_detail: str | None = None) -> None:
        """
        Commit the unit of work.

        IntegrityError becomes a 409 when conflict_detail is given, a 400
        otherwise. Any other database failure becomes a 500.
        """
        try:
            safe_commit(self._db)
        except IntegrityError as e:
            if conflict_detail:
                raise ConflictError(conflict_detail, operation=operation) from e
            raise ValidationError(
                f"Constraint violated during {operation}",
                operation=operation,
                error=str(e.orig),
            ) from e
        except SQLAlchemyError as e:
            logger.error("Commit failed", operation=operation, error=str(e))
            raise DatabaseError(operation) from e


class BaseCRUDService(BaseService, Generic[ModelT, OutputT]):
    """
    Base service for franchise-owned entities with permission-checked CRUD.

    Subclasses set `module` so every operation checks the matching
    (module, action) capability before touching the database.
    """

    module: Module
    create_action: Action = Action.CREATE
    edit_action: Action = Action.EDIT
    delete_action: Action = Action.DELETE

    def __init__(
        self,
        db: Session,
        model: Type[ModelT],
        output_schema: Type[OutputT],
        entity_name: str,
        entity_kind: EntityKind,
        *,
        soft_delete: bool = True,
    ):
        super().__init__(db)
        self._model = model
        self._output_schema = output_schema
        self._entity_name = entity_name
        self._entity_kind = entity_kind
        self._soft_delete = soft_delete

    @property
    def entity_name(self) -> str:
        """Human-readable entity name for messages."""
        return self._entity_name

    # =========================================================================
    # Scoping (override in subclasses)
    # =========================================================================

    def _scoped(self, stmt: Select, ctx: StaffContext, scope: BranchScope | None) -> Select:
        """Restrict a query to the caller's franchise."""
        return stmt.where(self._model.franchise_id == ctx.franchise_id)

    def _branch_of(self, entity: ModelT) -> str | None:
        """Branch the change event is routed to."""
        return getattr(entity, "branch_id", None)

    # =========================================================================
    # Read Operations
    # =========================================================================

    def get_entity(
        self,
        entity_id: str,
        ctx: StaffContext,
        scope: BranchScope | None = None,
        *,
        include_inactive: bool = False,
    ) -> ModelT:
        """
        Raw entity within scope.

        Raises:
            NotFoundError: If the entity does not exist or is outside scope.
        """
        stmt = self._scoped(select(self._model), ctx, scope).where(self._model.id == entity_id)
        if not include_inactive:
            stmt = stmt.where(self._model.is_active.is_(True))
        entity = self._db.scalar(stmt)
        if entity is None:
            raise NotFoundError(self._entity_name, entity_id, franchise_id=ctx.franchise_id)
        return entity

    def get_by_id(
        self,
        entity_id: str,
        ctx: StaffContext,
        scope: BranchScope | None = None,
    ) -> OutputT:
        ctx.require(self.module, Action.VIEW)
        return self.to_output(self.get_entity(entity_id, ctx, scope))

    def list_all(
        self,
        ctx: StaffContext,
        scope: BranchScope | None = None,
        *,
        include_inactive: bool = False,
        order_by: Any | None = None,
    ) -> list[OutputT]:
        ctx.require(self.module, Action.VIEW)
        stmt = self._scoped(select(self._model), ctx, scope)
        if not include_inactive:
            stmt = stmt.where(self._model.is_active.is_(True))
        stmt = stmt.order_by(order_by if order_by is not None else self._model.created_at)
        return [self.to_output(e) for e in self._db.execute(stmt).scalars().all()]

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(
        self,
        data: dict[str, Any],
        ctx: StaffContext,
        scope: BranchScope | None = None,
    ) -> OutputT:
        """
        Create a new entity.

        Raises:
            CapabilityError: If the role lacks {module}_create.
            ValidationError: If data is invalid or violates a constraint.
        """
        ctx.require(self.module, self.create_action)
        data = self._prepare_create(dict(data), ctx, scope)
        self._validate_create(data, ctx)

        data.setdefault("id", new_uuid())
        entity = self._model(**data)
        entity.set_created_by(ctx.staff_id)
        self._db.add(entity)

        record_change(
            self._db,
            self._entity_kind,
            entity.id,
            ChangeOperation.INSERT,
            franchise_id=ctx.franchise_id,
            branch_id=self._branch_of(entity),
            actor_staff_id=ctx.staff_id,
        )
        self._commit(f"create {self._entity_name.lower()}")
        self._db.refresh(entity)

        logger.info(f"{self._entity_name} created", entity_id=entity.id, staff_id=ctx.staff_id)
        return self.to_output(entity)

    def update(
        self,
        entity_id: str,
        data: dict[str, Any],
        ctx: StaffContext,
        scope: BranchScope | None = None,
    ) -> OutputT:
        """
        Update an existing entity with the given fields.

        Raises:
            CapabilityError: If the role lacks {module}_edit.
            NotFoundError: If the entity is not found in scope.
        """
        ctx.require(self.module, self.edit_action)
        entity = self.get_entity(entity_id, ctx, scope)
        self._validate_update(entity, data, ctx)

        changed = {}
        for field_name, value in data.items():
            if hasattr(entity, field_name) and getattr(entity, field_name) != value:
                setattr(entity, field_name, value)
                changed[field_name] = value
        entity.set_updated_by(ctx.staff_id)

        record_change(
            self._db,
            self._entity_kind,
            entity.id,
            ChangeOperation.UPDATE,
            franchise_id=ctx.franchise_id,
            branch_id=self._branch_of(entity),
            actor_staff_id=ctx.staff_id,
            changes=_printable(changed),
        )
        self._commit(f"update {self._entity_name.lower()}")
        self._db.refresh(entity)

        self._after_update(entity, changed, ctx)
        return self.to_output(entity)

    def delete(
        self,
        entity_id: str,
        ctx: StaffContext,
        scope: BranchScope | None = None,
    ) -> None:
        """
        Delete an entity (soft delete unless the service opts out).

        Raises:
            CapabilityError: If the role lacks {module}_delete.
            NotFoundError: If the entity is not found in scope.
        """
        ctx.require(self.module, self.delete_action)
        entity = self.get_entity(entity_id, ctx, scope)
        self._validate_delete(entity, ctx)

        branch_id = self._branch_of(entity)
        if self._soft_delete:
            self._before_soft_delete(entity)
            entity.soft_delete(ctx.staff_id)
        else:
            self._db.delete(entity)

        record_change(
            self._db,
            self._entity_kind,
            entity_id,
            ChangeOperation.DELETE,
            franchise_id=ctx.franchise_id,
            branch_id=branch_id,
            actor_staff_id=ctx.staff_id,
        )
        self._commit(f"delete {self._entity_name.lower()}")
        self._after_delete(entity_id, ctx)

        logger.info(f"{self._entity_name} deleted", entity_id=entity_id, staff_id=ctx.staff_id)

    # =========================================================================
    # Transformation
    # =========================================================================

    def to_output(self, entity: ModelT) -> OutputT:
        """Convert entity to output DTO. Override for custom transformation."""
        return self._output_schema.model_validate(entity)

    # =========================================================================
    # Hooks (override in subclasses)
    # =========================================================================

    def _prepare_create(
        self, data: dict[str, Any], ctx: StaffContext, scope: BranchScope | None
    ) -> dict[str, Any]:
        """Fill ownership columns before the row is built."""
        data["franchise_id"] = ctx.franchise_id
        return data

    def _validate_create(self, data: dict[str, Any], ctx: StaffContext) -> None:
        pass

    def _validate_update(self, entity: ModelT, data: dict[str, Any], ctx: StaffContext) -> None:
        pass

    def _validate_delete(self, entity: ModelT, ctx: StaffContext) -> None:
        pass

    def _before_soft_delete(self, entity: ModelT) -> None:
        pass

    def _after_update(self, entity: ModelT, changed: dict[str, Any], ctx: StaffContext) -> None:
        pass

    def _after_delete(self, entity_id: str, ctx: StaffContext) -> None:
        pass


class BranchScopedService(BaseCRUDService[ModelT, OutputT], Generic[ModelT, OutputT]):
    """
    Service for branch-owned entities (menu items, tables).

    Reads accept any BranchScope; writes require a single concrete branch.
    """

    def _scoped(self, stmt: Select, ctx: StaffContext, scope: BranchScope | None) -> Select:
        if scope is None:
            raise ValidationError(f"A branch must be selected to access {self._entity_name.lower()}s")
        return scope.apply(stmt, self._model.branch_id)

    def _prepare_create(
        self, data: dict[str, Any], ctx: StaffContext, scope: BranchScope | None
    ) -> dict[str, Any]:
        if scope is None:
            raise ValidationError(f"A branch must be selected to create a {self._entity_name.lower()}")
        data["branch_id"] = scope.require_single()
        return data

    def update(self, entity_id, data, ctx, scope=None):
        if scope is not None:
            scope.require_single()
        return super().update(entity_id, data, ctx, scope)

    def delete(self, entity_id, ctx, scope=None):
        if scope is not None:
            scope.require_single()
        return super().delete(entity_id, ctx, scope)


def _printable(changes: dict[str, Any]) -> dict[str, Any]:
    """Change payloads carry plain JSON values."""
    out = {}
    for key, value in changes.items():
        if hasattr(value, "value"):
            value = value.value
        elif not isinstance(value, (str, int, float, bool, type(None))):
            value = str(value)
        out[key] = value
    return out
