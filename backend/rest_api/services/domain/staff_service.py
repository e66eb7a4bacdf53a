"""
Staff Service.

Handles staff administration:
- Provisioning a hire: login principal, staff row and principal->staff
  mapping, as a compensating saga
- Listing, updating and deactivating staff within the caller's branch scope
- Capability cache invalidation when role, status or branch change

Business rules:
- Staff are never hard-deleted; deactivation sets status INACTIVE
- Only owners may assign an owner role
- Staff codes are unique per branch
"""

from __future__ import annotations

from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from rest_api.models import AuthPrincipal, AuthStaffMapping, Role, SagaLog, Staff, new_uuid
from rest_api.services.base_service import BaseService
from rest_api.services.events import ChangeOperation, EntityKind, record_change
from rest_api.services.permissions import (
    ALL_BRANCHES,
    Action,
    BranchScope,
    CapabilityCache,
    Module,
    StaffContext,
    capability_cache,
    select_branch_scope,
)
from shared.config.constants import SagaKind, SagaStatus, SagaStepStatus, StaffStatus
from shared.config.logging import mask_email, staff_logger as logger
from shared.infrastructure.db import safe_commit
from shared.security.password import hash_password
from shared.utils.exceptions import (
    AppException,
    DuplicateEntityError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from .saga_log import add_step, finish_saga, start_saga

PROVISION_STEPS: tuple[str, ...] = ("create_principal", "insert_staff", "insert_mapping")


class ProvisionRequest(Protocol):
    email: str
    password: str
    branch_id: str
    franchise_id: str
    first_name: str
    last_name: str
    role_id: str
    staff_code: str


class StaffService(BaseService):
    """
    Service for staff management.

    Usage:
        service = StaffService(db)
        staff = service.provision(request, ctx)
        service.update(staff.id, {"role_id": new_role_id}, ctx)
    """

    def __init__(self, db, cache: CapabilityCache = capability_cache):
        super().__init__(db)
        self._cache = cache

    # =========================================================================
    # Query Methods
    # =========================================================================

    def list_staff(
        self,
        ctx: StaffContext,
        scope: BranchScope,
        *,
        include_inactive: bool = False,
    ) -> list[Staff]:
        ctx.require(Module.STAFF, Action.VIEW)
        stmt = scope.apply(
            select(Staff).options(selectinload(Staff.role)), Staff.branch_id
        )
        if not include_inactive:
            stmt = stmt.where(Staff.status != StaffStatus.INACTIVE)
        stmt = stmt.order_by(Staff.last_name, Staff.first_name)
        return list(self._db.execute(stmt).scalars().all())

    def get_staff(self, staff_id: str, ctx: StaffContext) -> Staff:
        ctx.require(Module.STAFF, Action.VIEW)
        return self._get_in_scope(staff_id, ctx)

    # =========================================================================
    # Provisioning saga
    # =========================================================================

    def provision(self, request: ProvisionRequest, ctx: StaffContext) -> Staff:
        """
        Hire a staff member.

        Steps (each committed): create_principal -> insert_staff -> insert_mapping.
        On failure the completed steps are undone in reverse order. A failed
        undo is recorded on the saga and logged, never raised.

        Raises:
            CapabilityError: Role lacks staff_create.
            BranchAccessError: Target branch outside the caller's scope.
            ForbiddenError: Franchise mismatch, or non-owner assigning an owner role.
            DuplicateEntityError: Email already registered.
            ValidationError: Constraint violated while writing (e.g. staff code taken).
        """
        ctx.require(Module.STAFF, Action.CREATE)
        if request.franchise_id != ctx.franchise_id:
            raise ForbiddenError("create staff in another franchise", staff_id=ctx.staff_id)
        select_branch_scope(self._db, ctx, request.branch_id)
        self._check_role(request.role_id, ctx)

        email = request.email.strip().lower()
        if self._db.scalar(select(AuthPrincipal.id).where(AuthPrincipal.email == email)):
            raise DuplicateEntityError("Staff account", email)

        saga = start_saga(
            self._db,
            SagaKind.STAFF_PROVISION,
            email,
            franchise_id=ctx.franchise_id,
            branch_id=request.branch_id,
            context={
                "email": email,
                "branch_id": request.branch_id,
                "role_id": request.role_id,
                "staff_code": request.staff_code,
            },
            started_by=ctx.staff_id,
        )
        state: dict[str, str] = {}

        for name in PROVISION_STEPS:
            try:
                getattr(self, f"_{name}")(request, email, state, ctx)
                add_step(saga, name, SagaStepStatus.COMPLETED)
                saga.context = {**saga.context, **state}
                safe_commit(self._db)
            except Exception as e:
                self._db.rollback()
                self._fail_and_compensate(saga, name, e, state, ctx)
                if isinstance(e, AppException):
                    raise
                if isinstance(e, IntegrityError):
                    raise ValidationError(
                        "Staff member could not be created: a unique value is already in use "
                        "(email or staff code)",
                        saga_id=saga.id,
                        failed_step=name,
                    ) from e
                raise InternalError(
                    "Staff member could not be created", saga_id=saga.id, failed_step=name
                ) from e

        finish_saga(saga, SagaStatus.COMPLETED)
        safe_commit(self._db)

        staff = self._db.get(Staff, state["staff_id"])
        logger.info(
            "Staff provisioned",
            staff_id=staff.id,
            email=mask_email(email),
            branch_id=staff.branch_id,
            saga_id=saga.id,
        )
        return staff

    def _create_principal(self, request, email, state, ctx) -> None:
        principal = AuthPrincipal(
            id=new_uuid(),
            email=email,
            password_hash=hash_password(request.password),
            is_active=True,
        )
        self._db.add(principal)
        state["principal_id"] = principal.id

    def _insert_staff(self, request, email, state, ctx) -> None:
        staff = Staff(
            id=new_uuid(),
            franchise_id=request.franchise_id,
            branch_id=request.branch_id,
            role_id=request.role_id,
            first_name=request.first_name,
            last_name=request.last_name,
            email=email,
            code=request.staff_code,
            status=StaffStatus.ACTIVE,
        )
        staff.set_created_by(ctx.staff_id)
        self._db.add(staff)
        record_change(
            self._db,
            EntityKind.STAFF,
            staff.id,
            ChangeOperation.INSERT,
            franchise_id=ctx.franchise_id,
            branch_id=staff.branch_id,
            actor_staff_id=ctx.staff_id,
        )
        state["staff_id"] = staff.id

    def _insert_mapping(self, request, email, state, ctx) -> None:
        self._db.add(
            AuthStaffMapping(principal_id=state["principal_id"], staff_id=state["staff_id"])
        )

    def _fail_and_compensate(
        self,
        saga: SagaLog,
        failed_step: str,
        error: Exception,
        state: dict[str, str],
        ctx: StaffContext,
    ) -> None:
        # State keys set by a step that rolled back never reached the database
        completed = saga.completed_step_names()
        if "insert_staff" not in completed:
            state.pop("staff_id", None)
        if "create_principal" not in completed:
            state.pop("principal_id", None)

        add_step(saga, failed_step, SagaStepStatus.FAILED, error=str(error))
        safe_commit(self._db)
        logger.error(
            "Staff provisioning failed, compensating",
            saga_id=saga.id,
            failed_step=failed_step,
            completed_steps=completed,
            error=str(error),
        )

        compensation_failed = False
        for name in reversed(completed):
            undo = getattr(self, f"_undo_{name}", None)
            if undo is None:
                continue
            try:
                undo(state, ctx)
                add_step(saga, f"undo_{name}", SagaStepStatus.COMPENSATED)
                safe_commit(self._db)
            except Exception as undo_error:
                self._db.rollback()
                compensation_failed = True
                add_step(saga, f"undo_{name}", SagaStepStatus.COMPENSATION_FAILED, error=str(undo_error))
                safe_commit(self._db)
                logger.critical(
                    "Staff provisioning compensation failed",
                    saga_id=saga.id,
                    step=name,
                    error=str(undo_error),
                    **state,
                )

        finish_saga(
            saga,
            SagaStatus.COMPENSATION_FAILED if compensation_failed else SagaStatus.COMPENSATED,
            failed_step=failed_step,
            error=str(error),
        )
        safe_commit(self._db)

    def _undo_insert_staff(self, state, ctx) -> None:
        staff = self._db.get(Staff, state["staff_id"])
        if staff is None:
            return
        branch_id = staff.branch_id
        self._db.delete(staff)
        record_change(
            self._db,
            EntityKind.STAFF,
            state["staff_id"],
            ChangeOperation.DELETE,
            franchise_id=ctx.franchise_id,
            branch_id=branch_id,
            actor_staff_id=ctx.staff_id,
        )

    def _undo_create_principal(self, state, ctx) -> None:
        principal = self._db.get(AuthPrincipal, state["principal_id"])
        if principal is not None:
            self._db.delete(principal)

    # =========================================================================
    # Update / deactivate
    # =========================================================================

    def update(self, staff_id: str, data: dict[str, Any], ctx: StaffContext) -> Staff:
        """
        Update names, role, status or branch.

        Raises:
            CapabilityError: Role lacks staff_edit.
            NotFoundError: Staff not found in the caller's scope.
            ForbiddenError: Non-owner assigning an owner role, or editing an owner.
        """
        ctx.require(Module.STAFF, Action.EDIT)
        staff = self._get_in_scope(staff_id, ctx)
        self._check_owner_target(staff, ctx, "edit an owner")

        role_id = data.get("role_id")
        if role_id is not None and role_id != staff.role_id:
            self._check_role(role_id, ctx)
        branch_id = data.get("branch_id")
        if branch_id is not None and branch_id != staff.branch_id:
            select_branch_scope(self._db, ctx, branch_id)
        if data.get("status") == StaffStatus.INACTIVE and staff.id == ctx.staff_id:
            raise ValidationError("You cannot deactivate your own account")

        changed: dict[str, Any] = {}
        for key in ("first_name", "last_name", "role_id", "status", "branch_id"):
            if key in data and data[key] is not None and getattr(staff, key) != data[key]:
                setattr(staff, key, data[key])
                changed[key] = data[key].value if hasattr(data[key], "value") else data[key]
        staff.set_updated_by(ctx.staff_id)

        record_change(
            self._db,
            EntityKind.STAFF,
            staff.id,
            ChangeOperation.UPDATE,
            franchise_id=ctx.franchise_id,
            branch_id=staff.branch_id,
            actor_staff_id=ctx.staff_id,
            changes=changed,
        )
        self._commit("update staff", conflict_detail="Staff code already in use in that branch")
        self._db.refresh(staff)

        if changed.keys() & {"role_id", "status", "branch_id"}:
            self._cache.invalidate_staff(staff.id)

        logger.info("Staff updated", staff_id=staff.id, fields=sorted(changed))
        return staff

    def deactivate(self, staff_id: str, ctx: StaffContext) -> Staff:
        """
        Set status INACTIVE. The row and its history stay.

        Raises:
            CapabilityError: Role lacks staff_delete.
            ValidationError: Deactivating oneself.
            ForbiddenError: Non-owner deactivating an owner.
        """
        ctx.require(Module.STAFF, Action.DELETE)
        staff = self._get_in_scope(staff_id, ctx)
        self._check_owner_target(staff, ctx, "deactivate an owner")
        if staff.id == ctx.staff_id:
            raise ValidationError("You cannot deactivate your own account")

        staff.status = StaffStatus.INACTIVE
        staff.set_updated_by(ctx.staff_id)
        record_change(
            self._db,
            EntityKind.STAFF,
            staff.id,
            ChangeOperation.UPDATE,
            franchise_id=ctx.franchise_id,
            branch_id=staff.branch_id,
            actor_staff_id=ctx.staff_id,
            changes={"status": StaffStatus.INACTIVE.value},
        )
        self._commit("deactivate staff")
        self._cache.invalidate_staff(staff.id)

        logger.info("Staff deactivated", staff_id=staff.id, actor_staff_id=ctx.staff_id)
        return staff

    # =========================================================================
    # Private Helpers
    # =========================================================================

    def _get_in_scope(self, staff_id: str, ctx: StaffContext) -> Staff:
        staff = self._db.scalar(
            select(Staff)
            .options(selectinload(Staff.role))
            .where(Staff.id == staff_id, Staff.franchise_id == ctx.franchise_id)
        )
        if staff is None:
            raise NotFoundError("Staff", staff_id)
        if not ctx.is_owner and staff.branch_id != ctx.branch_id:
            raise NotFoundError("Staff", staff_id)
        return staff

    def _check_owner_target(self, staff: Staff, ctx: StaffContext, action: str) -> None:
        if staff.role.is_owner and not ctx.is_owner:
            raise ForbiddenError(action, staff_id=ctx.staff_id, target_staff_id=staff.id)

    def _check_role(self, role_id: str, ctx: StaffContext) -> Role:
        role = self._db.scalar(
            select(Role).where(
                Role.id == role_id,
                Role.franchise_id == ctx.franchise_id,
                Role.is_active.is_(True),
            )
        )
        if role is None:
            raise ValidationError("Role does not belong to this franchise", role_id=role_id)
        if role.is_owner and not ctx.is_owner:
            raise ForbiddenError("assign an owner role", staff_id=ctx.staff_id)
        return role


def default_staff_scope(db, ctx: StaffContext, branch_id: str | None) -> BranchScope:
    """Scope for staff listings: the requested branch, else everything visible."""
    if branch_id:
        return select_branch_scope(db, ctx, branch_id)
    return select_branch_scope(db, ctx, ALL_BRANCHES if ctx.is_owner else ctx.branch_id)
