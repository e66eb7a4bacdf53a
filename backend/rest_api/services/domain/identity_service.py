"""
Identity Resolver.

Maps an authenticated principal to the staff member acting and that staff
member's role capabilities. Any gap in the chain (no mapping, no staff row,
staff not ACTIVE) is a 401: clients treat it as a forced logout.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from rest_api.models import AuthPrincipal, AuthStaffMapping, Staff
from rest_api.services.permissions import (
    CapabilityCache,
    CapabilitySet,
    StaffContext,
    capability_cache,
)
from shared.config.constants import StaffStatus
from shared.config.logging import auth_logger, mask_email
from shared.security.password import verify_password
from shared.utils.exceptions import UnauthorizedError


class IdentityResolver:
    """
    Resolve principals to StaffContext.

    Usage:
        ctx = IdentityResolver(db).resolve(principal_id)
    """

    def __init__(self, db: Session, cache: CapabilityCache = capability_cache):
        self._db = db
        self._cache = cache

    def authenticate(self, email: str, password: str) -> AuthPrincipal:
        """
        Check credentials.

        Raises:
            UnauthorizedError: Unknown email, inactive principal or wrong password.
        """
        principal = self._db.scalar(
            select(AuthPrincipal).where(AuthPrincipal.email == email.strip().lower())
        )
        if principal is None or not principal.is_active:
            raise UnauthorizedError("Invalid credentials", email=mask_email(email))
        if not verify_password(password, principal.password_hash):
            raise UnauthorizedError("Invalid credentials", email=mask_email(email))
        return principal

    def resolve(self, principal_id: str, *, refresh: bool = False) -> StaffContext:
        """
        Build the StaffContext for a principal.

        Args:
            principal_id: JWT subject.
            refresh: Recompute capabilities instead of reading the cache (login).

        Raises:
            UnauthorizedError: Mapping, staff row or active status missing.
        """
        mapping = self._db.scalar(
            select(AuthStaffMapping)
            .options(joinedload(AuthStaffMapping.principal))
            .where(AuthStaffMapping.principal_id == principal_id)
        )
        if mapping is None:
            raise UnauthorizedError("No staff record for this account", principal_id=principal_id)
        if not mapping.principal.is_active:
            raise UnauthorizedError("Account is disabled", principal_id=principal_id)

        staff = self._db.scalar(
            select(Staff)
            .options(joinedload(Staff.role))
            .where(Staff.id == mapping.staff_id)
        )
        if staff is None:
            raise UnauthorizedError("No staff record for this account", principal_id=principal_id)
        if staff.status != StaffStatus.ACTIVE or not staff.is_active:
            raise UnauthorizedError(
                "Staff member is not active",
                principal_id=principal_id,
                staff_id=staff.id,
                status=staff.status.value,
            )

        role = staff.role
        if refresh:
            self._cache.invalidate_staff(staff.id)
        capabilities = self._cache.get_or_compute(
            staff.id,
            role.id,
            lambda: CapabilitySet.from_role(role.is_owner, role.permissions),
        )

        auth_logger.debug("Identity resolved", staff_id=staff.id, role=role.name)
        return StaffContext(
            staff_id=staff.id,
            principal_id=principal_id,
            franchise_id=staff.franchise_id,
            branch_id=staff.branch_id,
            role_id=role.id,
            role_name=role.name,
            capabilities=capabilities,
            email=mapping.principal.email,
            first_name=staff.first_name,
            last_name=staff.last_name,
        )
