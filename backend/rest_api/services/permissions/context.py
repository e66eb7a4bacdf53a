"""
Staff Context - the explicit "who is acting" object.

Built once per request by the identity resolver and passed to every
service call instead of reading ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.utils.exceptions import CapabilityError, ForbiddenError
from .capabilities import Action, Capability, CapabilitySet, Module


@dataclass(frozen=True)
class StaffContext:
    """
    Resolved staff member with role capabilities.

    Usage:
        ctx.require(Module.BRANCH, Action.EDIT)
        if ctx.can(Module.PAYMENTS, Action.PROCESS):
            ...
    """

    staff_id: str
    principal_id: str
    franchise_id: str
    branch_id: str
    role_id: str
    role_name: str
    capabilities: CapabilitySet
    email: str = ""
    first_name: str = ""
    last_name: str = ""

    @property
    def is_owner(self) -> bool:
        return self.capabilities.is_owner

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def can(self, module: Module, action: Action) -> bool:
        return self.capabilities.allows(module, action)

    def require(self, module: Module, action: Action) -> None:
        """Raise 403 unless the role grants (module, action)."""
        if not self.can(module, action):
            raise CapabilityError(
                Capability(module, action).key,
                staff_id=self.staff_id,
                role_id=self.role_id,
            )

    def require_owner(self, action: str = "perform owner-only actions") -> None:
        if not self.is_owner:
            raise ForbiddenError(action, staff_id=self.staff_id)
