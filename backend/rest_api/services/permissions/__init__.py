"""
Capability-based permissions and branch scoping.

Usage:
    from rest_api.services.permissions import Module, Action, StaffContext

    ctx.require(Module.STAFF, Action.CREATE)
    scope = select_branch_scope(db, ctx, branch_id)
"""

from .capabilities import (
    Module,
    Action,
    Capability,
    CapabilitySet,
    ALL_CAPABILITIES,
    ALL_PERMISSION_KEYS,
    MODULE_ACTIONS,
    OWNER_ONLY_MODULES,
    validate_permission_map,
)
from .cache import CapabilityCache, capability_cache
from .context import StaffContext
from .branch_scope import ALL_BRANCHES, BranchScope, select_branch_scope

__all__ = [
    # Registry
    "Module",
    "Action",
    "Capability",
    "CapabilitySet",
    "ALL_CAPABILITIES",
    "ALL_PERMISSION_KEYS",
    "MODULE_ACTIONS",
    "OWNER_ONLY_MODULES",
    "validate_permission_map",
    # Cache
    "CapabilityCache",
    "capability_cache",
    # Context
    "StaffContext",
    # Scope
    "ALL_BRANCHES",
    "BranchScope",
    "select_branch_scope",
]
