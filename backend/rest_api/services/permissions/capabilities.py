"""
Capability registry.

Permissions are a closed set of (module, action) pairs. A role's stored
map ("{module}_{action}" -> bool) is parsed once into a frozen
CapabilitySet; every check afterwards is a set lookup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from shared.config.logging import get_logger

logger = get_logger(__name__)


class Module(str, Enum):
    FRANCHISE = "franchise"
    BRANCH = "branch"
    ROLES = "roles"
    STAFF = "staff"
    TABLES = "tables"
    ORDERS = "orders"
    MENU = "menu"
    ANALYTICS = "analytics"
    INVENTORY = "inventory"
    ORDER_HISTORY = "orderHistory"
    ACTIVE_ORDERS = "activeOrders"
    TABLE_ORDERS = "tableOrders"
    PAYMENTS = "payments"


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    EXPORT = "export"
    ASSIGN = "assign"
    UPDATE = "update"
    VOID = "void"
    PROCESS = "process"


_CRUD = (Action.VIEW, Action.CREATE, Action.EDIT, Action.DELETE)

# Actions each module supports. Pairs outside this table do not exist.
MODULE_ACTIONS: dict[Module, tuple[Action, ...]] = {
    Module.FRANCHISE: _CRUD,
    Module.BRANCH: _CRUD,
    Module.ROLES: _CRUD,
    Module.STAFF: _CRUD,
    Module.TABLES: (Action.VIEW, Action.EDIT, Action.ASSIGN),
    Module.ORDERS: _CRUD,
    Module.MENU: _CRUD,
    Module.ANALYTICS: (Action.VIEW, Action.EXPORT),
    Module.INVENTORY: _CRUD,
    Module.ORDER_HISTORY: (Action.VIEW, Action.EXPORT),
    Module.ACTIVE_ORDERS: (Action.VIEW, Action.UPDATE),
    Module.TABLE_ORDERS: (Action.VIEW, Action.CREATE, Action.EDIT, Action.VOID),
    Module.PAYMENTS: (Action.VIEW, Action.PROCESS),
}

# Modules only an owner role can act on, whatever the permission map says
OWNER_ONLY_MODULES: frozenset[Module] = frozenset({Module.FRANCHISE})


@dataclass(frozen=True, order=True)
class Capability:
    module: Module
    action: Action

    def __post_init__(self) -> None:
        if self.action not in MODULE_ACTIONS[self.module]:
            raise ValueError(f"Module '{self.module.value}' has no action '{self.action.value}'")

    @property
    def key(self) -> str:
        return f"{self.module.value}_{self.action.value}"

    @classmethod
    def from_key(cls, key: str) -> "Capability":
        """Parse "{module}_{action}". Raises ValueError for unknown pairs."""
        module_part, sep, action_part = key.rpartition("_")
        if not sep:
            raise ValueError(f"Malformed permission key '{key}'")
        try:
            return cls(Module(module_part), Action(action_part))
        except ValueError:
            raise ValueError(f"Unknown permission key '{key}'") from None


ALL_CAPABILITIES: frozenset[Capability] = frozenset(
    Capability(module, action) for module, actions in MODULE_ACTIONS.items() for action in actions
)
ALL_PERMISSION_KEYS: frozenset[str] = frozenset(c.key for c in ALL_CAPABILITIES)


def validate_permission_map(permissions: Mapping[str, Any]) -> dict[str, bool]:
    """
    Validate a role permission map for storage.

    Returns the normalized map (every value a bool). Raises ValueError
    listing unknown keys, or when an owner-only module is granted.
    """
    unknown = sorted(k for k in permissions if k not in ALL_PERMISSION_KEYS)
    if unknown:
        raise ValueError(f"Unknown permission keys: {', '.join(unknown)}")

    normalized = {key: bool(value) for key, value in permissions.items()}
    owner_only = sorted(
        key for key, granted in normalized.items()
        if granted and Capability.from_key(key).module in OWNER_ONLY_MODULES
    )
    if owner_only:
        raise ValueError(f"Permissions reserved for owner roles: {', '.join(owner_only)}")
    return normalized


@dataclass(frozen=True)
class CapabilitySet:
    """
    Immutable set of granted capabilities for one role.

    Owners hold every capability implicitly.
    """

    is_owner: bool = False
    granted: frozenset[Capability] = field(default_factory=frozenset)

    @classmethod
    def owner(cls) -> "CapabilitySet":
        return cls(is_owner=True, granted=ALL_CAPABILITIES)

    @classmethod
    def from_role(cls, is_owner: bool, permissions: Mapping[str, Any] | None) -> "CapabilitySet":
        """
        Build from a stored role. Unknown keys are ignored with a warning
        so a stale row never widens access.
        """
        if is_owner:
            return cls.owner()

        granted: set[Capability] = set()
        for key, value in (permissions or {}).items():
            if not value:
                continue
            try:
                capability = Capability.from_key(key)
            except ValueError:
                logger.warning("Ignoring unknown permission key on role", key=key)
                continue
            if capability.module in OWNER_ONLY_MODULES:
                continue
            granted.add(capability)
        return cls(is_owner=False, granted=frozenset(granted))

    @classmethod
    def of(cls, *pairs: tuple[Module, Action]) -> "CapabilitySet":
        return cls(granted=frozenset(Capability(m, a) for m, a in pairs))

    def allows(self, module: Module, action: Action) -> bool:
        if self.is_owner:
            return True
        if module in OWNER_ONLY_MODULES:
            return False
        return Capability(module, action) in self.granted

    def keys(self) -> list[str]:
        """Sorted permission keys, for API responses and tokens."""
        source: Iterable[Capability] = ALL_CAPABILITIES if self.is_owner else self.granted
        return sorted(c.key for c in source)
