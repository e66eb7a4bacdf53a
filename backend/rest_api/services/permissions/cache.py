"""
Per-staff capability cache.

Capabilities are computed at login and reused for every request of that
staff member until explicitly invalidated: on role update/delete (all
holders of the role) or on a staff member's role/status/branch change.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable

from shared.config.logging import get_logger
from .capabilities import CapabilitySet

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Entry:
    role_id: str
    capabilities: CapabilitySet


class CapabilityCache:
    """Thread-safe map of staff_id -> (role_id, CapabilitySet)."""

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, staff_id: str) -> CapabilitySet | None:
        with self._lock:
            entry = self._entries.get(staff_id)
        return entry.capabilities if entry else None

    def put(self, staff_id: str, role_id: str, capabilities: CapabilitySet) -> None:
        with self._lock:
            self._entries[staff_id] = _Entry(role_id, capabilities)

    def get_or_compute(
        self,
        staff_id: str,
        role_id: str,
        compute: Callable[[], CapabilitySet],
    ) -> CapabilitySet:
        """
        Return the cached set, computing it on a miss.

        A cached entry for a different role is treated as a miss, so a role
        reassignment never serves the old role's capabilities.
        """
        with self._lock:
            entry = self._entries.get(staff_id)
        if entry is not None and entry.role_id == role_id:
            return entry.capabilities

        capabilities = compute()
        self.put(staff_id, role_id, capabilities)
        return capabilities

    def invalidate_staff(self, staff_id: str) -> None:
        with self._lock:
            self._entries.pop(staff_id, None)
        logger.debug("Capability cache invalidated for staff", staff_id=staff_id)

    def invalidate_role(self, role_id: str) -> int:
        """Drop every entry computed from role_id. Returns how many were dropped."""
        with self._lock:
            stale = [sid for sid, entry in self._entries.items() if entry.role_id == role_id]
            for staff_id in stale:
                del self._entries[staff_id]
        logger.info("Capability cache invalidated for role", role_id=role_id, entries=len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Process-wide cache
capability_cache = CapabilityCache()
