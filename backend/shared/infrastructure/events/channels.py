"""
Redis Channel Naming.

Channels are namespaced by branch so a subscriber only receives the
changes of the branches in its scope.
"""

from __future__ import annotations


def _validate_id(id_value: str, name: str) -> None:
    if not isinstance(id_value, str) or not id_value.strip():
        raise ValueError(f"{name} must be a non-empty string, got {id_value!r}")
    if ":" in id_value or "*" in id_value:
        raise ValueError(f"{name} must not contain channel separators, got {id_value!r}")


def channel_branch_changes(branch_id: str) -> str:
    """Change feed for one branch (orders, sessions, tables, menu, staff)."""
    _validate_id(branch_id, "branch_id")
    return f"branch:{branch_id}:changes"


def channel_franchise_changes(franchise_id: str) -> str:
    """Change feed for franchise-wide entities (roles, branches themselves)."""
    _validate_id(franchise_id, "franchise_id")
    return f"franchise:{franchise_id}:changes"
