"""
Change Event definition.
Immutable value object describing one row-level change.

Carries enough identity (entity kind, id, operation) for a subscriber to
update its own view of that one entity instead of re-querying everything.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
import json


class EntityKind(str, Enum):
    ORDER = "order"
    DINING_SESSION = "dining_session"
    TABLE = "table"
    PAYMENT = "payment"
    MENU_ITEM = "menu_item"
    STAFF = "staff"
    ROLE = "role"
    BRANCH = "branch"
    FRANCHISE = "franchise"


class ChangeOperation(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """
    Immutable change event.

    Attributes:
        entity: Kind of entity that changed
        entity_id: Primary key of the changed row
        operation: INSERT, UPDATE or DELETE
        franchise_id: Franchise the row belongs to
        branch_id: Branch the row belongs to (None for franchise-wide rows)
        actor_staff_id: Staff member who made the change
        changes: Small set of changed fields (status etc.), never the whole row
        occurred_at: When the change was made
        sequence: Outbox sequence id, set once the event is read back from the feed
    """

    entity: EntityKind
    entity_id: str
    operation: ChangeOperation
    franchise_id: str
    branch_id: str | None = None
    actor_staff_id: str | None = None
    changes: dict[str, Any] | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sequence: int | None = None

    @property
    def event_type(self) -> str:
        """Routing key, e.g. "order.UPDATE"."""
        return f"{self.entity.value}.{self.operation.value}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "entity": self.entity.value,
            "entity_id": self.entity_id,
            "operation": self.operation.value,
            "franchise_id": self.franchise_id,
            "branch_id": self.branch_id,
            "actor_staff_id": self.actor_staff_id,
            "changes": self.changes or {},
            "occurred_at": self.occurred_at.isoformat(),
            "sequence": self.sequence,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: dict[str, Any], sequence: int | None = None) -> "ChangeEvent":
        return cls(
            entity=EntityKind(data["entity"]),
            entity_id=data["entity_id"],
            operation=ChangeOperation(data["operation"]),
            franchise_id=data["franchise_id"],
            branch_id=data.get("branch_id"),
            actor_staff_id=data.get("actor_staff_id"),
            changes=data.get("changes") or None,
            occurred_at=datetime.fromisoformat(data["occurred_at"]),
            sequence=sequence if sequence is not None else data.get("sequence"),
        )
