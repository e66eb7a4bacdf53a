"""
Centralized constants for the backend application.
Avoids magic strings for statuses shared by models, services and schemas.

Usage:
    from shared.config.constants import OrderStatus, ORDER_TRANSITIONS

    if target in ORDER_TRANSITIONS[order.status]:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# Organisation
# =============================================================================


class FranchiseStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class BranchStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TEMPORARILY_CLOSED = "TEMPORARILY_CLOSED"


class StaffStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"


# =============================================================================
# Floor / lifecycle
# =============================================================================


class TableStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"


class SessionStatus(str, Enum):
    """Dining session status. COMPLETED is terminal (set on payment)."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class OrderStatus(str, Enum):
    """Kitchen ticket status for a single order within a session."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"  # Kitchen ready
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


# Allowed order transitions. Anything not listed is rejected.
ORDER_TRANSITIONS: Final[dict[OrderStatus, frozenset[OrderStatus]]] = {
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.SERVED}),
    OrderStatus.SERVED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Status groups used by the order boards
ACTIVE_ORDER_STATUSES: Final[tuple[OrderStatus, ...]] = (OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED)
HISTORY_ORDER_STATUSES: Final[tuple[OrderStatus, ...]] = (OrderStatus.SERVED, OrderStatus.CANCELLED)
SALES_ORDER_STATUSES: Final[tuple[OrderStatus, ...]] = (OrderStatus.SERVED, OrderStatus.COMPLETED)


# =============================================================================
# Billing
# =============================================================================


class PaymentStatus(str, Enum):
    COMPLETED = "COMPLETED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    OTHER = "OTHER"


# =============================================================================
# Saga log
# =============================================================================


class SagaKind(str, Enum):
    PAYMENT_FINALIZE = "PAYMENT_FINALIZE"
    STAFF_PROVISION = "STAFF_PROVISION"


class SagaStatus(str, Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"  # Stopped part-way, prior steps kept, can be resumed
    COMPENSATED = "COMPENSATED"  # Stopped part-way, prior steps undone
    COMPENSATION_FAILED = "COMPENSATION_FAILED"  # Undo itself failed, orphans possible


class SagaStepStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    COMPENSATED = "COMPENSATED"
    COMPENSATION_FAILED = "COMPENSATION_FAILED"


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Input validation limits."""

    MAX_ITEMS_PER_ORDER: Final[int] = 50
    MAX_QUANTITY_PER_ITEM: Final[int] = 99
    MAX_GUESTS_PER_SESSION: Final[int] = 50
    MAX_SPECIAL_REQUEST_LENGTH: Final[int] = 500
    MAX_NOTES_LENGTH: Final[int] = 1000
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200
