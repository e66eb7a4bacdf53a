"""
SQLAlchemy ORM models for the restaurant POS back office.

Modules:
- base: Base class and AuditMixin
- franchise: Franchise, Branch
- staff: Role, Staff, AuthPrincipal, AuthStaffMapping
- table: RestaurantTable, DiningSession
- menu: MenuItem
- order: Order, OrderItem
- billing: Payment
- outbox: OutboxEvent, OutboxStatus (change feed)
- saga: SagaLog, SagaStep (multi-step write log)
"""

from .base import AuditMixin, Base, new_uuid, utcnow
from .franchise import Branch, Franchise
from .staff import AuthPrincipal, AuthStaffMapping, Role, Staff
from .table import DiningSession, RestaurantTable
from .menu import MenuItem
from .order import Order, OrderItem
from .billing import Payment
from .outbox import OutboxEvent, OutboxStatus
from .saga import SagaLog, SagaStep

__all__ = [
    "Base",
    "AuditMixin",
    "new_uuid",
    "utcnow",
    "Franchise",
    "Branch",
    "Role",
    "Staff",
    "AuthPrincipal",
    "AuthStaffMapping",
    "RestaurantTable",
    "DiningSession",
    "MenuItem",
    "Order",
    "OrderItem",
    "Payment",
    "OutboxEvent",
    "OutboxStatus",
    "SagaLog",
    "SagaStep",
]
