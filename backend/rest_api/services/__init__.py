"""
Services module for business logic.

Layout:
- domain/: Application services (lifecycle, payments, staff, admin CRUD, reports)
- permissions/: Capability registry, per-staff cache, StaffContext, BranchScope
- events/: Change events, transactional outbox and its Redis publisher

Usage:
    from rest_api.services.domain import OrderLifecycleService
    service = OrderLifecycleService(db)
    order = service.place_order(table_id, items, scope, ctx)
"""

from .base_service import (
    BaseService,
    BaseCRUDService,
    BranchScopedService,
)

__all__ = [
    "BaseService",
    "BaseCRUDService",
    "BranchScopedService",
]
