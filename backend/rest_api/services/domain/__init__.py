"""
Domain Services - Application Layer.

Services contain business logic and orchestrate operations. They take an
explicit StaffContext (who is acting) and BranchScope (which branches)
and record change events for every write.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import OrderLifecycleService

    # In router
    service = OrderLifecycleService(db)
    order = service.place_order(table_id, body.items, scope, ctx)
"""

from .identity_service import IdentityResolver
from .order_service import OrderLifecycleService
from .payment_service import PaymentFinalizer, PAYMENT_STEPS
from .staff_service import StaffService, PROVISION_STEPS, default_staff_scope
from .role_service import RoleService
from .branch_service import BranchService
from .franchise_service import FranchiseService
from .menu_service import MenuService
from .table_service import TableService
from .report_service import ReportService
from .saga_log import get_saga, list_sagas

__all__ = [
    # Identity
    "IdentityResolver",
    # Lifecycle
    "OrderLifecycleService",
    "PaymentFinalizer",
    "PAYMENT_STEPS",
    # Administration
    "StaffService",
    "PROVISION_STEPS",
    "default_staff_scope",
    "RoleService",
    "BranchService",
    "FranchiseService",
    "MenuService",
    "TableService",
    # Reports
    "ReportService",
    # Saga log
    "get_saga",
    "list_sagas",
]
