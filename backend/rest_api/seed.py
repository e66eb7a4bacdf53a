"""
Seed data for development and testing.
Creates a demo franchise with one branch, the standard roles, one staff
member per role, a few tables and a small menu.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import (
    AuthPrincipal,
    AuthStaffMapping,
    Branch,
    Franchise,
    MenuItem,
    RestaurantTable,
    Role,
    Staff,
)
from shared.config.logging import get_logger
from shared.security.password import hash_password

logger = get_logger(__name__)


# =============================================================================
# Constants for seed data
# =============================================================================

DEMO_FRANCHISE_CODE = "DEMO"
DEMO_BRANCH_CODE = "MAIN"
DEMO_TABLE_COUNT = 6

MANAGER_PERMISSIONS = [
    "branch_view", "branch_edit",
    "roles_view",
    "staff_view", "staff_create", "staff_edit", "staff_delete",
    "tables_view", "tables_edit", "tables_assign",
    "menu_view", "menu_create", "menu_edit", "menu_delete",
    "analytics_view", "analytics_export",
    "orderHistory_view", "orderHistory_export",
    "activeOrders_view", "activeOrders_update",
    "tableOrders_view", "tableOrders_create", "tableOrders_edit", "tableOrders_void",
    "payments_view", "payments_process",
]

WAITER_PERMISSIONS = [
    "tables_view",
    "menu_view",
    "orderHistory_view",
    "activeOrders_view", "activeOrders_update",
    "tableOrders_view", "tableOrders_create", "tableOrders_edit",
    "payments_view", "payments_process",
]

KITCHEN_PERMISSIONS = [
    "menu_view",
    "activeOrders_view", "activeOrders_update",
]

# (email, password, first name, last name, staff code, role name)
DEMO_STAFF = [
    ("owner@demo.com", "owner123", "Olivia", "Owner", "OWN-001", "Owner"),
    ("manager@demo.com", "manager123", "Carlos", "Manager", "MGR-001", "Manager"),
    ("waiter@demo.com", "waiter123", "Juan", "Waiter", "WTR-001", "Waiter"),
    ("kitchen@demo.com", "kitchen123", "Maria", "Cook", "KIT-001", "Kitchen"),
]

DEMO_MENU = [
    ("Margherita Pizza", "Mains", Decimal("12.99")),
    ("Grilled Salmon", "Mains", Decimal("18.50")),
    ("Caesar Salad", "Starters", Decimal("8.99")),
    ("Tiramisu", "Desserts", Decimal("6.75")),
    ("Lemonade", "Drinks", Decimal("3.50")),
]


def seed(db: Session) -> None:
    """
    Seed the database with initial data.
    Idempotent: only inserts if the demo franchise doesn't exist.
    """
    if db.scalar(select(Franchise.id).where(Franchise.code == DEMO_FRANCHISE_CODE)):
        logger.info("Database already seeded, skipping")
        return

    logger.info("Seeding database")

    franchise = Franchise(
        name="Demo Restaurants",
        code=DEMO_FRANCHISE_CODE,
        owner_name="Olivia Owner",
        contact_email="owner@demo.com",
    )
    db.add(franchise)
    db.flush()

    branch = Branch(
        franchise_id=franchise.id,
        name="Main Street",
        code=DEMO_BRANCH_CODE,
        number_of_tables=DEMO_TABLE_COUNT,
        address="500 Main Street",
        city="Springfield",
        opening_time="09:00",
        closing_time="23:00",
    )
    db.add(branch)
    db.flush()

    roles = {
        "Owner": Role(franchise_id=franchise.id, name="Owner", is_owner=True, permissions={},
                      description="Full access to the franchise"),
        "Manager": Role(franchise_id=franchise.id, name="Manager",
                        permissions={key: True for key in MANAGER_PERMISSIONS}),
        "Waiter": Role(franchise_id=franchise.id, name="Waiter",
                       permissions={key: True for key in WAITER_PERMISSIONS}),
        "Kitchen": Role(franchise_id=franchise.id, name="Kitchen",
                        permissions={key: True for key in KITCHEN_PERMISSIONS}),
    }
    db.add_all(roles.values())
    db.flush()

    for email, password, first_name, last_name, code, role_name in DEMO_STAFF:
        principal = AuthPrincipal(email=email, password_hash=hash_password(password))
        staff = Staff(
            franchise_id=franchise.id,
            branch_id=branch.id,
            role_id=roles[role_name].id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            code=code,
        )
        db.add_all([principal, staff])
        db.flush()
        db.add(AuthStaffMapping(principal_id=principal.id, staff_id=staff.id))

    db.add_all([
        RestaurantTable(branch_id=branch.id, table_number=str(n), capacity=4)
        for n in range(1, DEMO_TABLE_COUNT + 1)
    ])
    db.add_all([
        MenuItem(branch_id=branch.id, name_of_item=name, category=category, cost=cost)
        for name, category, cost in DEMO_MENU
    ])

    db.commit()
    logger.info(
        "Database seeded",
        franchise_id=franchise.id,
        branch_id=branch.id,
        staff=len(DEMO_STAFF),
        tables=DEMO_TABLE_COUNT,
        menu_items=len(DEMO_MENU),
    )
