"""
Point-of-sale routers, all scoped to a branch.

Routes live under /api/branches/{branch_id}/ where branch_id is a branch
of the caller's franchise, or "all" (owners, read-only views).

- floor: Tables, table sessions and order placement
- menu: Menu items
- orders: Kitchen board, transitions and history
- payments: Session payment (payment saga)
- reports: Sales analytics
- changes: Change feed (HTTP polling) and its WebSocket relay
"""

from fastapi import APIRouter

from .floor import router as floor_router
from .menu import router as menu_router
from .orders import router as orders_router
from .payments import router as payments_router
from .reports import router as reports_router
from .changes import router as changes_router, ws_router


router = APIRouter(prefix="/api/branches/{branch_id}")

router.include_router(floor_router)
router.include_router(menu_router)
router.include_router(orders_router)
router.include_router(payments_router)
router.include_router(reports_router)
router.include_router(changes_router)


__all__ = ["router", "ws_router"]
