"""
Admin API router - combines all admin sub-routers.

- franchise: The caller's franchise (owner only)
- branches: Branch CRUD
- roles: Role and permission management
- staff: Staff hiring (provisioning saga), edits and deactivation
- sagas: Saga log inspection and payment resume

All routes are prefixed with /api/admin
"""

from fastapi import APIRouter

from .franchise import router as franchise_router
from .branches import router as branches_router
from .roles import router as roles_router
from .staff import router as staff_router
from .sagas import router as sagas_router


router = APIRouter(prefix="/api/admin")

router.include_router(franchise_router)
router.include_router(branches_router)
router.include_router(roles_router)
router.include_router(staff_router)
router.include_router(sagas_router)


__all__ = ["router"]
