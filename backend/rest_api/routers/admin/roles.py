"""
Role management endpoints.

A role is a named set of permission keys ("{module}_{action}").
Owner roles are seeded with the franchise and cannot be created here.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.routers._common import current_staff
from rest_api.services.domain import RoleService
from rest_api.services.permissions import ALL_PERMISSION_KEYS, StaffContext
from shared.infrastructure.db import get_db
from shared.utils.admin_schemas import RoleCreate, RoleOutput, RoleUpdate


router = APIRouter(tags=["admin-roles"])


@router.get("/roles", response_model=list[RoleOutput])
def list_roles(
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> list[RoleOutput]:
    return RoleService(db).list_all(ctx)


@router.get("/roles/permission-keys", response_model=list[str])
def list_permission_keys(ctx: StaffContext = Depends(current_staff)) -> list[str]:
    """Every valid permission key, for role editors."""
    return sorted(ALL_PERMISSION_KEYS)


@router.get("/roles/{role_id}", response_model=RoleOutput)
def get_role(
    role_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> RoleOutput:
    return RoleService(db).get_by_id(role_id, ctx)


@router.post("/roles", response_model=RoleOutput, status_code=status.HTTP_201_CREATED)
def create_role(
    body: RoleCreate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> RoleOutput:
    return RoleService(db).create(body.model_dump(), ctx)


@router.patch("/roles/{role_id}", response_model=RoleOutput)
def update_role(
    role_id: str,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> RoleOutput:
    return RoleService(db).update(role_id, body.model_dump(exclude_unset=True), ctx)


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    role_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> None:
    RoleService(db).delete(role_id, ctx)
