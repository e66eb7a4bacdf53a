"""
Branch management endpoints.

Owners see every branch of the franchise, other staff only their own.
Writes need the branch_create/edit/delete capabilities.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.routers._common import current_staff
from rest_api.services.domain import BranchService
from rest_api.services.permissions import StaffContext
from shared.infrastructure.db import get_db
from shared.utils.admin_schemas import BranchCreate, BranchOutput, BranchUpdate


router = APIRouter(tags=["admin-branches"])


@router.get("/branches", response_model=list[BranchOutput])
def list_branches(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> list[BranchOutput]:
    return BranchService(db).list_all(ctx, include_inactive=include_inactive)


@router.get("/branches/{branch_id}", response_model=BranchOutput)
def get_branch(
    branch_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> BranchOutput:
    return BranchService(db).get_by_id(branch_id, ctx)


@router.post("/branches", response_model=BranchOutput, status_code=status.HTTP_201_CREATED)
def create_branch(
    body: BranchCreate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> BranchOutput:
    return BranchService(db).create(body.model_dump(), ctx)


@router.patch("/branches/{branch_id}", response_model=BranchOutput)
def update_branch(
    branch_id: str,
    body: BranchUpdate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> BranchOutput:
    return BranchService(db).update(branch_id, body.model_dump(exclude_unset=True), ctx)


@router.delete("/branches/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_branch(
    branch_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> None:
    """Soft delete. Refused for the caller's own branch or while tables are occupied."""
    BranchService(db).delete(branch_id, ctx)
