"""
Franchise endpoints (owner only).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.routers._common import current_staff
from rest_api.services.domain import FranchiseService
from rest_api.services.permissions import StaffContext
from shared.infrastructure.db import get_db
from shared.utils.admin_schemas import FranchiseOutput, FranchiseUpdate


router = APIRouter(tags=["admin-franchise"])


@router.get("/franchise", response_model=FranchiseOutput)
def get_franchise(
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> FranchiseOutput:
    return FranchiseOutput.model_validate(FranchiseService(db).get_own(ctx))


@router.patch("/franchise", response_model=FranchiseOutput)
def update_franchise(
    body: FranchiseUpdate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> FranchiseOutput:
    franchise = FranchiseService(db).update_own(body.model_dump(exclude_unset=True), ctx)
    return FranchiseOutput.model_validate(franchise)
