"""
Staff management endpoints.

Hiring goes through the provisioning saga: login account, staff row and
the link between them are created as logged steps and undone in reverse
if a later step fails.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rest_api.routers._common import current_staff
from rest_api.routers._common.outputs import staff_output
from rest_api.services.domain import StaffService, default_staff_scope
from rest_api.services.permissions import StaffContext
from shared.infrastructure.db import get_db
from shared.utils.admin_schemas import StaffOutput, StaffProvisionRequest, StaffUpdate


router = APIRouter(tags=["admin-staff"])


@router.get("/staff", response_model=list[StaffOutput])
def list_staff(
    branch_id: str | None = Query(default=None, description='Branch id, or "all" (owners)'),
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> list[StaffOutput]:
    scope = default_staff_scope(db, ctx, branch_id)
    members = StaffService(db).list_staff(ctx, scope, include_inactive=include_inactive)
    return [staff_output(s) for s in members]


@router.get("/staff/{staff_id}", response_model=StaffOutput)
def get_staff(
    staff_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> StaffOutput:
    return staff_output(StaffService(db).get_staff(staff_id, ctx))


@router.post("/staff", response_model=StaffOutput, status_code=status.HTTP_201_CREATED)
def provision_staff(
    body: StaffProvisionRequest,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> StaffOutput:
    return staff_output(StaffService(db).provision(body, ctx))


@router.patch("/staff/{staff_id}", response_model=StaffOutput)
def update_staff(
    staff_id: str,
    body: StaffUpdate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> StaffOutput:
    return staff_output(StaffService(db).update(staff_id, body.model_dump(exclude_unset=True), ctx))


@router.delete("/staff/{staff_id}", response_model=StaffOutput)
def deactivate_staff(
    staff_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> StaffOutput:
    """Set the staff member INACTIVE. Their next request gets a 401."""
    return staff_output(StaffService(db).deactivate(staff_id, ctx))
