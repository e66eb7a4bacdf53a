"""
Saga log endpoints.

Lists multi-step writes that stopped part-way and lets a failed payment
finalization be resumed from the step that failed.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rest_api.routers._common import current_staff
from rest_api.routers._common.outputs import payment_output, saga_output
from rest_api.services.domain import PaymentFinalizer, get_saga, list_sagas
from rest_api.services.permissions import StaffContext
from shared.config.constants import SagaKind, SagaStatus
from shared.infrastructure.db import get_db
from shared.utils.admin_schemas import SagaOutput
from shared.utils.schemas import PaymentOutput


router = APIRouter(tags=["admin-sagas"])


@router.get("/sagas", response_model=list[SagaOutput])
def list_franchise_sagas(
    status: SagaStatus | None = None,
    kind: SagaKind | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> list[SagaOutput]:
    ctx.require_owner("view the saga log")
    sagas = list_sagas(db, franchise_id=ctx.franchise_id, status=status, kind=kind, limit=limit)
    return [saga_output(s) for s in sagas]


@router.get("/sagas/{saga_id}", response_model=SagaOutput)
def get_franchise_saga(
    saga_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> SagaOutput:
    ctx.require_owner("view the saga log")
    return saga_output(get_saga(db, saga_id, ctx.franchise_id))


@router.post("/sagas/{saga_id}/resume", response_model=PaymentOutput)
def resume_saga(
    saga_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
) -> PaymentOutput:
    """Re-run the remaining steps of a FAILED payment finalization."""
    payment, saga = PaymentFinalizer(db).resume(saga_id, ctx)
    return payment_output(payment, saga)
