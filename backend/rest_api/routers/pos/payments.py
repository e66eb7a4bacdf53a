"""
Session payment endpoint.

Payment runs as a logged saga: record payment, close session, release
table. A failure part-way returns 500 with the saga id; the saga can be
resumed from /api/admin/sagas/{saga_id}/resume.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.routers._common import branch_scope, current_staff
from rest_api.routers._common.outputs import payment_output
from rest_api.services.domain import PaymentFinalizer
from rest_api.services.permissions import BranchScope, StaffContext
from shared.infrastructure.db import get_db
from shared.utils.schemas import PartialFailureResponse, PaymentOutput, PaymentRequest


router = APIRouter(tags=["payments"])


@router.post(
    "/sessions/{session_id}/payment",
    response_model=PaymentOutput,
    status_code=status.HTTP_201_CREATED,
    responses={500: {"model": PartialFailureResponse}},
)
def pay_session(
    session_id: str,
    body: PaymentRequest | None = None,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> PaymentOutput:
    """Pay the session's total plus tax, close it and free the table."""
    method = body.method if body else PaymentRequest().method
    payment, saga = PaymentFinalizer(db).finalize(session_id, scope, ctx, method)
    return payment_output(payment, saga)
