"""
Order endpoints: kitchen board, status transitions and history.

Transitions follow IN_PROGRESS -> COMPLETED -> SERVED, or
IN_PROGRESS -> CANCELLED. Anything else is a 400.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.routers._common import Pagination, branch_scope, current_staff, get_pagination
from rest_api.routers._common.outputs import order_output
from rest_api.services.domain import OrderLifecycleService
from rest_api.services.permissions import BranchScope, StaffContext
from shared.config.constants import OrderStatus
from shared.infrastructure.db import get_db
from shared.utils.schemas import OrderOutput


router = APIRouter(tags=["orders"])


@router.get("/orders/active", response_model=list[OrderOutput])
def list_active_orders(
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> list[OrderOutput]:
    """Orders still in the kitchen or waiting to be served, oldest first."""
    return [order_output(o) for o in OrderLifecycleService(db).list_active_orders(scope, ctx)]


@router.get("/orders/history", response_model=list[OrderOutput])
def order_history(
    status: OrderStatus | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> list[OrderOutput]:
    """Served and cancelled orders, newest first."""
    orders = OrderLifecycleService(db).order_history(
        scope,
        ctx,
        status=status,
        date_from=date_from,
        date_to=date_to,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return [order_output(o) for o in orders]


@router.get("/orders/{order_id}", response_model=OrderOutput)
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> OrderOutput:
    return order_output(OrderLifecycleService(db).get_order(order_id, scope, ctx))


@router.post("/orders/{order_id}/complete", response_model=OrderOutput)
def complete_order(
    order_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> OrderOutput:
    """Kitchen marks the order ready."""
    return order_output(OrderLifecycleService(db).complete_order(order_id, scope, ctx))


@router.post("/orders/{order_id}/serve", response_model=OrderOutput)
def serve_order(
    order_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> OrderOutput:
    return order_output(OrderLifecycleService(db).mark_served(order_id, scope, ctx))


@router.post("/orders/{order_id}/cancel", response_model=OrderOutput)
def cancel_order(
    order_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> OrderOutput:
    """Void an order that has not left the kitchen."""
    return order_output(OrderLifecycleService(db).cancel_order(order_id, scope, ctx))
