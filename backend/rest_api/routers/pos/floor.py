"""
Floor endpoints: tables, their open session and order placement.

Table status is driven by the order lifecycle. It cannot be set here:
the first order occupies a table and payment releases it.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.routers._common import branch_scope, current_staff
from rest_api.routers._common.outputs import order_output, session_output
from rest_api.services.domain import OrderLifecycleService, TableService
from rest_api.services.permissions import BranchScope, StaffContext
from shared.infrastructure.db import get_db
from shared.utils.admin_schemas import TableCreate, TableOutput, TableUpdate
from shared.utils.schemas import DiningSessionOutput, OrderOutput, PlaceOrderRequest


router = APIRouter(tags=["floor"])


# =============================================================================
# Tables
# =============================================================================


@router.get("/tables", response_model=list[TableOutput])
def list_tables(
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> list[TableOutput]:
    return TableService(db).list_all(ctx, scope)


@router.get("/tables/{table_id}", response_model=TableOutput)
def get_table(
    table_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> TableOutput:
    return TableService(db).get_by_id(table_id, ctx, scope)


@router.post("/tables", response_model=TableOutput, status_code=status.HTTP_201_CREATED)
def create_table(
    body: TableCreate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> TableOutput:
    return TableService(db).create(body.model_dump(), ctx, scope)


@router.patch("/tables/{table_id}", response_model=TableOutput)
def update_table(
    table_id: str,
    body: TableUpdate,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> TableOutput:
    return TableService(db).update(table_id, body.model_dump(exclude_unset=True), ctx, scope)


@router.delete("/tables/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_table(
    table_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> None:
    TableService(db).delete(table_id, ctx, scope)


# =============================================================================
# Orders on a table
# =============================================================================


@router.post(
    "/tables/{table_id}/orders",
    response_model=OrderOutput,
    status_code=status.HTTP_201_CREATED,
)
def place_order(
    table_id: str,
    body: PlaceOrderRequest,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> OrderOutput:
    """
    Place an order on a table.

    Opens a dining session (and occupies the table) when none is open,
    otherwise adds to the running session totals.
    """
    order = OrderLifecycleService(db).place_order(
        table_id,
        body.items,
        scope,
        ctx,
        notes=body.notes,
        number_of_guests=body.number_of_guests,
    )
    return order_output(order)


@router.get("/tables/{table_id}/session", response_model=DiningSessionOutput)
def get_table_session(
    table_id: str,
    db: Session = Depends(get_db),
    ctx: StaffContext = Depends(current_staff),
    scope: BranchScope = Depends(branch_scope),
) -> DiningSessionOutput:
    """The table's open session with its orders and running totals."""
    return session_output(OrderLifecycleService(db).get_active_session(table_id, scope, ctx))
