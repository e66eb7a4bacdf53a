"""
Response builders for the models whose output carries derived fields
(display strings, live menu prices, nested orders).

Plain admin entities use `Schema.model_validate(obj)` directly.
"""

from rest_api.models import DiningSession, Order, Payment, SagaLog, Staff
from rest_api.services.events import ChangeEvent
from shared.utils.admin_schemas import SagaOutput, StaffOutput
from shared.utils.money import display_amount
from shared.utils.schemas import (
    ChangeEventOutput,
    DiningSessionOutput,
    OrderItemOutput,
    OrderOutput,
    PaymentOutput,
)


def order_output(order: Order) -> OrderOutput:
    return OrderOutput(
        id=order.id,
        branch_id=order.branch_id,
        dining_session_id=order.dining_session_id,
        table_id=order.table_id,
        table_number=order.table.table_number if order.table else None,
        status=order.status,
        total_amount=order.total_amount,
        tax_amount=order.tax_amount,
        total_display=display_amount(order.total_amount),
        tax_display=display_amount(order.tax_amount),
        waiter_id=order.waiter_id,
        created_by_id=order.created_by_id,
        created_at=order.created_at,
        completed_at=order.completed_at,
        served_at=order.served_at,
        cancelled_at=order.cancelled_at,
        items=[
            OrderItemOutput(
                id=item.id,
                item_id=item.item_id,
                # Items are priced by reference: name and cost come from the menu row
                name_of_item=item.menu_item.name_of_item if item.menu_item else None,
                unit_cost=item.menu_item.cost if item.menu_item else None,
                quantity=item.quantity,
                item_special_requests=item.item_special_requests,
            )
            for item in order.items
        ],
    )


def session_output(session: DiningSession) -> DiningSessionOutput:
    return DiningSessionOutput(
        id=session.id,
        branch_id=session.branch_id,
        table_id=session.table_id,
        status=session.status,
        total_amount=session.total_amount,
        tax_amount=session.tax_amount,
        grand_total=session.grand_total,
        total_display=display_amount(session.total_amount),
        tax_display=display_amount(session.tax_amount),
        grand_total_display=display_amount(session.grand_total),
        number_of_guests=session.number_of_guests,
        notes=session.notes,
        is_bill_printed=session.is_bill_printed,
        created_at=session.created_at,
        completed_at=session.completed_at,
        orders=[order_output(o) for o in session.orders],
    )


def payment_output(payment: Payment, saga: SagaLog) -> PaymentOutput:
    return PaymentOutput(
        id=payment.id,
        branch_id=payment.branch_id,
        dining_session_id=payment.dining_session_id,
        order_id=payment.order_id,
        amount=payment.amount,
        amount_display=display_amount(payment.amount),
        method=payment.method,
        status=payment.status,
        processed_by=payment.processed_by,
        saga_id=saga.id,
        created_at=payment.created_at,
    )


def staff_output(staff: Staff) -> StaffOutput:
    output = StaffOutput.model_validate(staff)
    output.role_name = staff.role.name if staff.role else None
    return output


def saga_output(saga: SagaLog) -> SagaOutput:
    return SagaOutput.model_validate(saga)


def change_output(event: ChangeEvent) -> ChangeEventOutput:
    return ChangeEventOutput(**event.to_dict())
