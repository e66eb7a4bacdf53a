"""
Order / Session Lifecycle Service.

Handles the table -> dining session -> order lifecycle:
- Placing an order opens a session on an AVAILABLE table (table becomes
  OCCUPIED) or joins the open one, adding to its running totals
- Orders move IN_PROGRESS -> COMPLETED -> SERVED, or IN_PROGRESS -> CANCELLED
- Every write records change events in the same transaction

Order placement is one transaction: the table row lock, session, totals,
order, items and change events commit together or not at all.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from rest_api.models import DiningSession, MenuItem, Order, OrderItem, RestaurantTable, new_uuid, utcnow
from rest_api.services.base_service import BaseService
from rest_api.services.events import ChangeOperation, EntityKind, record_change
from rest_api.services.permissions import Action, BranchScope, Module, StaffContext
from shared.config.constants import (
    ACTIVE_ORDER_STATUSES,
    HISTORY_ORDER_STATUSES,
    ORDER_TRANSITIONS,
    Limits,
    OrderStatus,
    SessionStatus,
    TableStatus,
)
from shared.config.logging import orders_logger as logger
from shared.utils.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    SessionClosedError,
    ValidationError,
)
from shared.utils.money import ZERO, compute_tax, line_total, sum_amounts, to_decimal


class OrderLine(Protocol):
    item_id: str
    quantity: int
    item_special_requests: str | None


def assert_transition(order: Order, target: OrderStatus) -> None:
    """Raise InvalidTransitionError unless target is reachable from the order's status."""
    if target not in ORDER_TRANSITIONS[order.status]:
        raise InvalidTransitionError(
            "order", order.status.value, target.value, order_id=order.id
        )


class OrderLifecycleService(BaseService):
    """
    Domain service for dining sessions and orders.

    Usage:
        service = OrderLifecycleService(db)
        order = service.place_order(table_id, items, scope, ctx)
        service.complete_order(order.id, scope, ctx)
        service.mark_served(order.id, scope, ctx)
    """

    # =========================================================================
    # Placement
    # =========================================================================

    def place_order(
        self,
        table_id: str,
        items: Sequence[OrderLine],
        scope: BranchScope,
        ctx: StaffContext,
        *,
        notes: str | None = None,
        number_of_guests: int | None = None,
    ) -> Order:
        """
        Place an order on a table.

        Raises:
            CapabilityError: Role lacks tableOrders_create.
            NotFoundError: Table not in the selected branch.
            ValidationError: Empty order, bad quantity or unavailable item.
            ConflictError: Another session was opened on the table concurrently.
        """
        ctx.require(Module.TABLE_ORDERS, Action.CREATE)
        branch_id = scope.require_single()

        table = self._db.scalar(
            select(RestaurantTable)
            .where(
                RestaurantTable.id == table_id,
                RestaurantTable.branch_id == branch_id,
                RestaurantTable.is_active.is_(True),
            )
            .with_for_update()
        )
        if table is None:
            raise NotFoundError("Table", table_id, branch_id=branch_id)

        menu = self._load_order_menu(items, branch_id)
        subtotal = sum_amounts(line_total(menu[line.item_id].cost, line.quantity) for line in items)
        tax = compute_tax(subtotal)
        now = utcnow()

        session = self._db.scalar(
            select(DiningSession).where(
                DiningSession.table_id == table.id,
                DiningSession.status == SessionStatus.IN_PROGRESS,
            )
        )
        if session is None:
            session = DiningSession(
                id=new_uuid(),
                branch_id=branch_id,
                table_id=table.id,
                status=SessionStatus.IN_PROGRESS,
                total_amount=ZERO,
                tax_amount=ZERO,
                number_of_guests=number_of_guests or 1,
                notes=notes,
                changed_by=ctx.staff_id,
            )
            session.set_created_by(ctx.staff_id)
            self._db.add(session)
            session_op = ChangeOperation.INSERT

            table.status = TableStatus.OCCUPIED
            table.last_status_update = now
            table.set_updated_by(ctx.staff_id)
            self._record(EntityKind.TABLE, table.id, ChangeOperation.UPDATE, branch_id, ctx,
                         {"status": TableStatus.OCCUPIED.value})
        else:
            if number_of_guests:
                session.number_of_guests = number_of_guests
            if notes:
                session.notes = notes
            session.set_updated_by(ctx.staff_id)
            session_op = ChangeOperation.UPDATE

        session.total_amount = to_decimal(session.total_amount) + subtotal
        session.tax_amount = to_decimal(session.tax_amount) + tax
        session.changed_by = ctx.staff_id

        order = Order(
            id=new_uuid(),
            branch_id=branch_id,
            dining_session_id=session.id,
            table_id=table.id,
            status=OrderStatus.IN_PROGRESS,
            total_amount=subtotal,
            tax_amount=tax,
        )
        order.set_created_by(ctx.staff_id)
        order.items = [
            OrderItem(
                item_id=line.item_id,
                quantity=line.quantity,
                item_special_requests=line.item_special_requests,
            )
            for line in items
        ]
        self._db.add(order)

        self._record(EntityKind.DINING_SESSION, session.id, session_op, branch_id, ctx,
                     {"status": SessionStatus.IN_PROGRESS.value})
        self._record(EntityKind.ORDER, order.id, ChangeOperation.INSERT, branch_id, ctx,
                     {"status": OrderStatus.IN_PROGRESS.value, "dining_session_id": session.id})

        self._commit(
            "place order",
            conflict_detail=f"Table {table.table_number} already has an open dining session",
        )
        self._db.refresh(order)

        logger.info(
            "Order placed",
            order_id=order.id,
            session_id=session.id,
            table_id=table.id,
            items_count=len(items),
            new_session=session_op == ChangeOperation.INSERT,
            staff_id=ctx.staff_id,
        )
        return order

    def _load_order_menu(self, items: Sequence[OrderLine], branch_id: str) -> dict[str, MenuItem]:
        if not items:
            raise ValidationError("Order must contain at least one item")
        if len(items) > Limits.MAX_ITEMS_PER_ORDER:
            raise ValidationError(
                f"Order cannot contain more than {Limits.MAX_ITEMS_PER_ORDER} items"
            )
        for line in items:
            if line.quantity <= 0 or line.quantity > Limits.MAX_QUANTITY_PER_ITEM:
                raise ValidationError(
                    f"Quantity must be between 1 and {Limits.MAX_QUANTITY_PER_ITEM}",
                    field="quantity",
                    value=line.quantity,
                )

        item_ids = {line.item_id for line in items}
        menu = {
            m.id: m
            for m in self._db.execute(
                select(MenuItem).where(
                    MenuItem.id.in_(item_ids),
                    MenuItem.branch_id == branch_id,
                    MenuItem.is_active.is_(True),
                    MenuItem.is_available.is_(True),
                )
            ).scalars().all()
        }
        missing = sorted(item_ids - menu.keys())
        if missing:
            raise ValidationError(
                f"Menu item {missing[0]} is not available in this branch",
                item_ids=missing,
                branch_id=branch_id,
            )
        return menu

    # =========================================================================
    # Transitions
    # =========================================================================

    def complete_order(self, order_id: str, scope: BranchScope, ctx: StaffContext) -> Order:
        """Kitchen ready: IN_PROGRESS -> COMPLETED."""
        ctx.require(Module.ACTIVE_ORDERS, Action.UPDATE)
        scope.require_single()
        order = self._get_order(order_id, scope, lock=True)
        assert_transition(order, OrderStatus.COMPLETED)

        order.status = OrderStatus.COMPLETED
        order.completed_at = utcnow()
        return self._save_transition(order, ctx, "complete order")

    def mark_served(self, order_id: str, scope: BranchScope, ctx: StaffContext) -> Order:
        """COMPLETED -> SERVED, recording the acting staff member as waiter."""
        ctx.require(Module.ACTIVE_ORDERS, Action.UPDATE)
        scope.require_single()
        order = self._get_order(order_id, scope, lock=True)
        assert_transition(order, OrderStatus.SERVED)

        order.status = OrderStatus.SERVED
        order.waiter_id = ctx.staff_id
        order.served_at = utcnow()
        return self._save_transition(order, ctx, "serve order")

    def cancel_order(self, order_id: str, scope: BranchScope, ctx: StaffContext) -> Order:
        """
        Void an order still in the kitchen: IN_PROGRESS -> CANCELLED.

        The order's subtotal and tax are taken back off the session totals.

        Raises:
            SessionClosedError: The session has already been paid.
        """
        ctx.require(Module.TABLE_ORDERS, Action.VOID)
        scope.require_single()
        order = self._get_order(order_id, scope, lock=True)
        assert_transition(order, OrderStatus.CANCELLED)

        session = self._db.scalar(
            select(DiningSession)
            .where(DiningSession.id == order.dining_session_id)
            .with_for_update()
        )
        if session.status != SessionStatus.IN_PROGRESS:
            raise SessionClosedError(session.id, order_id=order.id)

        session.total_amount = to_decimal(session.total_amount) - to_decimal(order.total_amount)
        session.tax_amount = to_decimal(session.tax_amount) - to_decimal(order.tax_amount)
        session.changed_by = ctx.staff_id
        session.set_updated_by(ctx.staff_id)
        self._record(EntityKind.DINING_SESSION, session.id, ChangeOperation.UPDATE,
                     session.branch_id, ctx, {"total_amount": str(session.total_amount)})

        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utcnow()
        return self._save_transition(order, ctx, "cancel order")

    def _save_transition(self, order: Order, ctx: StaffContext, operation: str) -> Order:
        order.set_updated_by(ctx.staff_id)
        self._record(EntityKind.ORDER, order.id, ChangeOperation.UPDATE, order.branch_id, ctx,
                     {"status": order.status.value})
        self._commit(operation)
        self._db.refresh(order)
        logger.info("Order status changed", order_id=order.id, status=order.status.value,
                    staff_id=ctx.staff_id)
        return order

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, order_id: str, scope: BranchScope, ctx: StaffContext) -> Order:
        ctx.require(Module.TABLE_ORDERS, Action.VIEW)
        return self._get_order(order_id, scope)

    def get_active_session(
        self, table_id: str, scope: BranchScope, ctx: StaffContext
    ) -> DiningSession:
        """
        The open session of a table with its orders and items.

        Raises:
            NotFoundError: Table not in scope or no session open.
        """
        ctx.require(Module.TABLE_ORDERS, Action.VIEW)
        table = self._db.scalar(
            scope.apply(select(RestaurantTable), RestaurantTable.branch_id)
            .where(RestaurantTable.id == table_id)
        )
        if table is None:
            raise NotFoundError("Table", table_id)

        session = self._db.scalar(
            select(DiningSession)
            .options(
                selectinload(DiningSession.orders)
                .selectinload(Order.items)
                .selectinload(OrderItem.menu_item)
            )
            .where(
                DiningSession.table_id == table.id,
                DiningSession.status == SessionStatus.IN_PROGRESS,
            )
        )
        if session is None:
            raise NotFoundError("Active dining session", table_id=table_id)
        return session

    def list_active_orders(self, scope: BranchScope, ctx: StaffContext) -> list[Order]:
        """Kitchen board: IN_PROGRESS and COMPLETED orders, oldest first."""
        ctx.require(Module.ACTIVE_ORDERS, Action.VIEW)
        stmt = (
            scope.apply(self._orders_query(), Order.branch_id)
            .where(Order.status.in_(ACTIVE_ORDER_STATUSES))
            .order_by(Order.created_at.asc())
        )
        return list(self._db.execute(stmt).scalars().all())

    def order_history(
        self,
        scope: BranchScope,
        ctx: StaffContext,
        *,
        status: OrderStatus | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Order]:
        """
        SERVED and CANCELLED orders, newest first.

        Raises:
            ValidationError: status filter is not a history status.
        """
        ctx.require(Module.ORDER_HISTORY, Action.VIEW)
        if status is not None and status not in HISTORY_ORDER_STATUSES:
            raise ValidationError(f"Order history cannot be filtered by status '{status.value}'")

        statuses = (status,) if status is not None else HISTORY_ORDER_STATUSES
        stmt = scope.apply(self._orders_query(), Order.branch_id).where(Order.status.in_(statuses))
        if date_from is not None:
            stmt = stmt.where(Order.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.where(Order.created_at <= date_to)
        stmt = stmt.order_by(Order.created_at.desc()).offset(max(0, offset)).limit(min(max(1, limit), 200))
        return list(self._db.execute(stmt).scalars().all())

    # =========================================================================
    # Helpers
    # =========================================================================

    def _orders_query(self):
        return select(Order).options(
            selectinload(Order.items).selectinload(OrderItem.menu_item),
            selectinload(Order.table),
        )

    def _get_order(self, order_id: str, scope: BranchScope, *, lock: bool = False) -> Order:
        stmt = scope.apply(self._orders_query(), Order.branch_id).where(Order.id == order_id)
        if lock:
            stmt = stmt.with_for_update()
        order = self._db.scalar(stmt)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _record(
        self,
        entity: EntityKind,
        entity_id: str,
        operation: ChangeOperation,
        branch_id: str,
        ctx: StaffContext,
        changes: dict | None = None,
    ) -> None:
        record_change(
            self._db,
            entity,
            entity_id,
            operation,
            franchise_id=ctx.franchise_id,
            branch_id=branch_id,
            actor_staff_id=ctx.staff_id,
            changes=changes,
        )
