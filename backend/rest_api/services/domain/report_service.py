"""
Reports / analytics service.

Aggregates completed and served orders in a date range:
- Totals, order count and average order value (subtotal + tax)
- Sales per calendar day, with empty days filled in
- Top items by quantity, revenue priced at the current menu cost
- Orders per hour of day (all 24 hours present)
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from rest_api.models import Order, OrderItem
from rest_api.services.base_service import BaseService
from rest_api.services.permissions import Action, BranchScope, Module, StaffContext
from shared.config.constants import SALES_ORDER_STATUSES
from shared.utils.exceptions import ValidationError
from shared.utils.money import ZERO, display_amount, line_total, to_decimal
from shared.utils.schemas import AnalyticsOutput, DailySales, HourlyOrders, TopItem

TOP_ITEMS_LIMIT = 10
MAX_RANGE_DAYS = 366


class ReportService(BaseService):
    """Sales analytics over a branch scope."""

    def sales_summary(
        self,
        scope: BranchScope,
        ctx: StaffContext,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> AnalyticsOutput:
        """
        Raises:
            CapabilityError: Role lacks analytics_view.
            ValidationError: Inverted or over-long date range.
        """
        ctx.require(Module.ANALYTICS, Action.VIEW)
        date_to = date_to or datetime.now(timezone.utc).date()
        date_from = date_from or date_to - timedelta(days=6)
        if date_from > date_to:
            raise ValidationError("date_from must not be after date_to")
        if (date_to - date_from).days > MAX_RANGE_DAYS:
            raise ValidationError(f"Date range cannot exceed {MAX_RANGE_DAYS} days")

        start = datetime.combine(date_from, time.min, tzinfo=timezone.utc)
        end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)

        orders = self._db.execute(
            scope.apply(select(Order), Order.branch_id)
            .options(selectinload(Order.items).selectinload(OrderItem.menu_item))
            .where(
                Order.status.in_(SALES_ORDER_STATUSES),
                Order.created_at >= start,
                Order.created_at < end,
            )
            .order_by(Order.created_at)
        ).scalars().all()

        total_sales = ZERO
        total_tax = ZERO
        by_day: dict[date, list] = {
            date_from + timedelta(days=i): [ZERO, 0]
            for i in range((date_to - date_from).days + 1)
        }
        by_hour = [0] * 24
        items: dict[str, dict] = defaultdict(lambda: {"name": "", "quantity": 0, "revenue": ZERO})

        for order in orders:
            subtotal = to_decimal(order.total_amount)
            tax = to_decimal(order.tax_amount)
            total_sales += subtotal
            total_tax += tax

            day = by_day.setdefault(order.created_at.date(), [ZERO, 0])
            day[0] += subtotal + tax
            day[1] += 1
            by_hour[order.created_at.hour] += 1

            for item in order.items:
                stats = items[item.item_id]
                stats["name"] = item.menu_item.name_of_item if item.menu_item else item.item_id
                stats["quantity"] += item.quantity
                cost = item.menu_item.cost if item.menu_item else ZERO
                stats["revenue"] += line_total(cost, item.quantity)

        revenue = total_sales + total_tax
        count = len(orders)
        average = revenue / count if count else ZERO

        top = sorted(items.items(), key=lambda kv: (-kv[1]["quantity"], -kv[1]["revenue"], kv[1]["name"]))
        return AnalyticsOutput(
            date_from=date_from,
            date_to=date_to,
            order_count=count,
            total_sales=total_sales,
            total_tax=total_tax,
            total_revenue=revenue,
            average_order_value=average,
            total_revenue_display=display_amount(revenue),
            average_order_value_display=display_amount(average),
            sales_by_date=[
                DailySales(date=d, total=v[0], total_display=display_amount(v[0]), orders=v[1])
                for d, v in sorted(by_day.items())
            ],
            top_items=[
                TopItem(
                    item_id=item_id,
                    name=stats["name"],
                    quantity=stats["quantity"],
                    revenue=stats["revenue"],
                    revenue_display=display_amount(stats["revenue"]),
                )
                for item_id, stats in top[:TOP_ITEMS_LIMIT]
            ],
            peak_hours=[HourlyOrders(hour=h, orders=n) for h, n in enumerate(by_hour)],
        )
