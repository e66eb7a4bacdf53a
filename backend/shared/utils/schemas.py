"""
Shared Pydantic schemas used across the application.

Money fields are Decimal at full storage precision; each has a *_display
companion rounded half-up to two places.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, EmailStr, Field

from shared.config.constants import (
    Limits,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    SessionStatus,
)


# =============================================================================
# Common
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error body."""

    detail: str


class PartialFailureResponse(BaseModel):
    """Body of a 500 raised by a saga that stopped part-way."""

    detail: str
    saga_id: str
    failed_step: str
    completed_steps: list[str]


# =============================================================================
# Authentication Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(min_length=1)


class StaffInfo(BaseModel):
    """The resolved staff context, as returned to clients."""

    staff_id: str
    principal_id: str
    email: str
    first_name: str
    last_name: str
    franchise_id: str
    branch_id: str
    role_id: str
    role_name: str
    is_owner: bool
    permissions: list[str]


class LoginResponse(BaseModel):
    """Login response with JWT token."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds
    staff: StaffInfo


class RefreshTokenRequest(BaseModel):
    """Refresh token request body. Falls back to the refresh_token cookie."""

    refresh_token: str | None = None


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItemInput(BaseModel):
    """Input for a single line of an order."""

    item_id: str
    quantity: int = Field(ge=1, le=Limits.MAX_QUANTITY_PER_ITEM)
    item_special_requests: str | None = Field(default=None, max_length=Limits.MAX_SPECIAL_REQUEST_LENGTH)


class PlaceOrderRequest(BaseModel):
    """Request to place an order on a table."""

    items: list[OrderItemInput] = Field(min_length=1, max_length=Limits.MAX_ITEMS_PER_ORDER)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    number_of_guests: int | None = Field(default=None, ge=1, le=Limits.MAX_GUESTS_PER_SESSION)


class OrderItemOutput(BaseModel):
    id: str
    item_id: str
    name_of_item: str | None = None
    unit_cost: Decimal | None = None  # live menu price
    quantity: int
    item_special_requests: str | None = None


class OrderOutput(BaseModel):
    id: str
    branch_id: str
    dining_session_id: str
    table_id: str
    table_number: str | None = None
    status: OrderStatus
    total_amount: Decimal
    tax_amount: Decimal
    total_display: str
    tax_display: str
    waiter_id: str | None = None
    created_by_id: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    served_at: datetime | None = None
    cancelled_at: datetime | None = None
    items: list[OrderItemOutput] = Field(default_factory=list)


class DiningSessionOutput(BaseModel):
    id: str
    branch_id: str
    table_id: str
    status: SessionStatus
    total_amount: Decimal
    tax_amount: Decimal
    grand_total: Decimal
    total_display: str
    tax_display: str
    grand_total_display: str
    number_of_guests: int
    notes: str | None = None
    is_bill_printed: bool
    created_at: datetime
    completed_at: datetime | None = None
    orders: list[OrderOutput] = Field(default_factory=list)


# =============================================================================
# Payment Schemas
# =============================================================================


class PaymentRequest(BaseModel):
    method: PaymentMethod = PaymentMethod.CASH


class PaymentOutput(BaseModel):
    id: str
    branch_id: str
    dining_session_id: str
    order_id: str
    amount: Decimal
    amount_display: str
    method: PaymentMethod
    status: PaymentStatus
    processed_by: str | None = None
    saga_id: str
    created_at: datetime


# =============================================================================
# Change Feed Schemas
# =============================================================================


class ChangeEventOutput(BaseModel):
    sequence: int | None = None
    type: str
    entity: str
    entity_id: str
    operation: str
    franchise_id: str
    branch_id: str | None = None
    actor_staff_id: str | None = None
    changes: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime


class ChangeFeedOutput(BaseModel):
    events: list[ChangeEventOutput]
    cursor: int


# =============================================================================
# Analytics Schemas
# =============================================================================


class DailySales(BaseModel):
    date: date
    total: Decimal
    total_display: str
    orders: int


class TopItem(BaseModel):
    item_id: str
    name: str
    quantity: int
    revenue: Decimal  # quantity x live menu cost
    revenue_display: str


class HourlyOrders(BaseModel):
    hour: int
    orders: int


class AnalyticsOutput(BaseModel):
    date_from: date
    date_to: date
    order_count: int
    total_sales: Decimal  # item subtotals
    total_tax: Decimal
    total_revenue: Decimal  # subtotal + tax
    average_order_value: Decimal
    total_revenue_display: str
    average_order_value_display: str
    sales_by_date: list[DailySales]
    top_items: list[TopItem]
    peak_hours: list[HourlyOrders]
