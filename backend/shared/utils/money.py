"""
Money helpers.

Amounts are Decimal everywhere. Storage keeps full precision
(a 10% tax on 25.98 is stored as 2.598); rounding happens only when an
amount is rendered for display.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from shared.config.settings import settings

ZERO = Decimal("0")


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """Coerce a stored or user-supplied amount to Decimal (None -> 0)."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so floats from SQLite keep their printed value
    return Decimal(str(value))


def compute_tax(subtotal: Decimal, rate: Decimal | None = None) -> Decimal:
    """Flat tax on an item subtotal, full precision."""
    if rate is None:
        rate = settings.tax_rate
    return to_decimal(subtotal) * to_decimal(rate)


def line_total(unit_cost: Decimal, quantity: int) -> Decimal:
    return to_decimal(unit_cost) * quantity


def sum_amounts(amounts: Iterable[Decimal | None]) -> Decimal:
    return sum((to_decimal(a) for a in amounts), ZERO)


def display_amount(value: Decimal | int | float | str | None, places: int | None = None) -> str:
    """Render an amount rounded half-up, e.g. 38.467 -> '38.47'."""
    if places is None:
        places = settings.money_display_places
    quantum = Decimal(1).scaleb(-places)
    return str(to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))
