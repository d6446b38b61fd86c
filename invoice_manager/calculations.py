"""
Invoice Arithmetic

Pure functions for line totals, subtotal, tax and grand total,
plus currency display formatting.

DESIGN DECISION: All arithmetic is done in Decimal. Floats coming from
forms or JSON are converted through their shortest repr (0.1 -> "0.1"),
so 100 * 8.25% is exactly 8.25 rather than 8.250000000000002.
No rounding happens here; rounding is a display concern of format_currency.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol, Union

Number = Union[Decimal, int, float, str]

CURRENCY_SYMBOLS = {
    "USD": "$",
    "GBP": "£",
}
DEFAULT_CURRENCY = "USD"

_CENT = Decimal("0.01")


class HasTotal(Protocol):
    total: Decimal


def to_decimal(value: Number) -> Decimal:
    """Convert a numeric input to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def calculate_line_total(quantity: Number, price: Number) -> Decimal:
    """Line total is quantity times unit price."""
    return to_decimal(quantity) * to_decimal(price)


def calculate_subtotal(items: Iterable[HasTotal]) -> Decimal:
    """
    Sum of the line totals.

    Trusts each item's ``total``; InvoiceLineItem derives it from
    quantity and price so it cannot go stale.
    """
    return sum((to_decimal(item.total) for item in items), Decimal("0"))


def calculate_tax(subtotal: Number, tax_rate: Number) -> Decimal:
    """Tax amount for a percentage rate (8.25 means 8.25%)."""
    return to_decimal(subtotal) * (to_decimal(tax_rate) / Decimal("100"))


def calculate_total(subtotal: Number, tax_amount: Number) -> Decimal:
    return to_decimal(subtotal) + to_decimal(tax_amount)


def format_currency(amount: Number, currency: str = DEFAULT_CURRENCY) -> str:
    """
    Format an amount for display, e.g. ``$1,234.50`` or ``-£3.00``.

    Only USD and GBP are supported; any other code is shown as USD.
    """
    code = currency if currency in CURRENCY_SYMBOLS else DEFAULT_CURRENCY
    symbol = CURRENCY_SYMBOLS[code]

    value = to_decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"
