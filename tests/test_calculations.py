"""Tests for invoice arithmetic and currency formatting."""

from decimal import Decimal

import pytest

from invoice_manager.calculations import (
    calculate_line_total,
    calculate_subtotal,
    calculate_tax,
    calculate_total,
    format_currency,
    to_decimal,
)
from invoice_manager.models.invoice import InvoiceLineItem


class TestArithmetic:
    """Tests for line, subtotal, tax and total calculations."""

    def test_line_total_is_quantity_times_price(self):
        assert calculate_line_total(3, Decimal("19.99")) == Decimal("59.97")

    def test_line_total_accepts_floats_without_artefacts(self):
        """0.1 * 3 must be exactly 0.3."""
        assert calculate_line_total(0.1, 3) == Decimal("0.3")

    def test_subtotal_sums_item_totals(self):
        items = [
            InvoiceLineItem(description="A", quantity=Decimal("2"), price=Decimal("10")),
            InvoiceLineItem(description="B", quantity=Decimal("1"), price=Decimal("5.5")),
        ]
        assert calculate_subtotal(items) == Decimal("25.5")

    def test_subtotal_of_nothing_is_zero(self):
        assert calculate_subtotal([]) == Decimal("0")

    def test_tax_is_percentage_of_subtotal(self):
        assert calculate_tax(100, 8.25) == Decimal("8.25")

    def test_zero_tax_rate(self):
        assert calculate_tax(Decimal("250"), 0) == 0

    def test_total_adds_tax(self):
        assert calculate_total(100, 8.25) == Decimal("108.25")

    def test_to_decimal_uses_shortest_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(7) == Decimal("7")


class TestFormatCurrency:
    """Tests for display formatting."""

    def test_usd(self):
        assert format_currency(Decimal("1234.5")) == "$1,234.50"

    def test_gbp(self):
        assert format_currency(Decimal("99"), "GBP") == "£99.00"

    def test_rounds_half_up_to_cents(self):
        assert format_currency(Decimal("8.255")) == "$8.26"

    def test_negative_amounts(self):
        assert format_currency(Decimal("-5")) == "-$5.00"

    @pytest.mark.parametrize("code", ["EUR", "", "usd"])
    def test_unsupported_currency_falls_back_to_usd(self, code):
        assert format_currency(10, code) == "$10.00"
