"""
Invoice Raster Renderer

Draws an invoice as a plain text-layout image: issuer and client blocks,
dates, the line item table, totals, payment details and notes. The image
is the "rendered document" handed to the PDF exporter.

Deliberately plain: no styling, one font, black on white.
"""

import textwrap
from decimal import Decimal

from PIL import Image, ImageDraw, ImageFont

from invoice_manager.calculations import format_currency
from invoice_manager.models.invoice import Client, Invoice


PAGE_WIDTH = 1240
MIN_PAGE_HEIGHT = 1754
MARGIN = 80
LINE_HEIGHT = 26
ROW_HEIGHT = 34

# x positions of the item table columns (right edges for numbers)
QTY_RIGHT = 800
PRICE_RIGHT = 980
TOTAL_RIGHT = PAGE_WIDTH - MARGIN


def _format_quantity(quantity: Decimal) -> str:
    return f"{quantity.normalize():f}"


def _address_lines(party: Client) -> list[str]:
    region = " ".join(p for p in (party.state, party.zip_code) if p)
    city_line = ", ".join(p for p in (party.city, region) if p)
    return [
        line for line in (
            party.name,
            party.address,
            city_line,
            party.phone,
            party.email,
        ) if line
    ]


class InvoiceRenderer:
    """Renders invoices to RGB images."""

    def __init__(self, font_size: int = 20, title_size: int = 40):
        self._font = ImageFont.load_default(size=font_size)
        self._bold = ImageFont.load_default(size=font_size + 2)
        self._title = ImageFont.load_default(size=title_size)

    def _estimate_height(self, invoice: Invoice) -> int:
        note_lines = len(textwrap.wrap(invoice.notes, 90)) if invoice.notes else 0
        return max(
            MIN_PAGE_HEIGHT,
            900 + ROW_HEIGHT * len(invoice.items) + LINE_HEIGHT * note_lines,
        )

    def _text_right(self, draw: ImageDraw.ImageDraw, right: int, y: int, text: str, font) -> None:
        width = draw.textlength(text, font=font)
        draw.text((right - width, y), text, fill="black", font=font)

    def render(self, invoice: Invoice) -> Image.Image:
        currency = invoice.currency.value
        image = Image.new("RGB", (PAGE_WIDTH, self._estimate_height(invoice)), "white")
        draw = ImageDraw.Draw(image)

        # Header
        y = MARGIN
        draw.text((MARGIN, y), "INVOICE", fill="black", font=self._title)
        header = [
            f"Invoice #: {invoice.invoice_number}",
            f"Date: {invoice.issue_date:%b %d, %Y}",
            f"Due: {invoice.due_date:%b %d, %Y}" if invoice.due_date else "Due: -",
            f"Status: {invoice.status.value.title()}",
        ]
        for offset, line in enumerate(header):
            self._text_right(draw, TOTAL_RIGHT, y + offset * LINE_HEIGHT, line, self._font)
        y += LINE_HEIGHT * (len(header) + 1)

        # From / Bill To
        draw.text((MARGIN, y), "From", fill="black", font=self._bold)
        draw.text((PAGE_WIDTH // 2, y), "Bill To", fill="black", font=self._bold)
        y += LINE_HEIGHT
        company_lines = _address_lines(invoice.company)
        client_lines = _address_lines(invoice.client)
        for offset, line in enumerate(company_lines):
            draw.text((MARGIN, y + offset * LINE_HEIGHT), line, fill="black", font=self._font)
        for offset, line in enumerate(client_lines):
            draw.text((PAGE_WIDTH // 2, y + offset * LINE_HEIGHT), line, fill="black", font=self._font)
        y += LINE_HEIGHT * (max(len(company_lines), len(client_lines)) + 1)

        # Items table
        draw.line((MARGIN, y, TOTAL_RIGHT, y), fill="black", width=2)
        y += 8
        draw.text((MARGIN, y), "Description", fill="black", font=self._bold)
        self._text_right(draw, QTY_RIGHT, y, "Qty", self._bold)
        self._text_right(draw, PRICE_RIGHT, y, "Price", self._bold)
        self._text_right(draw, TOTAL_RIGHT, y, "Total", self._bold)
        y += ROW_HEIGHT
        draw.line((MARGIN, y - 6, TOTAL_RIGHT, y - 6), fill="black", width=1)

        for item in invoice.items:
            description = textwrap.shorten(item.description or "-", 55, placeholder="...")
            draw.text((MARGIN, y), description, fill="black", font=self._font)
            self._text_right(draw, QTY_RIGHT, y, _format_quantity(item.quantity), self._font)
            self._text_right(draw, PRICE_RIGHT, y, format_currency(item.price, currency), self._font)
            self._text_right(draw, TOTAL_RIGHT, y, format_currency(item.total, currency), self._font)
            y += ROW_HEIGHT

        draw.line((MARGIN, y, TOTAL_RIGHT, y), fill="black", width=2)
        y += LINE_HEIGHT

        # Totals
        totals = [
            ("Subtotal", format_currency(invoice.subtotal, currency), self._font),
            (
                f"Tax ({_format_quantity(invoice.tax_rate)}%)",
                format_currency(invoice.tax_amount, currency),
                self._font,
            ),
            ("Total", format_currency(invoice.total, currency), self._bold),
        ]
        for label, amount, font in totals:
            self._text_right(draw, PRICE_RIGHT, y, label, font)
            self._text_right(draw, TOTAL_RIGHT, y, amount, font)
            y += LINE_HEIGHT
        y += LINE_HEIGHT

        # Terms and payment details
        if invoice.payment_terms:
            draw.text((MARGIN, y), f"Payment terms: {invoice.payment_terms}", fill="black", font=self._font)
            y += LINE_HEIGHT

        details = invoice.company.payment_details
        if details and (details.account_name or details.account_number or details.sort_code):
            y += LINE_HEIGHT // 2
            draw.text((MARGIN, y), "Payment Details", fill="black", font=self._bold)
            y += LINE_HEIGHT
            for label, value in (
                ("Account name", details.account_name),
                ("Account number", details.account_number),
                ("Sort code", details.sort_code),
            ):
                if value:
                    draw.text((MARGIN, y), f"{label}: {value}", fill="black", font=self._font)
                    y += LINE_HEIGHT

        if invoice.notes:
            y += LINE_HEIGHT // 2
            draw.text((MARGIN, y), "Notes", fill="black", font=self._bold)
            y += LINE_HEIGHT
            for line in textwrap.wrap(invoice.notes, 90):
                draw.text((MARGIN, y), line, fill="black", font=self._font)
                y += LINE_HEIGHT

        return image
