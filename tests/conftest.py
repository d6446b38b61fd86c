"""
Shared fixtures.

Tests never touch the real data directory: storage runs on an
InMemoryKeyValueStore and files go to pytest's tmp_path.
"""

from datetime import date
from decimal import Decimal

import pytest

from invoice_manager.models.invoice import (
    Client,
    CompanyProfile,
    Contact,
    ContactType,
    DraftLineItem,
    Invoice,
    InvoiceDraft,
    InvoiceLineItem,
    PaymentDetails,
)
from invoice_manager.services.storage import InMemoryKeyValueStore, KeyValueInvoiceStorage


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def storage(store):
    storage = KeyValueInvoiceStorage(store)
    storage.initialize_storage()
    return storage


@pytest.fixture
def company():
    return CompanyProfile(
        name="Northwind Studio",
        address="1 Harbour Road",
        city="Bristol",
        zip_code="BS1 4DJ",
        email="hello@northwind.example",
        payment_details=PaymentDetails(
            account_name="Northwind Studio Ltd",
            account_number="12345678",
            sort_code="12-34-56",
        ),
    )


@pytest.fixture
def contact():
    return Contact(
        name="Acme Corp",
        email="billing@acme.example",
        city="Springfield",
        contact_type=ContactType.COMPANY,
    )


@pytest.fixture
def make_invoice():
    """Factory for valid invoices; override any field by keyword."""
    def _make(**overrides):
        data = dict(
            invoice_number="INV-0001",
            issue_date=date(2026, 10, 1),
            due_date=date(2026, 10, 31),
            company=CompanyProfile(name="Northwind Studio"),
            client=Client(name="Acme Corp"),
            items=[
                InvoiceLineItem(description="Design", quantity=Decimal("2"), price=Decimal("40")),
                InvoiceLineItem(description="Hosting", quantity=Decimal("1"), price=Decimal("20")),
            ],
            tax_rate=Decimal("8.25"),
            payment_terms="Net 30",
        )
        data.update(overrides)
        return Invoice(**data)
    return _make


@pytest.fixture
def valid_draft():
    return InvoiceDraft(
        invoice_number="INV-0001",
        issue_date=date(2026, 10, 1),
        due_date=date(2026, 10, 31),
        client=Client(name="Acme Corp"),
        items=[DraftLineItem(description="Consulting", quantity=Decimal("4"), price=Decimal("25"))],
        tax_rate=Decimal("8.25"),
        payment_terms="Net 30",
    )
