"""
Query Execution

DESIGN DECISION: Filtering is DETERMINISTIC and happens over what is
actually stored. The dashboard totals are computed here from the matched
invoices, never cached or estimated.

Every filter is optional; an empty InvoiceFilters matches everything.
"""

from decimal import Decimal

from invoice_manager.models.invoice import (
    Contact,
    ContactFilters,
    Currency,
    Invoice,
    InvoiceFilters,
    InvoiceQueryResult,
)
from invoice_manager.services.storage import InvoiceStorageInterface


class InvoiceQueryExecutor:
    """
    Filters stored invoices and contacts.

    GUARANTEES:
    - Only returns real data from storage
    - Matches keep their stored order
    - An empty result has count 0, total 0 and USD as its currency
    """

    def __init__(self, storage: InvoiceStorageInterface):
        self._storage = storage

    @staticmethod
    def _matches(invoice: Invoice, filters: InvoiceFilters) -> bool:
        if filters.search:
            needle = filters.search.lower()
            if (
                needle not in invoice.client.name.lower()
                and needle not in invoice.invoice_number.lower()
            ):
                return False

        if filters.status and invoice.status != filters.status:
            return False

        if filters.start_date and invoice.issue_date < filters.start_date:
            return False

        if filters.end_date and invoice.issue_date > filters.end_date:
            return False

        return True

    def execute(self, filters: InvoiceFilters) -> InvoiceQueryResult:
        """Invoices matching ``filters`` with their count and summed total."""
        invoices = [
            invoice for invoice in self._storage.get_invoices()
            if self._matches(invoice, filters)
        ]

        return InvoiceQueryResult(
            invoices=invoices,
            result_count=len(invoices),
            total_amount=sum((i.total for i in invoices), Decimal("0")),
            currency=invoices[0].currency if invoices else Currency.USD,
        )

    def find_contacts(self, filters: ContactFilters) -> list[Contact]:
        contacts = self._storage.get_contacts()

        if filters.contact_type:
            contacts = [c for c in contacts if c.contact_type == filters.contact_type]

        if filters.search:
            needle = filters.search.lower()
            contacts = [
                c for c in contacts
                if needle in c.name.lower() or needle in c.email.lower()
            ]

        return contacts
