"""
Local Invoice Storage

Implements InvoiceStorageInterface on top of any KeyValueStore using
three fixed keys:

    invoices      -> list of invoice records
    savedClients  -> list of contact records
    company       -> the company profile record, or null

Each value is the whole collection. There is no indexing and no partial
write: every mutation reads the collection, changes it in memory and
writes it back with a single ``set``.

TRADEOFFS:
- Fine for one user with hundreds of invoices, not for thousands
- No transactions across keys; each collection is independent, so a
  crash between two writes leaves every key valid on its own
- Records are rewritten as raw dicts, so a record that no longer passes
  validation is skipped on read but never silently dropped on write
"""

import re
from typing import Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from invoice_manager.models.invoice import (
    CompanyProfile,
    Contact,
    Invoice,
    utc_now,
)
from invoice_manager.services.storage.interface import (
    InvoiceStorageInterface,
    KeyValueStore,
)


logger = structlog.get_logger(__name__)

# Storage keys
INVOICES_KEY = "invoices"
CONTACTS_KEY = "savedClients"
COMPANY_KEY = "company"

STORAGE_DEFAULTS = {
    INVOICES_KEY: [],
    CONTACTS_KEY: [],
    COMPANY_KEY: None,
}

_NON_DIGITS = re.compile(r"\D")

RecordT = TypeVar("RecordT", bound=BaseModel)


def _find_index(records: list, record_id: str) -> Optional[int]:
    for index, record in enumerate(records):
        if isinstance(record, dict) and record.get("id") == record_id:
            return index
    return None


def _number_value(invoice_number: object) -> int:
    """Numeric part of an invoice number ("INV-0042" -> 42, "draft" -> 0)."""
    digits = _NON_DIGITS.sub("", str(invoice_number or ""))
    return int(digits) if digits else 0


class KeyValueInvoiceStorage(InvoiceStorageInterface):
    """
    Invoice, contact and company storage over a KeyValueStore.

    Args:
        store: The key-value medium (file or memory)
        number_prefix: Prefix of generated invoice numbers
        number_width: Zero-padding of the numeric part
    """

    def __init__(
        self,
        store: KeyValueStore,
        number_prefix: str = "INV-",
        number_width: int = 4,
    ):
        self._store = store
        self._number_prefix = number_prefix
        self._number_width = number_width

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _read_collection(self, key: str) -> list:
        data = self._store.get(key, [])
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning(
                "storage_collection_malformed",
                key=key,
                found_type=type(data).__name__,
            )
            return []
        return data

    def _parse_records(
        self,
        key: str,
        records: list,
        model: type[RecordT],
    ) -> list[RecordT]:
        parsed = []
        for index, record in enumerate(records):
            try:
                parsed.append(model.model_validate(record))
            except ValidationError as e:
                logger.warning(
                    "storage_record_skipped",
                    key=key,
                    index=index,
                    error_count=e.error_count(),
                )
        return parsed

    def _upsert(self, key: str, record_id: str, record: dict) -> bool:
        """Replace in place or append. Returns True if it was an insert."""
        records = self._read_collection(key)
        index = _find_index(records, record_id)
        if index is None:
            records.append(record)
        else:
            records[index] = record
        self._store.set(key, records)
        return index is None

    def _delete(self, key: str, record_id: str) -> bool:
        records = self._read_collection(key)
        remaining = [
            r for r in records
            if not (isinstance(r, dict) and r.get("id") == record_id)
        ]
        self._store.set(key, remaining)
        return len(remaining) != len(records)

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    def save_invoice(self, invoice: Invoice) -> Invoice:
        """Save an invoice, stamping ``updated_at`` when it replaces one."""
        records = self._read_collection(INVOICES_KEY)
        index = _find_index(records, invoice.id)

        if index is None:
            stored = invoice
            records.append(stored.to_record())
        else:
            stored = invoice.with_updates(updated_at=utc_now())
            records[index] = stored.to_record()

        self._store.set(INVOICES_KEY, records)
        return stored

    def get_invoices(self) -> list[Invoice]:
        records = self._read_collection(INVOICES_KEY)
        return self._parse_records(INVOICES_KEY, records, Invoice)

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        for invoice in self.get_invoices():
            if invoice.id == invoice_id:
                return invoice
        return None

    def delete_invoice(self, invoice_id: str) -> bool:
        return self._delete(INVOICES_KEY, invoice_id)

    # -------------------------------------------------------------------------
    # Contacts
    # -------------------------------------------------------------------------

    def save_contact(self, contact: Contact) -> Contact:
        self._upsert(CONTACTS_KEY, contact.id, contact.to_record())
        return contact

    def get_contacts(self) -> list[Contact]:
        records = self._read_collection(CONTACTS_KEY)
        return self._parse_records(CONTACTS_KEY, records, Contact)

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        for contact in self.get_contacts():
            if contact.id == contact_id:
                return contact
        return None

    def delete_contact(self, contact_id: str) -> bool:
        return self._delete(CONTACTS_KEY, contact_id)

    # -------------------------------------------------------------------------
    # Company profile
    # -------------------------------------------------------------------------

    def get_company_profile(self) -> Optional[CompanyProfile]:
        data = self._store.get(COMPANY_KEY, None)
        if data is None:
            return None
        try:
            return CompanyProfile.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "storage_record_skipped",
                key=COMPANY_KEY,
                error_count=e.error_count(),
            )
            return None

    def save_company_profile(self, profile: CompanyProfile) -> None:
        self._store.set(COMPANY_KEY, profile.to_record())

    # -------------------------------------------------------------------------
    # Utilities
    # -------------------------------------------------------------------------

    def generate_invoice_number(self) -> str:
        """
        Next number after the highest one in use.

        Non-digits are stripped before comparing, so "INV-0007" and "7"
        both count as 7. Invoices whose number has no digits count as 0.
        Gaps are not filled: INV-0001 and INV-0003 give INV-0004.
        """
        records = self._read_collection(INVOICES_KEY)
        numbers = [
            _number_value(r.get("invoiceNumber"))
            for r in records
            if isinstance(r, dict)
        ]
        last_number = max(numbers, default=0)
        return f"{self._number_prefix}{last_number + 1:0{self._number_width}d}"

    def initialize_storage(self) -> list[str]:
        """
        Create missing keys with their empty defaults.

        Returns:
            The keys that had to be created (empty on every later call)
        """
        created = []
        for key, default in STORAGE_DEFAULTS.items():
            if not self._store.has(key):
                self._store.set(key, default)
                created.append(key)
        return created

    def replace_all(
        self,
        invoices: list[dict],
        contacts: list[dict],
        company: Optional[dict],
    ) -> None:
        self._store.set(INVOICES_KEY, invoices)
        self._store.set(CONTACTS_KEY, contacts)
        self._store.set(COMPANY_KEY, company)
