"""
Abstract Storage Interface

DESIGN DECISION: Two layers of abstraction.

KeyValueStore is the raw medium: string keys mapped to JSON-compatible
values. It lets us:
1. Keep data in plain JSON files on disk
2. Use an in-memory store for tests
3. Move to another medium later without touching business logic

InvoiceStorageInterface is what the rest of the app talks to: typed
operations over the three collections (invoices, contacts, company).

The interface is intentionally simple - we're not building an ORM.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from invoice_manager.models.invoice import CompanyProfile, Contact, Invoice


class KeyValueStore(ABC):
    """
    Abstract local key-value store.

    Values are JSON-compatible Python data (dicts, lists, str, numbers,
    bool, None). Implementations serialize on write.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Read the value stored under ``key``.

        Returns:
            The stored value, or ``default`` if the key is missing or
            the stored data cannot be read. Never raises for bad data.
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Replace the value stored under ``key``.

        Raises:
            StorageError: If the value cannot be serialized or written
        """
        pass

    @abstractmethod
    def has(self, key: str) -> bool:
        """True if ``key`` has ever been written."""
        pass


class InvoiceStorageInterface(ABC):
    """
    Abstract interface for invoice, contact and company storage.

    Every mutation is a full read-modify-write of one collection.
    """

    @abstractmethod
    def save_invoice(self, invoice: Invoice) -> Invoice:
        """
        Insert or replace an invoice by id.

        An existing invoice keeps its position in the collection and gets
        a fresh ``updated_at``; a new one is appended.

        Returns:
            The invoice as stored

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def get_invoices(self) -> list[Invoice]:
        """All invoices in insertion order (empty if none)."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """
        Retrieve an invoice by its ID.

        Returns:
            The invoice if found, None otherwise
        """
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: str) -> bool:
        """
        Delete every invoice with this ID.

        Returns:
            True if anything was removed
        """
        pass

    @abstractmethod
    def save_contact(self, contact: Contact) -> Contact:
        """Insert or replace a contact by id."""
        pass

    @abstractmethod
    def get_contacts(self) -> list[Contact]:
        """All contacts in insertion order."""
        pass

    @abstractmethod
    def get_contact(self, contact_id: str) -> Optional[Contact]:
        """A contact by ID, or None."""
        pass

    @abstractmethod
    def delete_contact(self, contact_id: str) -> bool:
        """Delete every contact with this ID."""
        pass

    @abstractmethod
    def get_company_profile(self) -> Optional[CompanyProfile]:
        """The company profile, or None if never saved."""
        pass

    @abstractmethod
    def save_company_profile(self, profile: CompanyProfile) -> None:
        """Overwrite the company profile. No merging."""
        pass

    @abstractmethod
    def generate_invoice_number(self) -> str:
        """
        Suggest the next invoice number.

        Derived from the highest number among existing invoices.
        """
        pass

    @abstractmethod
    def initialize_storage(self) -> list[str]:
        """
        Create any missing keys with empty defaults. Idempotent.

        Returns:
            The keys that were created
        """
        pass

    @abstractmethod
    def replace_all(
        self,
        invoices: list[dict],
        contacts: list[dict],
        company: Optional[dict],
    ) -> None:
        """
        Overwrite all three collections with already-validated records.

        Only Backup/Restore calls this.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
