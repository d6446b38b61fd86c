"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Data lives in a local key-value store (JSON files by default); the
interfaces keep the medium swappable.
"""

from invoice_manager.services.storage.interface import (
    InvoiceStorageInterface,
    KeyValueStore,
    NotFoundError,
    StorageError,
)
from invoice_manager.services.storage.key_value import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from invoice_manager.services.storage.local_storage import (
    COMPANY_KEY,
    CONTACTS_KEY,
    INVOICES_KEY,
    KeyValueInvoiceStorage,
)

__all__ = [
    # Interfaces
    "InvoiceStorageInterface",
    "KeyValueStore",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # Key-value media
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    # Invoice storage
    "COMPANY_KEY",
    "CONTACTS_KEY",
    "INVOICES_KEY",
    "KeyValueInvoiceStorage",
]
