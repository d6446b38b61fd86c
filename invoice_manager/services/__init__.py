"""Services package."""

from invoice_manager.services.export import (
    DocumentExporter,
    ExportError,
    InvoiceRenderer,
    PdfExporter,
)
from invoice_manager.services.storage import (
    InMemoryKeyValueStore,
    InvoiceStorageInterface,
    JsonFileKeyValueStore,
    KeyValueInvoiceStorage,
    KeyValueStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Export services
    "DocumentExporter",
    "ExportError",
    "InvoiceRenderer",
    "PdfExporter",
    # Storage services
    "InMemoryKeyValueStore",
    "InvoiceStorageInterface",
    "JsonFileKeyValueStore",
    "KeyValueInvoiceStorage",
    "KeyValueStore",
    "NotFoundError",
    "StorageError",
]
