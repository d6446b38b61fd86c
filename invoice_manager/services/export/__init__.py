"""Document export services package."""

from invoice_manager.services.export.pdf_exporter import (
    DocumentExporter,
    ExportError,
    PdfExporter,
    pdf_filename,
)
from invoice_manager.services.export.renderer import InvoiceRenderer

__all__ = [
    "DocumentExporter",
    "ExportError",
    "InvoiceRenderer",
    "PdfExporter",
    "pdf_filename",
]
