"""
Data Models Package

This package contains all Pydantic models used in Invoice Manager.
All data flowing through the system must conform to these schemas.
"""

from invoice_manager.models.invoice import (
    BACKUP_FORMAT_VERSION,
    BackupDocument,
    BackupSummary,
    Client,
    CompanyProfile,
    Contact,
    ContactFilters,
    ContactType,
    Currency,
    DraftLineItem,
    Invoice,
    InvoiceDraft,
    InvoiceFilters,
    InvoiceLineItem,
    InvoiceQueryResult,
    InvoiceStatus,
    PaymentDetails,
    ValidationIssue,
    ValidationResult,
)
from invoice_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Invoice models
    "BACKUP_FORMAT_VERSION",
    "BackupDocument",
    "BackupSummary",
    "Client",
    "CompanyProfile",
    "Contact",
    "ContactFilters",
    "ContactType",
    "Currency",
    "DraftLineItem",
    "Invoice",
    "InvoiceDraft",
    "InvoiceFilters",
    "InvoiceLineItem",
    "InvoiceQueryResult",
    "InvoiceStatus",
    "PaymentDetails",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
