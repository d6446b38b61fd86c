"""
Audit Models for Invoice Manager

Every mutation of stored data, and every failure, is described by an
AuditEvent. This provides:
1. Traceability of what happened to an invoice and when
2. Debugging information when an import or export goes wrong
3. A record of destructive actions such as restoring a backup

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from invoice_manager.models.invoice import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Invoices
    INVOICE_SAVED = "invoice_saved"
    INVOICE_UPDATED = "invoice_updated"
    INVOICE_DELETED = "invoice_deleted"
    INVOICE_DUPLICATED = "invoice_duplicated"
    INVOICE_STATUS_CHANGED = "invoice_status_changed"
    INVOICE_VALIDATION_FAILED = "invoice_validation_failed"

    # Address book and company profile
    CONTACT_SAVED = "contact_saved"
    CONTACT_DELETED = "contact_deleted"
    COMPANY_PROFILE_SAVED = "company_profile_saved"

    # Storage
    STORAGE_INITIALIZED = "storage_initialized"
    SAVE_FAILED = "save_failed"

    # Backup / restore
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    BACKUP_IMPORT_REJECTED = "backup_import_rejected"
    BACKUP_IMPORT_CANCELLED = "backup_import_cancelled"

    # PDF export
    PDF_EXPORTED = "pdf_exported"
    PDF_EXPORT_FAILED = "pdf_export_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'invoice', 'contact', 'backup')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one restore)"
    )

    description: str = Field(
        ...,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.invoice_saved(invoice_id, "INV-0001", "$108.25", is_new=True)
        event = AuditEventBuilder.backup_imported(3, 2, True, correlation_id)
    """

    @staticmethod
    def invoice_saved(
        invoice_id: str,
        invoice_number: str,
        total: str,
        is_new: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.INVOICE_SAVED if is_new else AuditEventType.INVOICE_UPDATED
            ),
            entity_type="invoice",
            entity_id=invoice_id,
            correlation_id=correlation_id,
            description=(
                f"Invoice {'created' if is_new else 'updated'}: {invoice_number} - {total}"
            ),
            details={
                "invoice_number": invoice_number,
                "total": total,
            },
            is_user_action=True,
        )

    @staticmethod
    def invoice_deleted(
        invoice_id: str,
        found: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVOICE_DELETED,
            entity_type="invoice",
            entity_id=invoice_id,
            correlation_id=correlation_id,
            description=(
                "Invoice deleted" if found else "Delete requested for unknown invoice"
            ),
            details={"found": found},
            is_user_action=True,
        )

    @staticmethod
    def invoice_duplicated(
        source_id: str,
        new_number: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVOICE_DUPLICATED,
            entity_type="invoice",
            entity_id=source_id,
            correlation_id=correlation_id,
            description=f"Invoice duplicated as {new_number}",
            details={"new_invoice_number": new_number},
            is_user_action=True,
        )

    @staticmethod
    def invoice_status_changed(
        invoice_id: str,
        old_status: str,
        new_status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVOICE_STATUS_CHANGED,
            entity_type="invoice",
            entity_id=invoice_id,
            correlation_id=correlation_id,
            description=f"Invoice status changed: {old_status} -> {new_status}",
            details={"old_status": old_status, "new_status": new_status},
            is_user_action=True,
        )

    @staticmethod
    def invoice_validation_failed(
        invoice_number: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVOICE_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="invoice",
            correlation_id=correlation_id,
            description=(
                f"Invoice {invoice_number or '(unnumbered)'} failed validation "
                f"with {len(issues)} issues"
            ),
            details={"issues": issues},
        )

    @staticmethod
    def contact_saved(
        contact_id: str,
        name: str,
        contact_type: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACT_SAVED,
            entity_type="contact",
            entity_id=contact_id,
            description=f"Contact saved: {name}",
            details={"type": contact_type},
            is_user_action=True,
        )

    @staticmethod
    def contact_deleted(contact_id: str, found: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACT_DELETED,
            entity_type="contact",
            entity_id=contact_id,
            description="Contact deleted" if found else "Delete requested for unknown contact",
            details={"found": found},
            is_user_action=True,
        )

    @staticmethod
    def company_profile_saved(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMPANY_PROFILE_SAVED,
            entity_type="company",
            description=f"Company profile saved: {name or '(no name)'}",
            is_user_action=True,
        )

    @staticmethod
    def storage_initialized(created_keys: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_INITIALIZED,
            entity_type="storage",
            description=f"Storage initialized ({len(created_keys)} keys created)",
            details={"created_keys": created_keys},
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Failed to save {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def backup_exported(invoice_count: int, contact_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="backup",
            description=(
                f"Backup exported: {invoice_count} invoices, {contact_count} contacts"
            ),
            details={
                "invoice_count": invoice_count,
                "contact_count": contact_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def backup_imported(
        invoice_count: int,
        contact_count: int,
        has_company: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            correlation_id=correlation_id,
            description=(
                f"Backup restored, existing data replaced: {invoice_count} invoices, "
                f"{contact_count} contacts"
            ),
            details={
                "invoice_count": invoice_count,
                "contact_count": contact_count,
                "has_company": has_company,
            },
            is_user_action=True,
        )

    @staticmethod
    def backup_import_rejected(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            correlation_id=correlation_id,
            description="Backup file rejected, nothing was changed",
            error_message=error_message,
        )

    @staticmethod
    def backup_import_cancelled(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORT_CANCELLED,
            entity_type="backup",
            correlation_id=correlation_id,
            description="User cancelled backup restore",
            is_user_action=True,
        )

    @staticmethod
    def pdf_exported(invoice_id: str, path: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PDF_EXPORTED,
            entity_type="invoice",
            entity_id=invoice_id,
            description=f"PDF exported to {path}",
            details={"path": path},
            is_user_action=True,
        )

    @staticmethod
    def pdf_export_failed(invoice_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PDF_EXPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="invoice",
            entity_id=invoice_id,
            description="PDF export failed",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
