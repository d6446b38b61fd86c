"""
Audit Logger

DESIGN DECISION: Every change to stored data is logged, and so is every
failed save, rejected import and failed export. This provides:
1. A trail of destructive actions (deletes, restores)
2. Debugging capability when a backup will not import
3. Correlation of the events that make up one user action

The audit logger:
- Writes structured JSON lines through structlog
- Never raises; a logging failure must not break a save
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from invoice_manager.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Events go to the structured local log. ``history`` keeps the events
    of this session in memory so the UI can show recent activity.
    """

    def __init__(self, keep_history: int = 200):
        """
        Args:
            keep_history: How many recent events to keep in memory.
                          0 disables the history.
        """
        self._logger = structlog.get_logger("invoice_manager.audit")
        self._keep_history = keep_history
        self._history: list[AuditEvent] = []

    @property
    def history(self) -> list[AuditEvent]:
        """Most recent events, oldest first."""
        return list(self._history)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # A broken log handler must not fail the action being audited
            return False
        finally:
            if self._keep_history:
                self._history.append(event)
                del self._history[:-self._keep_history]

        return True

    def log_invoice_saved(
        self,
        invoice_id: str,
        invoice_number: str,
        total: str,
        is_new: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log invoice create or update."""
        self.log(AuditEventBuilder.invoice_saved(
            invoice_id=invoice_id,
            invoice_number=invoice_number,
            total=total,
            is_new=is_new,
            correlation_id=correlation_id,
        ))

    def log_invoice_deleted(self, invoice_id: str, found: bool) -> None:
        self.log(AuditEventBuilder.invoice_deleted(invoice_id=invoice_id, found=found))

    def log_invoice_duplicated(self, source_id: str, new_number: str) -> None:
        self.log(AuditEventBuilder.invoice_duplicated(
            source_id=source_id,
            new_number=new_number,
        ))

    def log_status_changed(
        self,
        invoice_id: str,
        old_status: str,
        new_status: str,
    ) -> None:
        self.log(AuditEventBuilder.invoice_status_changed(
            invoice_id=invoice_id,
            old_status=old_status,
            new_status=new_status,
        ))

    def log_validation_failed(
        self,
        invoice_number: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a draft that was refused by the validator."""
        self.log(AuditEventBuilder.invoice_validation_failed(
            invoice_number=invoice_number,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_contact_saved(self, contact_id: str, name: str, contact_type: str) -> None:
        self.log(AuditEventBuilder.contact_saved(
            contact_id=contact_id,
            name=name,
            contact_type=contact_type,
        ))

    def log_contact_deleted(self, contact_id: str, found: bool) -> None:
        self.log(AuditEventBuilder.contact_deleted(contact_id=contact_id, found=found))

    def log_company_saved(self, name: str) -> None:
        self.log(AuditEventBuilder.company_profile_saved(name=name))

    def log_storage_initialized(self, created_keys: list[str]) -> None:
        self.log(AuditEventBuilder.storage_initialized(created_keys=created_keys))

    def log_save_failed(
        self,
        entity_type: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage write that failed."""
        self.log(AuditEventBuilder.save_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_backup_exported(self, invoice_count: int, contact_count: int) -> None:
        self.log(AuditEventBuilder.backup_exported(
            invoice_count=invoice_count,
            contact_count=contact_count,
        ))

    def log_backup_imported(
        self,
        invoice_count: int,
        contact_count: int,
        has_company: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.backup_imported(
            invoice_count=invoice_count,
            contact_count=contact_count,
            has_company=has_company,
            correlation_id=correlation_id,
        ))

    def log_backup_rejected(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.backup_import_rejected(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_backup_cancelled(self, correlation_id: Optional[UUID] = None) -> None:
        self.log(AuditEventBuilder.backup_import_cancelled(correlation_id=correlation_id))

    def log_pdf_exported(self, invoice_id: str, path: str) -> None:
        self.log(AuditEventBuilder.pdf_exported(invoice_id=invoice_id, path=path))

    def log_pdf_failed(self, invoice_id: str, error_message: str) -> None:
        self.log(AuditEventBuilder.pdf_export_failed(
            invoice_id=invoice_id,
            error_message=error_message,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., restoring a backup)
    and pass it to every event that action produces.
    """
    return uuid4()


def configure_logging(debug: bool = False) -> None:
    """Route structlog output to stderr; debug mode also lets DEBUG through."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
    )
