"""
Main Orchestrator for Invoice Manager

This module ties together all the components and defines the flows
behind each screen:
1. Invoices (draft → validate → snapshot parties → save, plus
   duplicate, delete, status changes and PDF export)
2. Address book and company profile
3. Backup (export) and restore (parse → summarize → confirm → replace)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No invoice is stored without passing validation
- No backup replaces stored data without explicit confirmation
- Every mutation and failure is audited

The UI only ever talks to these flows, never to storage directly.
"""

from datetime import date
from pathlib import Path
from typing import Callable, Optional, Union
from uuid import UUID

from PIL import Image
from pydantic import ValidationError

from invoice_manager.audit import AuditLogger, configure_logging, create_correlation_id
from invoice_manager.backup import BackupService, ImportValidationError
from invoice_manager.calculations import format_currency
from invoice_manager.config import InvoiceDefaults, Settings, get_settings
from invoice_manager.models.invoice import (
    BackupSummary,
    Client,
    CompanyProfile,
    Contact,
    ContactFilters,
    Currency,
    DraftLineItem,
    Invoice,
    InvoiceDraft,
    InvoiceFilters,
    InvoiceLineItem,
    InvoiceQueryResult,
    InvoiceStatus,
    ValidationIssue,
    ValidationResult,
    new_id,
    utc_now,
)
from invoice_manager.queries import InvoiceQueryExecutor
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
from invoice_manager.validation import InvoiceValidationError, InvoiceValidator


def _result_from_model_errors(error: ValidationError) -> ValidationResult:
    """Report model-level rejections the same way as form validation."""
    return ValidationResult(issues=[
        ValidationIssue(
            field=".".join(str(part) for part in err["loc"]) or "invoice",
            issue_type=err["type"],
            message=err["msg"],
            severity="error",
        )
        for err in error.errors(include_url=False)
    ])


def _log_write_failure(
    audit_logger: Optional[AuditLogger],
    error: StorageError,
    operation: str,
    entity_id: str,
) -> None:
    if audit_logger:
        audit_logger.log_error(
            error_type=type(error).__name__,
            error_message=str(error),
            details={"operation": operation, "entity_id": entity_id},
        )


class InvoiceFlow:
    """
    Orchestrates the invoice form, list and preview screens.

    Flow for saving:
    1. Draft → the form state, anything goes
    2. Validate → errors block, warnings are shown
    3. Snapshot → current company profile and the selected client
       are copied into the invoice
    4. Save → insert or replace by id
    """

    def __init__(
        self,
        storage: InvoiceStorageInterface,
        defaults: Optional[InvoiceDefaults] = None,
        validator: Optional[InvoiceValidator] = None,
        renderer: Optional[InvoiceRenderer] = None,
        exporter: Optional[DocumentExporter] = None,
        audit_logger: Optional[AuditLogger] = None,
        export_dir: Path = Path("exports"),
    ):
        self._storage = storage
        self._defaults = defaults or InvoiceDefaults()
        self._validator = validator or InvoiceValidator()
        self._renderer = renderer or InvoiceRenderer()
        self._exporter = exporter or PdfExporter()
        self._query_executor = InvoiceQueryExecutor(storage)
        self._audit_logger = audit_logger
        self._export_dir = Path(export_dir)

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def list_invoices(self, filters: Optional[InvoiceFilters] = None) -> InvoiceQueryResult:
        return self._query_executor.execute(filters or InvoiceFilters())

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return self._storage.get_invoice(invoice_id)

    def _require_invoice(self, invoice_id: str) -> Invoice:
        invoice = self._storage.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice not found: {invoice_id}")
        return invoice

    # -------------------------------------------------------------------------
    # Drafts
    # -------------------------------------------------------------------------

    def new_draft(self) -> InvoiceDraft:
        """An empty form with the next invoice number and configured defaults."""
        return InvoiceDraft(
            invoice_number=self._storage.generate_invoice_number(),
            issue_date=date.today(),
            tax_rate=self._defaults.tax_rate,
            payment_terms=self._defaults.payment_terms,
            status=InvoiceStatus.DRAFT,
            currency=Currency(self._defaults.currency),
        )

    def draft_from_invoice(self, invoice: Invoice) -> InvoiceDraft:
        """Load a saved invoice back into the form for editing."""
        return InvoiceDraft(
            invoice_id=invoice.id,
            created_at=invoice.created_at,
            invoice_number=invoice.invoice_number,
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            client=invoice.client,
            items=[
                DraftLineItem(
                    id=item.id,
                    description=item.description,
                    quantity=item.quantity,
                    price=item.price,
                )
                for item in invoice.items
            ],
            tax_rate=invoice.tax_rate,
            payment_terms=invoice.payment_terms,
            notes=invoice.notes,
            status=invoice.status,
            currency=invoice.currency,
        )

    def duplicate_invoice(self, invoice_id: str) -> InvoiceDraft:
        """
        Start a new invoice from an existing one.

        The copy gets the next invoice number, today's date, no due date
        and draft status. It has no id until it is saved.

        Raises:
            NotFoundError: If the source invoice does not exist
        """
        source = self._require_invoice(invoice_id)
        draft = self.draft_from_invoice(source).model_copy(update={
            "invoice_id": None,
            "created_at": None,
            "invoice_number": self._storage.generate_invoice_number(),
            "issue_date": date.today(),
            "due_date": None,
            "status": InvoiceStatus.DRAFT,
        })

        if self._audit_logger:
            self._audit_logger.log_invoice_duplicated(
                source_id=source.id,
                new_number=draft.invoice_number,
            )
        return draft

    def _resolve_client(self, draft: InvoiceDraft) -> Optional[Client]:
        """The client to bill: the selected contact, else the typed-in client."""
        if draft.client_id:
            contact = self._storage.get_contact(draft.client_id)
            if contact is not None:
                return Client.from_contact(contact)
        return draft.client

    def _build(
        self,
        draft: InvoiceDraft,
        company: Optional[CompanyProfile],
        client: Optional[Client],
    ) -> Invoice:
        now = utc_now()
        try:
            return Invoice(
                id=draft.invoice_id or new_id(),
                invoice_number=draft.invoice_number,
                issue_date=draft.issue_date,
                due_date=draft.due_date,
                company=company or CompanyProfile(),
                client=client or Client(),
                items=[
                    InvoiceLineItem(
                        id=item.id,
                        description=item.description,
                        quantity=item.quantity,
                        price=item.price,
                    )
                    for item in draft.items
                ],
                tax_rate=draft.tax_rate,
                payment_terms=draft.payment_terms,
                notes=draft.notes,
                status=draft.status,
                currency=draft.currency,
                created_at=draft.created_at or now,
                updated_at=now,
            )
        except ValidationError as e:
            raise InvoiceValidationError(_result_from_model_errors(e)) from e

    def validate_draft(self, draft: InvoiceDraft) -> ValidationResult:
        """Form validation only; nothing is built or saved."""
        return self._validator.validate(
            draft,
            self._storage.get_company_profile(),
            self._resolve_client(draft),
        )

    def preview(self, draft: InvoiceDraft) -> Invoice:
        """
        Build the invoice the draft would save, without saving it.

        Raises:
            InvoiceValidationError: If the draft cannot form an invoice at all
        """
        return self._build(
            draft,
            self._storage.get_company_profile(),
            self._resolve_client(draft),
        )

    def save_draft(
        self,
        draft: InvoiceDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Invoice:
        """
        Validate and persist a draft.

        Returns:
            The invoice as stored

        Raises:
            InvoiceValidationError: Draft has errors; nothing was saved
            StorageError: The write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        company = self._storage.get_company_profile()
        client = self._resolve_client(draft)

        result = self._validator.validate(draft, company, client)
        if result.has_errors:
            if self._audit_logger:
                self._audit_logger.log_validation_failed(
                    invoice_number=draft.invoice_number,
                    issues=[
                        {"field": i.field, "type": i.issue_type, "message": i.message}
                        for i in result.issues
                    ],
                    correlation_id=correlation_id,
                )
            raise InvoiceValidationError(result)

        invoice = self._build(draft, company, client)
        is_new = draft.invoice_id is None or self._storage.get_invoice(invoice.id) is None

        try:
            stored = self._storage.save_invoice(invoice)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_save_failed(
                    entity_type="invoice",
                    entity_id=invoice.id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_invoice_saved(
                invoice_id=stored.id,
                invoice_number=stored.invoice_number,
                total=format_currency(stored.total, stored.currency.value),
                is_new=is_new,
                correlation_id=correlation_id,
            )
        return stored

    # -------------------------------------------------------------------------
    # Changes to saved invoices
    # -------------------------------------------------------------------------

    def delete_invoice(self, invoice_id: str) -> bool:
        """Delete an invoice. Returns False if there was nothing to delete."""
        try:
            found = self._storage.delete_invoice(invoice_id)
        except StorageError as e:
            _log_write_failure(self._audit_logger, e, "delete_invoice", invoice_id)
            raise
        if self._audit_logger:
            self._audit_logger.log_invoice_deleted(invoice_id=invoice_id, found=found)
        return found

    def update_status(self, invoice_id: str, status: InvoiceStatus) -> Invoice:
        """
        Change only the status of a saved invoice.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        invoice = self._require_invoice(invoice_id)
        status = InvoiceStatus(status)
        if invoice.status == status:
            return invoice

        try:
            stored = self._storage.save_invoice(invoice.with_updates(status=status))
        except StorageError as e:
            _log_write_failure(self._audit_logger, e, "update_status", invoice_id)
            raise
        if self._audit_logger:
            self._audit_logger.log_status_changed(
                invoice_id=invoice_id,
                old_status=invoice.status.value,
                new_status=status.value,
            )
        return stored

    # -------------------------------------------------------------------------
    # Rendering and export
    # -------------------------------------------------------------------------

    def render(self, invoice: Invoice) -> Image.Image:
        return self._renderer.render(invoice)

    def export_pdf(self, invoice: Invoice, output_dir: Optional[Path] = None) -> Path:
        """
        Render ``invoice`` and save it as ``invoice-<number>.pdf``.

        Raises:
            ExportError: Rendering or writing failed; no file was left behind
        """
        output_dir = Path(output_dir) if output_dir else self._export_dir

        try:
            document = self._renderer.render(invoice)
            path = self._exporter.export(document, invoice, output_dir)
        except ExportError as e:
            self._log_export_failure(invoice, e)
            raise
        except Exception as e:
            self._log_export_failure(invoice, e)
            raise ExportError("Failed to generate PDF") from e

        if self._audit_logger:
            self._audit_logger.log_pdf_exported(invoice_id=invoice.id, path=str(path))
        return path

    def _log_export_failure(self, invoice: Invoice, error: Exception) -> None:
        if self._audit_logger:
            cause = error.__cause__ or error
            self._audit_logger.log_pdf_failed(
                invoice_id=invoice.id,
                error_message=str(cause),
            )


class AddressBookFlow:
    """Orchestrates the contacts screen and the company profile settings."""

    def __init__(
        self,
        storage: InvoiceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._query_executor = InvoiceQueryExecutor(storage)
        self._audit_logger = audit_logger

    def list_contacts(self, filters: Optional[ContactFilters] = None) -> list[Contact]:
        return self._query_executor.find_contacts(filters or ContactFilters())

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        return self._storage.get_contact(contact_id)

    def save_contact(self, contact: Contact) -> Contact:
        """
        Insert or update a contact.

        Invoices that already bill this contact keep their own copy
        of its details.
        """
        try:
            stored = self._storage.save_contact(contact)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_save_failed(
                    entity_type="contact",
                    entity_id=contact.id,
                    error_message=str(e),
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_contact_saved(
                contact_id=stored.id,
                name=stored.name,
                contact_type=stored.contact_type.value,
            )
        return stored

    def delete_contact(self, contact_id: str) -> bool:
        try:
            found = self._storage.delete_contact(contact_id)
        except StorageError as e:
            _log_write_failure(self._audit_logger, e, "delete_contact", contact_id)
            raise
        if self._audit_logger:
            self._audit_logger.log_contact_deleted(contact_id=contact_id, found=found)
        return found

    def get_company_profile(self) -> Optional[CompanyProfile]:
        return self._storage.get_company_profile()

    def save_company_profile(self, profile: CompanyProfile) -> CompanyProfile:
        """Replace the company profile. Already saved invoices are unchanged."""
        try:
            self._storage.save_company_profile(profile)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_save_failed(
                    entity_type="company",
                    entity_id=None,
                    error_message=str(e),
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_company_saved(name=profile.name)
        return profile


class BackupFlow:
    """
    Orchestrates backup download and restore.

    Restore is DESTRUCTIVE. The flow is:
    1. Parse → reject anything that is not JSON
    2. Summarize → validate every record, count what would be written
    3. Confirm → the caller shows the summary and asks the user
    4. Import → only after an explicit yes

    A rejected or cancelled restore leaves storage untouched.
    """

    def __init__(
        self,
        storage: InvoiceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        backup_service: Optional[BackupService] = None,
    ):
        self._service = backup_service or BackupService(storage)
        self._audit_logger = audit_logger

    def export_backup(self, today: Optional[date] = None) -> tuple[str, str]:
        """
        Returns:
            (json_text, filename)
        """
        document = self._service.export_snapshot()
        if self._audit_logger:
            self._audit_logger.log_backup_exported(
                invoice_count=len(document.invoices),
                contact_count=len(document.clients),
            )
        return self._service.to_json(document), self._service.backup_filename(today)

    def preview_restore(self, text: Union[str, bytes]) -> BackupSummary:
        """
        Describe what restoring ``text`` would write, without writing it.

        Raises:
            ImportValidationError: The file is not a usable backup
        """
        document = self._service.parse_backup(text)
        return self._service.summarize(document)

    def restore_backup(
        self,
        text: Union[str, bytes],
        confirm: Callable[[BackupSummary], bool],
        correlation_id: Optional[UUID] = None,
    ) -> Optional[BackupSummary]:
        """
        Replace all stored data with a backup, if the user confirms.

        Args:
            text: Contents of the backup file
            confirm: Called with the summary; must return True to proceed

        Returns:
            The summary of what was imported, or None if cancelled

        Raises:
            ImportValidationError: The file is not a usable backup
            StorageError: A write failed during import
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            document = self._service.parse_backup(text)
            summary = self._service.summarize(document)
        except ImportValidationError as e:
            if self._audit_logger:
                self._audit_logger.log_backup_rejected(
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if not confirm(summary):
            if self._audit_logger:
                self._audit_logger.log_backup_cancelled(correlation_id=correlation_id)
            return None

        try:
            imported = self._service.import_snapshot(document)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_save_failed(
                    entity_type="backup",
                    entity_id=None,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_backup_imported(
                invoice_count=imported.invoice_count,
                contact_count=imported.contact_count,
                has_company=imported.has_company,
                correlation_id=correlation_id,
            )
        return imported


def create_store(settings: Settings) -> KeyValueStore:
    """The key-value medium selected by INVOICE_STORAGE_BACKEND."""
    storage_settings = settings.storage
    if storage_settings.backend == "memory":
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(storage_settings.data_dir)


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
) -> tuple[InvoiceFlow, AddressBookFlow, BackupFlow]:
    """
    Factory function to create all application components.

    Args:
        settings: Application settings. Defaults to get_settings().
        store: Key-value medium to use instead of the configured one
               (tests pass an InMemoryKeyValueStore).

    Returns:
        (invoice_flow, address_book_flow, backup_flow)
    """
    settings = settings or get_settings()
    configure_logging(debug=settings.app.debug_mode)
    defaults = settings.invoice_defaults
    export_settings = settings.export

    storage = KeyValueInvoiceStorage(
        store if store is not None else create_store(settings),
        number_prefix=defaults.number_prefix,
        number_width=defaults.number_width,
    )
    audit_logger = AuditLogger()

    created_keys = storage.initialize_storage()
    if created_keys:
        audit_logger.log_storage_initialized(created_keys)

    invoice_flow = InvoiceFlow(
        storage=storage,
        defaults=defaults,
        exporter=PdfExporter(dpi=export_settings.dpi),
        audit_logger=audit_logger,
        export_dir=export_settings.output_dir,
    )
    address_book_flow = AddressBookFlow(
        storage=storage,
        audit_logger=audit_logger,
    )
    backup_flow = BackupFlow(
        storage=storage,
        audit_logger=audit_logger,
    )

    return invoice_flow, address_book_flow, backup_flow
