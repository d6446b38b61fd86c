"""
Integration tests for the application flows.

Everything runs on an in-memory store; PDFs go to tmp_path.
"""

from datetime import date
from decimal import Decimal

import pytest

from invoice_manager.audit import AuditLogger
from invoice_manager.backup import ImportValidationError
from invoice_manager.config import InvoiceDefaults, Settings
from invoice_manager.models.audit import AuditEventType
from invoice_manager.models.invoice import (
    Client,
    CompanyProfile,
    Contact,
    Currency,
    DraftLineItem,
    InvoiceDraft,
    InvoiceStatus,
)
from invoice_manager.orchestrator import (
    AddressBookFlow,
    BackupFlow,
    InvoiceFlow,
    create_app_components,
)
from invoice_manager.services.export import ExportError
from invoice_manager.services.storage import (
    INVOICES_KEY,
    InMemoryKeyValueStore,
    KeyValueInvoiceStorage,
    NotFoundError,
    StorageError,
)
from invoice_manager.validation import InvoiceValidationError


class BrokenRenderer:
    def render(self, invoice):
        raise RuntimeError("font missing")


class LockableStore(InMemoryKeyValueStore):
    """In-memory store whose writes fail once ``locked`` is set."""

    locked = False

    def set(self, key, value):
        if self.locked:
            raise StorageError(f"Failed to write {key}: disk is read-only")
        super().set(key, value)


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def invoice_flow(storage, company, audit_logger, tmp_path):
    storage.save_company_profile(company)
    return InvoiceFlow(
        storage=storage,
        defaults=InvoiceDefaults(
            currency="USD",
            tax_rate=Decimal("8.25"),
            payment_terms="Net 30",
        ),
        audit_logger=audit_logger,
        export_dir=tmp_path / "exports",
    )


@pytest.fixture
def address_book(storage, audit_logger):
    return AddressBookFlow(storage=storage, audit_logger=audit_logger)


@pytest.fixture
def backup_flow(storage, audit_logger):
    return BackupFlow(storage=storage, audit_logger=audit_logger)


def _event_types(audit_logger):
    return [e.event_type for e in audit_logger.history]


class TestInvoiceDrafts:
    """Tests for starting, editing and duplicating drafts."""

    def test_new_draft_defaults(self, invoice_flow):
        draft = invoice_flow.new_draft()
        assert draft.invoice_number == "INV-0001"
        assert draft.issue_date == date.today()
        assert draft.tax_rate == Decimal("8.25")
        assert draft.payment_terms == "Net 30"
        assert draft.status == InvoiceStatus.DRAFT
        assert draft.currency == Currency.USD
        assert draft.invoice_id is None

    def test_draft_from_invoice_round_trips(self, invoice_flow, valid_draft):
        saved = invoice_flow.save_draft(valid_draft)
        draft = invoice_flow.draft_from_invoice(saved)
        assert draft.invoice_id == saved.id
        assert draft.items[0].id == saved.items[0].id
        assert draft.total == saved.total

    def test_duplicate_invoice(self, invoice_flow, valid_draft, audit_logger):
        source = invoice_flow.save_draft(valid_draft.model_copy(update={"status": InvoiceStatus.PAID}))

        copy = invoice_flow.duplicate_invoice(source.id)

        assert copy.invoice_id is None
        assert copy.invoice_number == "INV-0002"
        assert copy.issue_date == date.today()
        assert copy.due_date is None
        assert copy.status == InvoiceStatus.DRAFT
        assert copy.client.name == "Acme Corp"
        assert copy.total == source.total
        assert AuditEventType.INVOICE_DUPLICATED in _event_types(audit_logger)

    def test_saving_a_duplicate_creates_a_new_invoice(self, invoice_flow, valid_draft, storage):
        source = invoice_flow.save_draft(valid_draft)
        copy = invoice_flow.duplicate_invoice(source.id).model_copy(
            update={"due_date": date(2026, 12, 31)}
        )

        saved = invoice_flow.save_draft(copy)

        assert saved.id != source.id
        assert len(storage.get_invoices()) == 2

    def test_duplicate_unknown_invoice(self, invoice_flow):
        with pytest.raises(NotFoundError):
            invoice_flow.duplicate_invoice("missing")


class TestSaveDraft:
    """Tests for validating and saving drafts."""

    def test_save_new_invoice(self, invoice_flow, valid_draft, storage, company, audit_logger):
        invoice = invoice_flow.save_draft(valid_draft)

        assert invoice.invoice_number == "INV-0001"
        assert invoice.company == company
        assert invoice.client.name == "Acme Corp"
        assert invoice.subtotal == Decimal("100")
        assert invoice.total == Decimal("108.25")
        assert storage.get_invoice(invoice.id) == invoice
        assert _event_types(audit_logger)[-1] == AuditEventType.INVOICE_SAVED

    def test_selected_contact_is_snapshotted(self, invoice_flow, valid_draft, storage, contact):
        storage.save_contact(contact)
        draft = valid_draft.model_copy(update={"client": None, "client_id": contact.id})

        invoice = invoice_flow.save_draft(draft)

        assert invoice.client == Client.from_contact(contact)

    def test_invalid_draft_is_not_saved(self, invoice_flow, valid_draft, storage, audit_logger):
        draft = valid_draft.model_copy(update={"due_date": None})

        with pytest.raises(InvoiceValidationError) as excinfo:
            invoice_flow.save_draft(draft)

        assert excinfo.value.result.errors_by_field() == {"due_date": "Due date is required"}
        assert storage.get_invoices() == []
        assert _event_types(audit_logger)[-1] == AuditEventType.INVOICE_VALIDATION_FAILED

    def test_missing_company_profile_blocks_saving(self, storage, valid_draft):
        flow = InvoiceFlow(storage=storage)
        with pytest.raises(InvoiceValidationError):
            flow.save_draft(valid_draft)

    def test_editing_keeps_id_and_position(self, invoice_flow, valid_draft, storage, audit_logger):
        first = invoice_flow.save_draft(valid_draft)
        invoice_flow.save_draft(invoice_flow.new_draft().model_copy(update={
            "due_date": date(2026, 12, 1),
            "client": Client(name="Globex"),
            "items": [DraftLineItem(description="Audit", quantity=Decimal("1"), price=Decimal("500"))],
        }))

        draft = invoice_flow.draft_from_invoice(first).model_copy(update={"notes": "Updated"})
        edited = invoice_flow.save_draft(draft)

        invoices = storage.get_invoices()
        assert len(invoices) == 2
        assert invoices[0].id == first.id
        assert invoices[0].notes == "Updated"
        assert edited.created_at == first.created_at
        assert _event_types(audit_logger)[-1] == AuditEventType.INVOICE_UPDATED

    def test_company_changes_do_not_touch_saved_invoices(
        self, invoice_flow, address_book, valid_draft, storage
    ):
        invoice = invoice_flow.save_draft(valid_draft)
        address_book.save_company_profile(CompanyProfile(name="Rebranded Ltd"))
        assert storage.get_invoice(invoice.id).company.name == "Northwind Studio"

    def test_deleting_contact_keeps_invoice_snapshot(
        self, invoice_flow, address_book, valid_draft, storage, contact
    ):
        address_book.save_contact(contact)
        invoice = invoice_flow.save_draft(
            valid_draft.model_copy(update={"client": None, "client_id": contact.id})
        )

        assert address_book.delete_contact(contact.id)

        assert storage.get_invoice(invoice.id).client.name == "Acme Corp"

    def test_preview_does_not_save(self, invoice_flow, valid_draft, storage):
        invoice = invoice_flow.preview(valid_draft)
        assert invoice.total == Decimal("108.25")
        assert storage.get_invoices() == []

    def test_preview_of_unusable_draft(self, invoice_flow):
        with pytest.raises(InvoiceValidationError):
            invoice_flow.preview(InvoiceDraft(invoice_number="", items=[]))

    def test_validate_draft_reports_warnings(self, invoice_flow, valid_draft):
        draft = valid_draft.model_copy(update={"due_date": date(2026, 9, 1)})
        result = invoice_flow.validate_draft(draft)
        assert result.is_valid
        assert result.warnings


class TestInvoiceChanges:
    """Tests for delete, status changes and listing."""

    def test_delete_invoice(self, invoice_flow, valid_draft, audit_logger):
        invoice = invoice_flow.save_draft(valid_draft)
        assert invoice_flow.delete_invoice(invoice.id)
        assert invoice_flow.get_invoice(invoice.id) is None
        assert not invoice_flow.delete_invoice(invoice.id)
        assert _event_types(audit_logger)[-1] == AuditEventType.INVOICE_DELETED

    def test_update_status(self, invoice_flow, valid_draft, audit_logger):
        invoice = invoice_flow.save_draft(valid_draft)

        updated = invoice_flow.update_status(invoice.id, InvoiceStatus.PAID)

        assert updated.status == InvoiceStatus.PAID
        assert invoice_flow.get_invoice(invoice.id).status == InvoiceStatus.PAID
        assert updated.total == invoice.total
        assert _event_types(audit_logger)[-1] == AuditEventType.INVOICE_STATUS_CHANGED

    def test_update_status_of_unknown_invoice(self, invoice_flow):
        with pytest.raises(NotFoundError):
            invoice_flow.update_status("missing", InvoiceStatus.SENT)

    def test_list_invoices(self, invoice_flow, valid_draft):
        invoice_flow.save_draft(valid_draft)
        result = invoice_flow.list_invoices()
        assert result.result_count == 1
        assert result.total_amount == Decimal("108.25")


class TestWriteFailures:
    """Failed writes surface as StorageError and are audited."""

    @pytest.fixture
    def locked_store(self):
        return LockableStore()

    @pytest.fixture
    def flows(self, locked_store, company, contact, valid_draft, audit_logger):
        storage = KeyValueInvoiceStorage(locked_store)
        storage.initialize_storage()
        storage.save_company_profile(company)
        storage.save_contact(contact)
        invoice_flow = InvoiceFlow(storage=storage, audit_logger=audit_logger)
        invoice = invoice_flow.save_draft(valid_draft)
        locked_store.locked = True
        return invoice_flow, AddressBookFlow(storage, audit_logger=audit_logger), invoice

    def test_failed_delete(self, flows, audit_logger):
        invoice_flow, _, invoice = flows

        with pytest.raises(StorageError, match="read-only"):
            invoice_flow.delete_invoice(invoice.id)

        event = audit_logger.history[-1]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.details == {"operation": "delete_invoice", "entity_id": invoice.id}
        assert invoice_flow.get_invoice(invoice.id) is not None

    def test_failed_status_update(self, flows, audit_logger):
        invoice_flow, _, invoice = flows

        with pytest.raises(StorageError):
            invoice_flow.update_status(invoice.id, InvoiceStatus.PAID)

        assert audit_logger.history[-1].details["operation"] == "update_status"
        assert invoice_flow.get_invoice(invoice.id).status == InvoiceStatus.DRAFT

    def test_failed_contact_delete(self, flows, contact, audit_logger):
        _, address_book, _ = flows

        with pytest.raises(StorageError):
            address_book.delete_contact(contact.id)

        assert audit_logger.history[-1].event_type == AuditEventType.SYSTEM_ERROR
        assert address_book.get_contact(contact.id) is not None


class TestPdfExport:
    """Tests for exporting invoices from the flow."""

    def test_export_pdf(self, invoice_flow, valid_draft, tmp_path, audit_logger):
        invoice = invoice_flow.save_draft(valid_draft)

        path = invoice_flow.export_pdf(invoice)

        assert path == tmp_path / "exports" / "invoice-INV-0001.pdf"
        assert path.read_bytes().startswith(b"%PDF")
        assert _event_types(audit_logger)[-1] == AuditEventType.PDF_EXPORTED

    def test_render_failure_is_an_export_error(self, storage, make_invoice, tmp_path, audit_logger):
        flow = InvoiceFlow(
            storage=storage,
            renderer=BrokenRenderer(),
            audit_logger=audit_logger,
            export_dir=tmp_path,
        )

        with pytest.raises(ExportError, match="Failed to generate PDF"):
            flow.export_pdf(make_invoice())

        assert list(tmp_path.iterdir()) == []
        assert audit_logger.history[-1].error_message == "font missing"


class TestAddressBook:
    """Tests for contacts and the company profile."""

    def test_contacts(self, address_book, contact, audit_logger):
        address_book.save_contact(contact)
        address_book.save_contact(Contact(name="Jane Doe"))

        assert [c.name for c in address_book.list_contacts()] == ["Acme Corp", "Jane Doe"]
        assert address_book.get_contact(contact.id).email == "billing@acme.example"
        assert _event_types(audit_logger)[-1] == AuditEventType.CONTACT_SAVED

    def test_company_profile(self, address_book, company):
        assert address_book.get_company_profile() is None
        address_book.save_company_profile(company)
        assert address_book.get_company_profile() == company


class TestBackupFlow:
    """Tests for backup download and confirmed restore."""

    def test_export_backup(self, backup_flow, storage, make_invoice, audit_logger):
        storage.save_invoice(make_invoice())
        text, filename = backup_flow.export_backup(date(2026, 10, 19))
        assert filename == "invoice_manager_backup_2026-10-19.json"
        assert '"version": "1.0"' in text
        assert _event_types(audit_logger)[-1] == AuditEventType.BACKUP_EXPORTED

    def test_restore_requires_confirmation(self, backup_flow, storage, make_invoice, audit_logger):
        storage.save_invoice(make_invoice())
        text, _ = backup_flow.export_backup()
        storage.save_invoice(make_invoice(invoice_number="INV-0002"))
        seen = []

        def decline(summary):
            seen.append(summary)
            return False

        assert backup_flow.restore_backup(text, confirm=decline) is None
        assert seen[0].invoice_count == 1
        assert len(storage.get_invoices()) == 2
        assert _event_types(audit_logger)[-1] == AuditEventType.BACKUP_IMPORT_CANCELLED

    def test_confirmed_restore_replaces_data(self, backup_flow, storage, make_invoice, audit_logger):
        storage.save_invoice(make_invoice())
        text, _ = backup_flow.export_backup()
        storage.save_invoice(make_invoice(invoice_number="INV-0002"))

        summary = backup_flow.restore_backup(text, confirm=lambda s: True)

        assert summary.invoice_count == 1
        assert [i.invoice_number for i in storage.get_invoices()] == ["INV-0001"]
        assert _event_types(audit_logger)[-1] == AuditEventType.BACKUP_IMPORTED

    def test_invalid_backup_never_asks(self, backup_flow, store, storage, make_invoice, audit_logger):
        storage.save_invoice(make_invoice())
        before = store.get(INVOICES_KEY)

        def confirm(summary):
            raise AssertionError("confirmation must not be requested")

        with pytest.raises(ImportValidationError):
            backup_flow.restore_backup('{"invoices": {}, "clients": []}', confirm=confirm)

        assert store.get(INVOICES_KEY) == before
        assert _event_types(audit_logger)[-1] == AuditEventType.BACKUP_IMPORT_REJECTED

    def test_preview_restore(self, backup_flow):
        summary = backup_flow.preview_restore(b'{"invoices": [], "clients": [], "company": null}')
        assert summary.invoice_count == 0
        assert not summary.has_company


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_builds_flows_on_given_store(self, monkeypatch, tmp_path):
        monkeypatch.setenv("INVOICE_EXPORT_OUTPUT_DIR", str(tmp_path / "pdf"))
        monkeypatch.setenv("INVOICE_DEFAULT_NUMBER_PREFIX", "NW-")
        store = InMemoryKeyValueStore()

        invoice_flow, address_book, backup_flow = create_app_components(Settings(), store=store)

        assert store.has("invoices")
        assert store.has("savedClients")
        assert store.has("company")
        assert invoice_flow.new_draft().invoice_number == "NW-0001"
        assert address_book.list_contacts() == []
        assert isinstance(backup_flow, BackupFlow)

    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("INVOICE_STORAGE_BACKEND", "memory")
        invoice_flow, _, _ = create_app_components(Settings())
        assert invoice_flow.list_invoices().result_count == 0

    def test_file_backend(self, monkeypatch, tmp_path):
        monkeypatch.setenv("INVOICE_STORAGE_BACKEND", "file")
        monkeypatch.setenv("INVOICE_STORAGE_DATA_DIR", str(tmp_path / "data"))
        create_app_components(Settings())
        assert (tmp_path / "data" / "invoices.json").exists()
