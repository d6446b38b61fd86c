"""
Backup and Restore

Export bundles all three collections into one JSON document:

    {
      "invoices": [...],
      "clients": [...],
      "company": {...} | null,
      "exportDate": "2026-10-19T09:30:00Z",
      "version": "1.0"
    }

Import is the reverse, and it is DESTRUCTIVE: a valid document replaces
every stored invoice, contact and the company profile. There is no merge.

CRITICAL: import_snapshot validates the whole document before writing
anything. A document that fails validation leaves storage untouched.
Asking the user for confirmation is the caller's job (see BackupFlow).
"""

import json
from datetime import date
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from invoice_manager.models.invoice import (
    BACKUP_FORMAT_VERSION,
    BackupDocument,
    BackupSummary,
    CompanyProfile,
    Contact,
    Invoice,
    utc_now,
)
from invoice_manager.services.storage import InvoiceStorageInterface


logger = structlog.get_logger(__name__)

_INVOICE_LIST = TypeAdapter(list[Invoice])
_CONTACT_LIST = TypeAdapter(list[Contact])


class BackupError(Exception):
    """Base exception for backup and restore errors."""
    pass


class ImportValidationError(BackupError):
    """
    The document is not a usable backup. Nothing was changed.

    ``errors`` holds pydantic's per-field errors when individual
    records were invalid.
    """

    def __init__(self, message: str, errors: Optional[list[dict]] = None):
        super().__init__(message)
        self.errors = errors or []


class ValidatedSnapshot(BaseModel):
    """A backup document that passed every check, ready to write."""
    model_config = ConfigDict(frozen=True)

    invoices: list[Invoice]
    contacts: list[Contact]
    company: Optional[CompanyProfile]
    version: Optional[str]
    export_date: Optional[str]

    def summary(self) -> BackupSummary:
        return BackupSummary(
            invoice_count=len(self.invoices),
            contact_count=len(self.contacts),
            has_company=self.company is not None,
            version=self.version,
            export_date=self.export_date,
        )


class BackupService:
    """Builds backup documents from storage and restores them into it."""

    def __init__(self, storage: InvoiceStorageInterface):
        self._storage = storage

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export_snapshot(self) -> BackupDocument:
        """Everything currently stored, stamped with the export time."""
        return BackupDocument(
            invoices=self._storage.get_invoices(),
            clients=self._storage.get_contacts(),
            company=self._storage.get_company_profile(),
            export_date=utc_now(),
            version=BACKUP_FORMAT_VERSION,
        )

    @staticmethod
    def to_json(document: BackupDocument) -> str:
        return json.dumps(document.to_record(), indent=2, ensure_ascii=False)

    @staticmethod
    def backup_filename(today: Optional[date] = None) -> str:
        today = today or date.today()
        return f"invoice_manager_backup_{today.isoformat()}.json"

    # -------------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------------

    @staticmethod
    def parse_backup(text: Union[str, bytes]) -> Any:
        """Decode a backup file's contents."""
        try:
            return json.loads(text)
        except ValueError as e:
            raise ImportValidationError(f"Invalid file format: {e}") from e

    def validate(self, document: Union[dict, BackupDocument, Any]) -> ValidatedSnapshot:
        """
        Check a decoded backup document.

        Checks, in order:
        1. The document is an object
        2. ``invoices`` and ``clients`` are arrays
        3. ``company`` is an object or null (it may be absent)
        4. Every record parses into its model

        Raises:
            ImportValidationError: On the first failed check
        """
        if isinstance(document, BackupDocument):
            document = document.to_record()

        if not isinstance(document, dict):
            raise ImportValidationError("Invalid file format: expected a JSON object")

        if not isinstance(document.get("invoices"), list) or not isinstance(
            document.get("clients"), list
        ):
            raise ImportValidationError(
                "Invalid data structure: 'invoices' and 'clients' must be arrays"
            )

        company_data = document.get("company")
        if company_data is not None and not isinstance(company_data, dict):
            raise ImportValidationError(
                "Invalid data structure: 'company' must be an object or null"
            )

        try:
            invoices = _INVOICE_LIST.validate_python(document["invoices"])
        except ValidationError as e:
            raise ImportValidationError(
                f"Invalid invoice records ({e.error_count()} errors)",
                errors=e.errors(include_url=False),
            ) from e

        try:
            contacts = _CONTACT_LIST.validate_python(document["clients"])
        except ValidationError as e:
            raise ImportValidationError(
                f"Invalid client records ({e.error_count()} errors)",
                errors=e.errors(include_url=False),
            ) from e

        try:
            company = (
                CompanyProfile.model_validate(company_data)
                if company_data is not None else None
            )
        except ValidationError as e:
            raise ImportValidationError(
                f"Invalid company record ({e.error_count()} errors)",
                errors=e.errors(include_url=False),
            ) from e

        version = document.get("version")
        if version is not None and version != BACKUP_FORMAT_VERSION:
            logger.warning(
                "backup_version_mismatch",
                found=version,
                expected=BACKUP_FORMAT_VERSION,
            )

        export_date = document.get("exportDate")
        return ValidatedSnapshot(
            invoices=invoices,
            contacts=contacts,
            company=company,
            version=str(version) if version is not None else None,
            export_date=str(export_date) if export_date is not None else None,
        )

    def summarize(self, document: Union[dict, BackupDocument, Any]) -> BackupSummary:
        """Validate and describe what an import would write."""
        return self.validate(document).summary()

    def import_snapshot(self, document: Union[dict, BackupDocument, Any]) -> BackupSummary:
        """
        Replace ALL stored data with the contents of ``document``.

        A missing or null ``company`` clears the stored company profile.

        Raises:
            ImportValidationError: Document rejected; storage untouched
            StorageError: A write failed
        """
        snapshot = self.validate(document)

        self._storage.replace_all(
            invoices=[invoice.to_record() for invoice in snapshot.invoices],
            contacts=[contact.to_record() for contact in snapshot.contacts],
            company=snapshot.company.to_record() if snapshot.company else None,
        )
        return snapshot.summary()
