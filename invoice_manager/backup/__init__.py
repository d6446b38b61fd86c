"""Backup and restore package."""

from invoice_manager.backup.snapshot import (
    BackupError,
    BackupService,
    ImportValidationError,
    ValidatedSnapshot,
)

__all__ = [
    "BackupError",
    "BackupService",
    "ImportValidationError",
    "ValidatedSnapshot",
]
