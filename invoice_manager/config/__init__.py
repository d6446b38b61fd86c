"""Configuration package."""

from invoice_manager.config.settings import (
    AppSettings,
    ExportSettings,
    InvoiceDefaults,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ExportSettings",
    "InvoiceDefaults",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
