"""
Configuration Management for Invoice Manager

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Defaults reproduce the behaviour of the original invoice form
(8.25% tax, "Net 30", INV-0001 numbering) so a fresh install needs no .env.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="INVOICE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="file",
        pattern="^(file|memory)$",
        description="Store implementation: 'file' (JSON files) or 'memory'"
    )
    data_dir: Path = Field(
        default=Path(".invoice_data"),
        description="Directory holding one JSON file per storage key"
    )


class InvoiceDefaults(BaseSettings):
    """Defaults used when a new invoice draft is started."""

    model_config = SettingsConfigDict(
        env_prefix="INVOICE_DEFAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    currency: str = Field(
        default="USD",
        pattern="^(USD|GBP)$",
        description="Currency for new invoices"
    )
    tax_rate: Decimal = Field(
        default=Decimal("8.25"),
        ge=0,
        description="Tax rate (percent) for new invoices"
    )
    payment_terms: str = Field(
        default="Net 30",
        description="Payment terms for new invoices"
    )
    number_prefix: str = Field(
        default="INV-",
        description="Prefix of generated invoice numbers"
    )
    number_width: int = Field(
        default=4,
        ge=1,
        le=12,
        description="Zero-padding width of generated invoice numbers"
    )


class ExportSettings(BaseSettings):
    """PDF export configuration."""

    model_config = SettingsConfigDict(
        env_prefix="INVOICE_EXPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    output_dir: Path = Field(
        default=Path("exports"),
        description="Directory where exported PDFs are written"
    )
    dpi: int = Field(
        default=150,
        ge=72,
        le=600,
        description="Resolution of the generated PDF page"
    )

    @field_validator('output_dir')
    @classmethod
    def validate_output_dir(cls, v: Path) -> Path:
        """Refuse to treat an existing file as the export directory."""
        if v.exists() and not v.is_dir():
            raise ValueError(f"Export path exists and is not a directory: {v}")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def invoice_defaults(self) -> InvoiceDefaults:
        return InvoiceDefaults()

    @property
    def export(self) -> ExportSettings:
        return ExportSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed.
    """
    results = {}

    settings = get_settings()

    sections = {
        "storage": lambda: settings.storage,
        "invoice_defaults": lambda: settings.invoice_defaults,
        "export": lambda: settings.export,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
