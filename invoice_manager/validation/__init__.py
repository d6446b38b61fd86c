"""Validation package."""

from invoice_manager.validation.validator import InvoiceValidationError, InvoiceValidator

__all__ = ["InvoiceValidationError", "InvoiceValidator"]
