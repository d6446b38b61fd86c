"""Invoice and contact queries."""

from invoice_manager.queries.executor import InvoiceQueryExecutor

__all__ = ["InvoiceQueryExecutor"]
