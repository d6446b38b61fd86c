"""
Invoice Manager - Source Package

A local-first invoicing tool for a single user: company profile,
client address book, invoices with line items and tax, JSON backups
and PDF export.

DESIGN PRINCIPLES:
1. Totals are derived, never typed in
2. Invoices keep snapshots of company and client, not references
3. Destructive operations need explicit confirmation
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Invoice Manager Team"
