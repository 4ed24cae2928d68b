"""
UAE TaxDesk - Routers Package

FastAPI route handlers.

Routers:
- tax: VAT treatment, VAT returns, Free Zone income, CIT
- notifications: Deadline/compliance notifications and filing calendar
- invoices: Invoices from revenue and compliance documents
"""

from taxdesk.routers import tax, notifications, invoices

__all__ = ["tax", "notifications", "invoices"]
