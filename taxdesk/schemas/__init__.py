"""
UAE TaxDesk - Schemas Package

Pydantic schemas for engine inputs and outputs.
"""

from taxdesk.schemas.tax import (
    TransactionCategory,
    TransactionType,
    IncomeClassification,
    ActivityType,
    VATTreatment,
    RevenueEntry,
    ExpenseEntry,
    VATTransaction,
    ReverseChargeLine,
    VATSummary,
    VATReturn,
    Address,
    CompanyProfile,
    IncomeSplit,
    CITResult,
)
from taxdesk.schemas.notification import (
    NotificationType,
    NotificationPriority,
    NotificationAction,
    Notification,
    PRIORITY_RANK,
    TaxType,
    DeadlineStatus,
    FilingDeadline,
)
from taxdesk.schemas.invoice import (
    TaxCategoryCode,
    ContactDetails,
    Party,
    InvoiceItem,
    Invoice,
    ComplianceDocuments,
)

__all__ = [
    # Tax
    "TransactionCategory",
    "TransactionType",
    "IncomeClassification",
    "ActivityType",
    "VATTreatment",
    "RevenueEntry",
    "ExpenseEntry",
    "VATTransaction",
    "ReverseChargeLine",
    "VATSummary",
    "VATReturn",
    "Address",
    "CompanyProfile",
    "IncomeSplit",
    "CITResult",
    # Notifications
    "NotificationType",
    "NotificationPriority",
    "NotificationAction",
    "Notification",
    "PRIORITY_RANK",
    "TaxType",
    "DeadlineStatus",
    "FilingDeadline",
    # Invoices
    "TaxCategoryCode",
    "ContactDetails",
    "Party",
    "InvoiceItem",
    "Invoice",
    "ComplianceDocuments",
]
