"""
UAE TaxDesk - Tax Calculators Package

Tax calculation services for UAE VAT and Corporate Income Tax.

Modules:
- vat_service: VAT treatment rule table, VAT calculation and returns (5% rate)
- income_classifier: Free Zone qualifying income and de minimis test
- cit_service: CIT calculation (0%/9%, Small Business Relief, QFZP)
"""

from decimal import Decimal
from typing import Iterable

from taxdesk.schemas.tax import (
    CITResult,
    CompanyProfile,
    ExpenseEntry,
    RevenueEntry,
    VATSummary,
    VATTransaction,
    VATTreatment,
)
from taxdesk.services.tax_calculators.vat_service import (
    VATCalculator,
    VATReturnService,
    VAT_RULES,
    UAE_VAT_RATE,
)
from taxdesk.services.tax_calculators.income_classifier import (
    classify,
    classify_activity,
    exceeds_de_minimis,
    split_income,
)
from taxdesk.services.tax_calculators.cit_service import CITCalculator


# ===========================================
# CONVENIENCE FUNCTIONS
# ===========================================

def resolve(category: str) -> VATTreatment:
    """
    Resolve the VAT treatment of a transaction category.

    Unknown categories get standard 5% VAT with no reverse charge.
    """
    return VATCalculator.resolve(category)


def compute_vat(category: str, amount: Decimal, tax_inclusive: bool = False) -> Decimal:
    """
    Calculate VAT on an amount.

    Args:
        category: Transaction category
        amount: Net amount, or gross amount when tax_inclusive
        tax_inclusive: Whether amount already includes VAT

    Returns:
        VAT amount (5% or 0 if exempt)
    """
    return VATCalculator.compute_vat(category, amount, tax_inclusive)


def summarize(transactions: Iterable[VATTransaction]) -> VATSummary:
    return VATCalculator.summarize(transactions)


def compute_cit(
    profile: CompanyProfile,
    revenue: Iterable[RevenueEntry],
    expenses: Iterable[ExpenseEntry],
) -> CITResult:
    """
    Calculate Corporate Income Tax for a period.

    Rates:
    - 0%: taxable income <= AED 375,000
    - 9%: taxable income above AED 375,000
    - QFZP: 0% on qualifying income, 9% on non-qualifying income

    Returns:
        CITResult
    """
    return CITCalculator.compute_cit(profile, revenue, expenses)


__all__ = [
    "VATCalculator",
    "VATReturnService",
    "VAT_RULES",
    "UAE_VAT_RATE",
    "CITCalculator",
    "classify",
    "classify_activity",
    "exceeds_de_minimis",
    "split_income",
    "resolve",
    "compute_vat",
    "summarize",
    "compute_cit",
]
