"""
UAE TaxDesk - Tax Schemas

Pydantic schemas for transactions, company profile and computed VAT/CIT
figures.
"""

import re
import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator


TRN_REGEX = re.compile(r"^\d{15}$")


def new_id() -> str:
    return str(uuid.uuid4())


class TransactionCategory(str, Enum):
    """Known transaction categories. Each one has a row in the VAT rule table."""

    # Revenue
    PRODUCT_SALES = "Product Sales"
    SERVICE_INCOME = "Service Income"
    RENTAL_INCOME = "Rental Income"
    CONSULTING_FEES = "Consulting Fees"
    COMMISSION_INCOME = "Commission Income"
    INTEREST_INCOME = "Interest Income"
    OTHER_REVENUE = "Other Revenue"

    # Expense
    COST_OF_GOODS_SOLD = "Cost of Goods Sold"
    SALARIES_AND_WAGES = "Salaries and Wages"
    RENT = "Rent"
    UTILITIES = "Utilities"
    MARKETING_AND_ADVERTISING = "Marketing and Advertising"
    SOFTWARE_SUBSCRIPTIONS = "Software Subscriptions"
    PROFESSIONAL_SERVICES = "Professional Services"
    OFFICE_SUPPLIES = "Office Supplies"
    BANK_CHARGES = "Bank Charges"
    INSURANCE = "Insurance"
    TRAVEL_AND_MEALS = "Travel and Meals"
    DEPRECIATION = "Depreciation"
    VAT_PAID = "VAT Paid"
    OTHER_EXPENSES = "Other Expenses"


class TransactionType(str, Enum):
    """Side of the VAT return a transaction lands on."""
    REVENUE = "revenue"  # Supplies (output VAT)
    EXPENSE = "expense"  # Purchases (input VAT)


class IncomeClassification(str, Enum):
    """Free Zone income classification."""
    QUALIFYING = "qualifying"
    NON_QUALIFYING = "non-qualifying"


class ActivityType(str, Enum):
    """Free Zone activity types offered by the revenue form."""
    EXPORT_SERVICES = "export-services"
    INTRA_ZONE_TRADE = "intra-zone-trade"
    QUALIFYING_ACTIVITIES = "qualifying-activities"
    MAINLAND_SALES = "mainland-sales"
    DOMESTIC_SERVICES = "domestic-services"


# ===========================================
# VAT TREATMENT
# ===========================================

class VATTreatment(BaseModel):
    """VAT treatment derived from a transaction category."""
    vat_applicable: bool
    reverse_charge: bool
    vat_rate: int = Field(..., description="0 or 5 (percent)")
    exemption_reason: Optional[str] = None


# ===========================================
# TRANSACTION RECORDS
# ===========================================

class RevenueEntry(BaseModel):
    """A revenue (supply) record."""
    id: str = Field(default_factory=new_id)
    date: date
    description: str
    customer: Optional[str] = None
    category: str
    amount: Decimal = Field(..., ge=0, description="Tax-exclusive amount in AED")
    free_zone_income_type: Optional[str] = None
    free_zone_subcategory: Optional[str] = None
    activity_type: Optional[str] = None
    is_export: bool = False
    is_related_party_transaction: bool = False
    invoice_generated: bool = False
    invoice_id: Optional[str] = None

    @computed_field
    @property
    def income_classification(self) -> IncomeClassification:
        """Free Zone classification, derived from is_export/activity_type on every read."""
        from taxdesk.services.tax_calculators.income_classifier import classify_activity

        return classify_activity(self.is_export, self.activity_type)


class ExpenseEntry(BaseModel):
    """An expense (purchase) record."""
    id: str = Field(default_factory=new_id)
    date: date
    description: str
    vendor: str
    category: str
    amount: Decimal = Field(..., ge=0)
    receipt_file_id: Optional[str] = None


class VATTransaction(BaseModel):
    """A single line fed to the VAT summary fold."""
    category: str
    amount: Decimal = Field(..., ge=0)
    type: TransactionType
    tax_inclusive: bool = False
    zero_rated: bool = False  # export supply, taxable at 0%


class ReverseChargeLine(BaseModel):
    """Reverse-charge purchase disclosed for audit."""
    category: str
    amount: Decimal
    vat_amount: Decimal


class VATSummary(BaseModel):
    """Output/input VAT totals over a transaction set."""
    total_vat_on_supplies: Decimal
    total_vat_on_purchases: Decimal
    net_vat_due: Decimal
    reverse_charge_transactions: List[ReverseChargeLine] = Field(default_factory=list)

    @computed_field
    @property
    def is_refundable(self) -> bool:
        return self.net_vat_due < 0


class VATReturn(BaseModel):
    """VAT 201 style figures for one tax period."""
    period_start: date
    period_end: date
    standard_rated_supplies: Decimal
    zero_rated_supplies: Decimal = Decimal("0")
    exempt_supplies: Decimal
    total_supplies: Decimal
    output_vat: Decimal
    standard_rated_expenses: Decimal
    reverse_charge_vat: Decimal
    recoverable_input_vat: Decimal
    net_vat_due: Decimal
    is_refund_due: bool
    revenue_count: int
    expense_count: int


# ===========================================
# COMPANY PROFILE
# ===========================================

class Address(BaseModel):
    """UAE postal address."""
    street: str = ""
    city: str = ""
    emirate: str = ""
    country: str = "AE"
    postal_code: Optional[str] = None


class CompanyProfile(BaseModel):
    """Tax profile of the reporting company."""
    company_name: Optional[str] = None
    trn_number: Optional[str] = Field(None, description="15-digit Tax Registration Number")
    cit_submission_date: Optional[date] = None
    is_qfzp: bool = False
    financial_year_end: date

    vat_registered: bool = True
    small_business_relief_elected: bool = False

    # Document upload tracking
    agent_certificate_uploaded: bool = False
    bank_slip_uploaded: bool = False

    # Seller block for invoices
    address: Optional[Address] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("trn_number")
    @classmethod
    def trn_must_be_15_digits(cls, v):
        if v is None or v.strip() == "":
            return None
        if not TRN_REGEX.match(v):
            raise ValueError("TRN must be exactly 15 digits")
        return v

    @property
    def is_setup_complete(self) -> bool:
        return bool(self.company_name and self.trn_number)


# ===========================================
# INCOME SPLIT / CIT
# ===========================================

class IncomeSplit(BaseModel):
    """Qualifying vs non-qualifying income with the de minimis verdict."""
    qualifying_income: Decimal
    non_qualifying_income: Decimal
    total_income: Decimal
    non_qualifying_percentage: Decimal
    exceeds_percentage: bool
    exceeds_amount: bool
    exceeds_de_minimis: bool
    warning: Optional[str] = None


class CITResult(BaseModel):
    """Corporate Income Tax computation for one tax period."""
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    taxable_income: Decimal
    cit_payable: Decimal
    effective_rate: Decimal = Field(..., description="Percentage of taxable income")
    small_business_relief_applied: bool = False
    is_qfzp: bool = False
    qualifying_income: Decimal = Decimal("0")
    non_qualifying_income: Decimal = Decimal("0")
    exceeds_de_minimis: bool = False
    warnings: List[str] = Field(default_factory=list)


# ===========================================
# RETURN VALIDATION
# ===========================================

class ReturnValidationResult(BaseModel):
    """Pre-submission check of a VAT or CIT return."""
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    score: int = Field(..., ge=0, le=100, description="100 minus 20 per error and 5 per warning")
