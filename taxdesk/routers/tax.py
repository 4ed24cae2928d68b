"""
UAE TaxDesk - Tax Router

API endpoints for VAT treatment, VAT returns, Free Zone income
classification, Corporate Income Tax and pre-submission return checks.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from taxdesk.dependencies import get_validation_service, require_permission
from taxdesk.schemas.tax import (
    CITResult,
    IncomeClassification,
    IncomeSplit,
    ReturnValidationResult,
    VATReturn,
    VATSummary,
    VATTransaction,
    VATTreatment,
)
from taxdesk.services.tax_calculators import (
    CITCalculator,
    VATCalculator,
    VATReturnService,
    classify,
    split_income,
)
from taxdesk.services.return_validation_service import validate_cit_return, validate_vat_return
from taxdesk.services.validation_service import ValidationService
from taxdesk.utils.permissions import Permission


router = APIRouter(prefix="/tax", tags=["Tax"])

view_figures = require_permission(Permission.VIEW_TAX_FIGURES)
manage_filings = require_permission(Permission.MANAGE_TAX_FILINGS)


# ===========================================
# REQUEST/RESPONSE SCHEMAS
# ===========================================

class VATResolveRequest(BaseModel):
    category: str


class VATSummaryRequest(BaseModel):
    """Explicit lines, stored records, or both."""
    transactions: List[VATTransaction] = Field(default_factory=list)
    revenue: List[Dict[str, Any]] = Field(default_factory=list)
    expenses: List[Dict[str, Any]] = Field(default_factory=list)


class VATReturnRequest(BaseModel):
    """Raw records are validated at the boundary."""
    period_start: date
    period_end: date
    revenue: List[Dict[str, Any]] = Field(default_factory=list)
    expenses: List[Dict[str, Any]] = Field(default_factory=list)
    for_filing: bool = False


class ClassifyRequest(BaseModel):
    revenue: Dict[str, Any]


class ClassifyResponse(BaseModel):
    revenue_id: str
    income_classification: IncomeClassification


class DeMinimisRequest(BaseModel):
    revenue: List[Dict[str, Any]] = Field(default_factory=list)


class CITRequest(BaseModel):
    profile: Dict[str, Any]
    revenue: List[Dict[str, Any]] = Field(default_factory=list)
    expenses: List[Dict[str, Any]] = Field(default_factory=list)
    for_filing: bool = False


class VATReturnCheckRequest(BaseModel):
    trn: Optional[str] = None
    vat_return: VATReturn


class CITReturnCheckRequest(BaseModel):
    profile: Dict[str, Any]
    tax_year: int
    cit_result: CITResult


# ===========================================
# VAT
# ===========================================

@router.post("/vat/resolve", response_model=VATTreatment)
async def resolve_vat_treatment(request: VATResolveRequest, role=Depends(view_figures)):
    """Resolve the VAT treatment of a category (unknown -> standard 5%)."""
    return VATCalculator.resolve(request.category)


@router.post("/vat/summary", response_model=VATSummary)
async def vat_summary(
    request: VATSummaryRequest,
    role=Depends(view_figures),
    validator: ValidationService = Depends(get_validation_service),
):
    """Output/input VAT totals for a transaction list and/or revenue and expense records."""
    revenue = [validator.parse_revenue(r) for r in request.revenue]
    expenses = [validator.parse_expense(e) for e in request.expenses]
    transactions = list(request.transactions)
    transactions.extend(VATCalculator.transactions_from_entries(revenue, expenses))
    return VATCalculator.summarize(transactions)


@router.post("/vat/return", response_model=VATReturn)
async def prepare_vat_return(
    request: VATReturnRequest,
    role=Depends(view_figures),
    validator: ValidationService = Depends(get_validation_service),
):
    """VAT 201 figures for one tax period."""
    revenue = [validator.parse_revenue(r) for r in request.revenue]
    expenses = [validator.parse_expense(e) for e in request.expenses]
    if request.for_filing:
        for expense in expenses:
            validator.validate_expense_for_filing(expense)

    return VATReturnService().prepare_vat_return(
        revenue, expenses, request.period_start, request.period_end
    )


# ===========================================
# FREE ZONE INCOME
# ===========================================

@router.post("/income/classify", response_model=ClassifyResponse)
async def classify_income(
    request: ClassifyRequest,
    role=Depends(view_figures),
    validator: ValidationService = Depends(get_validation_service),
):
    entry = validator.parse_revenue(request.revenue)
    return ClassifyResponse(revenue_id=entry.id, income_classification=classify(entry))


@router.post("/income/de-minimis", response_model=IncomeSplit)
async def de_minimis_report(
    request: DeMinimisRequest,
    role=Depends(view_figures),
    validator: ValidationService = Depends(get_validation_service),
):
    """Qualifying/non-qualifying split and the de minimis verdict."""
    entries = [validator.parse_revenue(r) for r in request.revenue]
    return split_income(entries)


# ===========================================
# CORPORATE INCOME TAX
# ===========================================

@router.post("/cit/compute", response_model=CITResult)
async def compute_cit(
    request: CITRequest,
    role=Depends(view_figures),
    validator: ValidationService = Depends(get_validation_service),
):
    """
    Compute Corporate Income Tax for a period.

    Threshold breaches come back as flags and warnings, never as errors.
    """
    profile = validator.parse_profile(request.profile)
    revenue = [validator.parse_revenue(r) for r in request.revenue]
    expenses = [validator.parse_expense(e) for e in request.expenses]
    if request.for_filing:
        for expense in expenses:
            validator.validate_expense_for_filing(expense)

    return CITCalculator.compute_cit(profile, revenue, expenses)


# ===========================================
# RETURN CHECKS
# ===========================================

@router.post("/vat/return/validate", response_model=ReturnValidationResult)
async def check_vat_return(request: VATReturnCheckRequest, role=Depends(manage_filings)):
    """Errors, warnings and a score for VAT 201 figures before submission."""
    return validate_vat_return(request.vat_return, request.trn)


@router.post("/cit/validate", response_model=ReturnValidationResult)
async def check_cit_return(
    request: CITReturnCheckRequest,
    role=Depends(manage_filings),
    validator: ValidationService = Depends(get_validation_service),
):
    profile = validator.parse_profile(request.profile)
    return validate_cit_return(request.cit_result, profile, request.tax_year)
