"""
UAE TaxDesk - Return Validation Service

Pre-submission checks for VAT 201 and Corporate Income Tax return figures.

Errors block filing; warnings flag figures worth a second look before the
return goes to the FTA. Each result carries a score:
100 - 20 per error - 5 per warning, floored at 0.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from taxdesk.schemas.tax import (
    TRN_REGEX,
    CITResult,
    CompanyProfile,
    ReturnValidationResult,
    VATReturn,
)
from taxdesk.services.tax_calculators.cit_service import (
    CIT_RATE,
    SMALL_BUSINESS_RELIEF_THRESHOLD,
    CITCalculator,
)
from taxdesk.services.tax_calculators.vat_service import UAE_VAT_RATE

logger = logging.getLogger(__name__)


VAT_INTRODUCED_YEAR = 2018
CIT_INTRODUCED_YEAR = 2023
TOLERANCE = Decimal("0.01")
LARGE_VAT_AMOUNT = Decimal("50000")
HIGH_PROFIT_MARGIN = Decimal("50")

ERROR_PENALTY = 20
WARNING_PENALTY = 5


def _result(errors: List[str], warnings: List[str]) -> ReturnValidationResult:
    score = max(0, 100 - ERROR_PENALTY * len(errors) - WARNING_PENALTY * len(warnings))
    return ReturnValidationResult(is_valid=not errors, errors=errors, warnings=warnings, score=score)


def _differs(a: Decimal, b: Decimal) -> bool:
    return abs(a - b) > TOLERANCE


def _check_trn(trn: Optional[str], errors: List[str]) -> None:
    if not trn:
        errors.append("TRN is required to file a return")
    elif not TRN_REGEX.match(trn):
        errors.append(f"TRN '{trn}' must be exactly 15 digits")


def validate_vat_return(
    vat_return: VATReturn,
    trn: Optional[str],
    today: Optional[date] = None,
) -> ReturnValidationResult:
    """
    Check VAT 201 figures before submission.

    Args:
        vat_return: Figures as prepared (or edited) for the period
        trn: Tax Registration Number the return is filed under
        today: Reference date for the period checks

    Returns:
        ReturnValidationResult
    """
    today = today or date.today()
    errors: List[str] = []
    warnings: List[str] = []

    _check_trn(trn, errors)

    if vat_return.period_end < vat_return.period_start:
        errors.append(f"period_end {vat_return.period_end} is before period_start {vat_return.period_start}")
    if vat_return.period_start.year < VAT_INTRODUCED_YEAR:
        errors.append(f"UAE VAT applies from {VAT_INTRODUCED_YEAR}; period starts {vat_return.period_start}")
    if vat_return.period_end > today:
        errors.append(f"tax period ends {vat_return.period_end}, after {today}")

    for field in (
        "standard_rated_supplies",
        "zero_rated_supplies",
        "exempt_supplies",
        "output_vat",
        "standard_rated_expenses",
        "reverse_charge_vat",
        "recoverable_input_vat",
    ):
        if getattr(vat_return, field) < 0:
            errors.append(f"{field} cannot be negative")

    supplies = vat_return.standard_rated_supplies + vat_return.zero_rated_supplies + vat_return.exempt_supplies
    if _differs(supplies, vat_return.total_supplies):
        errors.append(
            f"total_supplies {vat_return.total_supplies} != standard + zero-rated + exempt supplies ({supplies})"
        )

    net = vat_return.output_vat + vat_return.reverse_charge_vat - vat_return.recoverable_input_vat
    if _differs(net, vat_return.net_vat_due):
        errors.append(
            f"net_vat_due {vat_return.net_vat_due} != output VAT + reverse charge - recoverable input VAT ({net})"
        )
    if vat_return.is_refund_due != (vat_return.net_vat_due < 0):
        errors.append("is_refund_due does not match the sign of net_vat_due")

    expected_output = vat_return.standard_rated_supplies * UAE_VAT_RATE / 100
    if _differs(expected_output, vat_return.output_vat):
        warnings.append(
            f"output_vat {vat_return.output_vat} is not 5% of standard-rated supplies ({expected_output:.2f})"
        )
    if vat_return.total_supplies == 0 and vat_return.net_vat_due == 0:
        warnings.append("Nil return: confirm there was no business activity in the period")
    if vat_return.net_vat_due > LARGE_VAT_AMOUNT:
        warnings.append("Large VAT amount: keep supporting documentation ready for FTA review")

    result = _result(errors, warnings)
    logger.info(
        f"VAT return {vat_return.period_start} - {vat_return.period_end} checked: "
        f"{len(errors)} error(s), {len(warnings)} warning(s), score {result.score}"
    )
    return result


def validate_cit_return(
    cit_result: CITResult,
    profile: CompanyProfile,
    tax_year: int,
    today: Optional[date] = None,
) -> ReturnValidationResult:
    """
    Check Corporate Income Tax figures before submission.

    The expected liability depends on the profile: Small Business Relief
    means zero, a QFZP within de minimis pays at most 9% of taxable income,
    everyone else pays 9% above the AED 375,000 band.
    """
    today = today or date.today()
    errors: List[str] = []
    warnings: List[str] = []

    _check_trn(profile.trn_number, errors)

    if tax_year < CIT_INTRODUCED_YEAR:
        errors.append(f"UAE Corporate Income Tax applies from {CIT_INTRODUCED_YEAR}; tax year is {tax_year}")
    if tax_year > today.year:
        errors.append(f"tax year {tax_year} is in the future")

    for field in ("total_revenue", "total_expenses", "taxable_income", "cit_payable"):
        if getattr(cit_result, field) < 0:
            errors.append(f"{field} cannot be negative")

    net_profit = cit_result.total_revenue - cit_result.total_expenses
    if _differs(net_profit, cit_result.net_profit):
        errors.append(f"net_profit {cit_result.net_profit} != revenue - expenses ({net_profit})")
    if _differs(max(cit_result.net_profit, Decimal("0")), cit_result.taxable_income):
        errors.append(f"taxable_income {cit_result.taxable_income} does not follow from net profit {cit_result.net_profit}")

    if cit_result.small_business_relief_applied:
        if cit_result.total_revenue > SMALL_BUSINESS_RELIEF_THRESHOLD:
            errors.append("Small Business Relief applied but revenue exceeds AED 3,000,000")
        if cit_result.cit_payable != 0:
            errors.append("cit_payable must be 0 under Small Business Relief")
    elif cit_result.is_qfzp and not cit_result.exceeds_de_minimis:
        ceiling = cit_result.taxable_income * CIT_RATE / 100
        if cit_result.cit_payable - ceiling > TOLERANCE:
            errors.append(f"cit_payable {cit_result.cit_payable} exceeds 9% of taxable income ({ceiling:.2f})")
    else:
        expected = CITCalculator.standard_cit(cit_result.taxable_income)
        if _differs(expected, cit_result.cit_payable):
            errors.append(
                f"cit_payable {cit_result.cit_payable} != 9% of taxable income above AED 375,000 ({expected:.2f})"
            )

    if cit_result.total_expenses > cit_result.total_revenue:
        warnings.append("Deductible expenses exceed revenue: consider loss carry forward")
    if cit_result.exceeds_de_minimis:
        warnings.append("De minimis breached: QFZP benefits are lost for the period")
    if cit_result.total_revenue > 0:
        margin = cit_result.net_profit / cit_result.total_revenue * 100
        if margin > HIGH_PROFIT_MARGIN:
            warnings.append("Profit margin above 50% may require transfer pricing documentation")

    result = _result(errors, warnings)
    logger.info(
        f"CIT return {tax_year} checked: {len(errors)} error(s), {len(warnings)} warning(s), score {result.score}"
    )
    return result
