"""
UAE TaxDesk - CIT Calculator Service

Corporate Income Tax (CIT) calculation for UAE tax compliance
(Federal Decree-Law No. 47 of 2022).

CIT Rates:
- Taxable income <= AED 375,000: 0%
- Taxable income > AED 375,000: 9% on the excess

Small Business Relief:
- Elective, for resident persons with revenue <= AED 3,000,000 in the period
  (Ministerial Decision No. 73 of 2023). Not available to QFZPs.

Qualifying Free Zone Person (QFZP):
- Qualifying income: 0%
- Non-qualifying income: 9%, no AED 375,000 band
- De minimis breach: the whole period is taxed as a standard taxpayer
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from taxdesk.schemas.tax import CITResult, CompanyProfile, ExpenseEntry, RevenueEntry
from taxdesk.services.tax_calculators.income_classifier import split_income

logger = logging.getLogger(__name__)


CIT_RATE = Decimal("9")
CIT_ZERO_RATE_BAND = Decimal("375000")
SMALL_BUSINESS_RELIEF_THRESHOLD = Decimal("3000000")

ZERO = Decimal("0")
CENTS = Decimal("0.01")
RATE_PRECISION = Decimal("0.0001")


class CITCalculator:
    """
    Corporate Income Tax calculator.

    Assumes amounts were validated at the boundary; zero or empty inputs
    degrade to zero liability instead of raising.
    """

    @staticmethod
    def standard_cit(taxable_income: Decimal) -> Decimal:
        """9% on taxable income above the AED 375,000 band."""
        return max(ZERO, taxable_income - CIT_ZERO_RATE_BAND) * CIT_RATE / 100

    @staticmethod
    def effective_rate(cit_payable: Decimal, taxable_income: Decimal) -> Decimal:
        """CIT as a percentage of taxable income; 0 when there is no taxable income."""
        if taxable_income <= 0:
            return ZERO.quantize(RATE_PRECISION)
        return (cit_payable / taxable_income * 100).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_cit(
        profile: CompanyProfile,
        revenue: Iterable[RevenueEntry],
        expenses: Iterable[ExpenseEntry],
    ) -> CITResult:
        """
        Calculate Corporate Income Tax for one tax period.

        Args:
            profile: Company tax profile (QFZP status, relief election)
            revenue: Revenue entries of the period
            expenses: Expense entries of the period

        Returns:
            CITResult with taxable income, CIT payable, effective rate and
            any threshold warnings
        """
        revenue = list(revenue)
        expenses = list(expenses)
        warnings: List[str] = []

        total_revenue = sum((e.amount for e in revenue), ZERO)
        total_expenses = sum((e.amount for e in expenses), ZERO)
        net_profit = total_revenue - total_expenses
        taxable_income = net_profit if net_profit > 0 else ZERO

        split = split_income(revenue) if profile.is_qfzp else None
        qualifying_income = split.qualifying_income if split else ZERO
        non_qualifying_income = split.non_qualifying_income if split else ZERO
        breached = split.exceeds_de_minimis if split else False

        def result(cit_payable: Decimal, relief_applied: bool = False) -> CITResult:
            cit_payable = cit_payable.quantize(CENTS, rounding=ROUND_HALF_UP)
            return CITResult(
                total_revenue=total_revenue,
                total_expenses=total_expenses,
                net_profit=net_profit,
                taxable_income=taxable_income,
                cit_payable=cit_payable,
                effective_rate=CITCalculator.effective_rate(cit_payable, taxable_income),
                small_business_relief_applied=relief_applied,
                is_qfzp=profile.is_qfzp,
                qualifying_income=qualifying_income,
                non_qualifying_income=non_qualifying_income,
                exceeds_de_minimis=breached,
                warnings=warnings,
            )

        # Small Business Relief
        if profile.small_business_relief_elected:
            if profile.is_qfzp:
                warnings.append("Small Business Relief is not available to a Qualifying Free Zone Person.")
            elif total_revenue <= SMALL_BUSINESS_RELIEF_THRESHOLD:
                logger.info(f"Small Business Relief applied (revenue AED {total_revenue:,.2f})")
                return result(ZERO, relief_applied=True)
            else:
                warnings.append(
                    f"Small Business Relief elected but revenue AED {total_revenue:,.2f} "
                    "exceeds the AED 3,000,000 threshold."
                )

        if not profile.is_qfzp:
            return result(CITCalculator.standard_cit(taxable_income))

        if breached:
            # Loss of QFZP status applies to the whole period
            warnings.append(split.warning)
            logger.warning(
                f"De minimis breached for {profile.company_name or 'company'}, "
                "taxing the period at standard rates"
            )
            return result(CITCalculator.standard_cit(taxable_income))

        if split.total_income <= 0:
            return result(ZERO)

        non_qualifying_share = taxable_income * non_qualifying_income / split.total_income
        return result(non_qualifying_share * CIT_RATE / 100)
