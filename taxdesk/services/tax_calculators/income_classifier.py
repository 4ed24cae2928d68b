"""
UAE TaxDesk - Free Zone Income Classifier

Classifies revenue as qualifying or non-qualifying Free Zone income and
evaluates the QFZP de minimis test (Cabinet Decision No. 100 of 2023):

- Non-qualifying revenue must not exceed 5% of total revenue, and
- must not exceed AED 5,000,000.

Breaching either limit costs the Free Zone Person its 0% rate for the period.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from taxdesk.schemas.tax import ActivityType, IncomeClassification, IncomeSplit, RevenueEntry

logger = logging.getLogger(__name__)


DE_MINIMIS_PERCENTAGE = Decimal("5")
DE_MINIMIS_AMOUNT = Decimal("5000000")

QUALIFYING_ACTIVITY_TYPES = frozenset({
    ActivityType.EXPORT_SERVICES.value,
    ActivityType.INTRA_ZONE_TRADE.value,
    ActivityType.QUALIFYING_ACTIVITIES.value,
})


def classify_activity(is_export: bool, activity_type: Optional[str]) -> IncomeClassification:
    """
    Classify income from its two driving fields.

    Exports are always qualifying. Otherwise the activity type decides;
    an unset activity type is treated as non-qualifying (logged once, by
    ValidationService.parse_revenue).
    """
    if is_export:
        return IncomeClassification.QUALIFYING
    if activity_type in QUALIFYING_ACTIVITY_TYPES:
        return IncomeClassification.QUALIFYING
    return IncomeClassification.NON_QUALIFYING


def classify(entry: RevenueEntry) -> IncomeClassification:
    return classify_activity(entry.is_export, entry.activity_type)


def exceeds_de_minimis(non_qualifying_income: Decimal, total_income: Decimal) -> bool:
    """True when non-qualifying income is above 5% of total or above AED 5M."""
    non_qualifying_income = Decimal(non_qualifying_income)
    total_income = Decimal(total_income)
    return (
        non_qualifying_income > total_income * DE_MINIMIS_PERCENTAGE / 100
        or non_qualifying_income > DE_MINIMIS_AMOUNT
    )


def split_income(entries: Iterable[RevenueEntry]) -> IncomeSplit:
    """
    Split revenue into qualifying and non-qualifying income.

    Returns the de minimis report, including which limit was breached and
    a warning message when the QFZP 0% rate is lost.
    """
    qualifying = Decimal("0")
    non_qualifying = Decimal("0")
    for entry in entries:
        if classify(entry) == IncomeClassification.QUALIFYING:
            qualifying += entry.amount
        else:
            non_qualifying += entry.amount

    total = qualifying + non_qualifying
    if total > 0:
        percentage = (non_qualifying / total * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    else:
        percentage = Decimal("0.00")

    exceeds_percentage = non_qualifying > total * DE_MINIMIS_PERCENTAGE / 100
    exceeds_amount = non_qualifying > DE_MINIMIS_AMOUNT
    breached = exceeds_percentage or exceeds_amount

    warning = None
    if breached:
        reasons = []
        if exceeds_percentage:
            reasons.append(f"{percentage}% of revenue (limit: 5%)")
        if exceeds_amount:
            reasons.append(f"AED {non_qualifying:,.2f} (limit: AED 5,000,000)")
        warning = (
            "QFZP de minimis threshold exceeded: non-qualifying income is "
            + " and ".join(reasons)
            + ". The 0% rate is not available for this period."
        )
        logger.warning(warning)

    return IncomeSplit(
        qualifying_income=qualifying,
        non_qualifying_income=non_qualifying,
        total_income=total,
        non_qualifying_percentage=percentage,
        exceeds_percentage=exceeds_percentage,
        exceeds_amount=exceeds_amount,
        exceeds_de_minimis=breached,
        warning=warning,
    )
