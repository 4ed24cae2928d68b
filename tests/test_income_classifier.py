"""
UAE TaxDesk - Free Zone Income Classifier Tests

Qualifying/non-qualifying classification and the de minimis test.
"""

import pytest
from datetime import date
from decimal import Decimal

from taxdesk.schemas.tax import IncomeClassification, RevenueEntry
from taxdesk.services.tax_calculators import (
    classify,
    classify_activity,
    exceeds_de_minimis,
    split_income,
)


def revenue(amount, activity_type=None, is_export=False) -> RevenueEntry:
    return RevenueEntry(
        date=date(2025, 3, 1),
        description="Free zone revenue",
        category="Service Income",
        amount=Decimal(str(amount)),
        activity_type=activity_type,
        is_export=is_export,
    )


class TestClassification:
    """Classification from is_export and activity_type."""

    def test_export_is_always_qualifying(self):
        assert classify_activity(True, "mainland-sales") == IncomeClassification.QUALIFYING
        assert classify_activity(True, None) == IncomeClassification.QUALIFYING

    @pytest.mark.parametrize("activity", ["export-services", "intra-zone-trade", "qualifying-activities"])
    def test_qualifying_activity_types(self, activity):
        assert classify_activity(False, activity) == IncomeClassification.QUALIFYING

    @pytest.mark.parametrize("activity", ["mainland-sales", "domestic-services", "something-else"])
    def test_non_qualifying_activity_types(self, activity):
        assert classify_activity(False, activity) == IncomeClassification.NON_QUALIFYING

    def test_missing_activity_type_is_non_qualifying(self):
        assert classify_activity(False, None) == IncomeClassification.NON_QUALIFYING
        assert classify_activity(False, "") == IncomeClassification.NON_QUALIFYING

    def test_classification_is_idempotent(self):
        entry = revenue(1000, activity_type="mainland-sales")

        assert classify(entry) == classify(entry) == IncomeClassification.NON_QUALIFYING

    def test_flipping_export_reclassifies(self):
        entry = revenue(1000, activity_type="mainland-sales")
        assert entry.income_classification == IncomeClassification.NON_QUALIFYING

        exported = entry.model_copy(update={"is_export": True})
        assert exported.income_classification == IncomeClassification.QUALIFYING

        back = exported.model_copy(update={"is_export": False})
        assert back.income_classification == IncomeClassification.NON_QUALIFYING

    def test_classification_is_serialized(self):
        entry = revenue(1000, activity_type="intra-zone-trade")

        assert entry.model_dump()["income_classification"] == IncomeClassification.QUALIFYING


class TestDeMinimis:
    """Non-qualifying income must stay within 5% and AED 5,000,000."""

    def test_exactly_five_percent_is_within_limit(self):
        assert exceeds_de_minimis(Decimal("250000"), Decimal("5000000")) is False

    def test_just_above_five_percent(self):
        assert exceeds_de_minimis(Decimal("250001"), Decimal("5000000")) is True

    def test_amount_cap_breached_below_percentage(self):
        # 0.5% of revenue, but above AED 5M
        assert exceeds_de_minimis(Decimal("5000001"), Decimal("1000000000")) is True

    def test_exactly_amount_cap_is_within_limit(self):
        assert exceeds_de_minimis(Decimal("5000000"), Decimal("1000000000")) is False

    def test_no_income(self):
        assert exceeds_de_minimis(Decimal("0"), Decimal("0")) is False


class TestSplitIncome:
    """Income split report."""

    def test_split_within_limits(self):
        split = split_income([
            revenue(950000, activity_type="export-services"),
            revenue(50000, activity_type="mainland-sales"),
        ])

        assert split.qualifying_income == Decimal("950000")
        assert split.non_qualifying_income == Decimal("50000")
        assert split.total_income == Decimal("1000000")
        assert split.non_qualifying_percentage == Decimal("5.00")
        assert split.exceeds_de_minimis is False
        assert split.warning is None

    def test_split_breaching_percentage(self):
        split = split_income([
            revenue(900000, is_export=True),
            revenue(100000, activity_type="domestic-services"),
        ])

        assert split.non_qualifying_percentage == Decimal("10.00")
        assert split.exceeds_percentage is True
        assert split.exceeds_amount is False
        assert split.exceeds_de_minimis is True
        assert "5%" in split.warning

    def test_split_breaching_amount(self):
        split = split_income([
            revenue(994999999, is_export=True),
            revenue(5000001, activity_type="mainland-sales"),
        ])

        assert split.exceeds_percentage is False
        assert split.exceeds_amount is True
        assert "5,000,000" in split.warning

    def test_empty_revenue(self):
        split = split_income([])

        assert split.total_income == Decimal("0")
        assert split.non_qualifying_percentage == Decimal("0.00")
        assert split.exceeds_de_minimis is False
