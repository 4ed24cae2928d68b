"""
UAE TaxDesk - Return Validation Tests

Pre-submission checks on VAT 201 and Corporate Income Tax figures.
"""

import pytest
from datetime import date
from decimal import Decimal

from taxdesk.schemas.tax import ExpenseEntry, RevenueEntry
from taxdesk.services.return_validation_service import validate_cit_return, validate_vat_return
from taxdesk.services.tax_calculators import CITCalculator, VATReturnService


TODAY = date(2025, 6, 15)
TRN = "100123456700003"


@pytest.fixture
def vat_return():
    revenue = [
        RevenueEntry(date=date(2025, 1, 10), description="Sale", category="Product Sales", amount=Decimal("10000")),
        RevenueEntry(
            date=date(2025, 1, 20),
            description="Export",
            category="Service Income",
            amount=Decimal("2000"),
            is_export=True,
        ),
    ]
    expenses = [
        ExpenseEntry(date=date(2025, 1, 5), description="Rent", vendor="Landlord", category="Rent", amount=Decimal("2000")),
    ]
    return VATReturnService().prepare_vat_return(revenue, expenses, date(2025, 1, 1), date(2025, 1, 31))


def cit_revenue(amount, **fields) -> RevenueEntry:
    return RevenueEntry(
        date=date(2025, 3, 1),
        description="Sales",
        category="Product Sales",
        amount=Decimal(str(amount)),
        **fields,
    )


def cit_expense(amount) -> ExpenseEntry:
    return ExpenseEntry(
        date=date(2025, 3, 2),
        description="Costs",
        vendor="Supplier",
        category="Cost of Goods Sold",
        amount=Decimal(str(amount)),
    )


class TestVATReturnValidation:
    """VAT 201 figures."""

    def test_prepared_return_is_valid(self, vat_return):
        result = validate_vat_return(vat_return, TRN, TODAY)

        assert result.is_valid is True
        assert result.errors == []
        assert result.warnings == []
        assert result.score == 100

    def test_missing_trn(self, vat_return):
        result = validate_vat_return(vat_return, None, TODAY)

        assert result.is_valid is False
        assert result.errors == ["TRN is required to file a return"]
        assert result.score == 80

    def test_bad_trn(self, vat_return):
        result = validate_vat_return(vat_return, "12345", TODAY)

        assert any("15 digits" in e for e in result.errors)

    def test_supply_boxes_must_add_up(self, vat_return):
        edited = vat_return.model_copy(update={"total_supplies": Decimal("11000")})

        result = validate_vat_return(edited, TRN, TODAY)

        assert result.is_valid is False
        assert any(e.startswith("total_supplies") for e in result.errors)

    def test_net_must_follow_boxes(self, vat_return):
        edited = vat_return.model_copy(update={"net_vat_due": Decimal("900")})

        result = validate_vat_return(edited, TRN, TODAY)

        assert any(e.startswith("net_vat_due") for e in result.errors)
        assert result.warnings == []

    def test_output_vat_not_five_percent_is_warning(self, vat_return):
        edited = vat_return.model_copy(update={
            "output_vat": Decimal("450"),
            "net_vat_due": Decimal("350"),
        })

        result = validate_vat_return(edited, TRN, TODAY)

        assert result.is_valid is True
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("output_vat")
        assert result.score == 95

    def test_negative_figures(self, vat_return):
        edited = vat_return.model_copy(update={"exempt_supplies": Decimal("-1")})

        result = validate_vat_return(edited, TRN, TODAY)

        assert "exempt_supplies cannot be negative" in result.errors

    def test_period_not_ended(self, vat_return):
        result = validate_vat_return(vat_return, TRN, date(2025, 1, 20))

        assert any("after 2025-01-20" in e for e in result.errors)

    def test_period_before_vat(self, vat_return):
        edited = vat_return.model_copy(update={
            "period_start": date(2017, 12, 1),
            "period_end": date(2017, 12, 31),
        })

        result = validate_vat_return(edited, TRN, TODAY)

        assert any("2018" in e for e in result.errors)

    def test_nil_return_warning(self):
        nil = VATReturnService().prepare_vat_return([], [], date(2025, 2, 1), date(2025, 2, 28))

        result = validate_vat_return(nil, TRN, TODAY)

        assert result.is_valid is True
        assert any(w.startswith("Nil return") for w in result.warnings)

    def test_score_floor(self, vat_return):
        edited = vat_return.model_copy(update={
            "standard_rated_supplies": Decimal("-1"),
            "zero_rated_supplies": Decimal("-1"),
            "exempt_supplies": Decimal("-1"),
            "output_vat": Decimal("-1"),
            "is_refund_due": True,
        })

        result = validate_vat_return(edited, None, TODAY)

        assert result.score == 0


class TestCITReturnValidation:
    """Corporate Income Tax figures."""

    def test_computed_result_is_valid(self, company_profile):
        cit = CITCalculator.compute_cit(company_profile, [cit_revenue(1000000)], [cit_expense(500000)])

        result = validate_cit_return(cit, company_profile, 2025, TODAY)

        assert result.is_valid is True
        assert result.errors == []
        assert result.score == 100

    def test_wrong_liability(self, company_profile):
        cit = CITCalculator.compute_cit(company_profile, [cit_revenue(1000000)], [cit_expense(500000)])
        edited = cit.model_copy(update={"cit_payable": Decimal("54000.00")})

        result = validate_cit_return(edited, company_profile, 2025, TODAY)

        assert result.is_valid is False
        assert any(e.startswith("cit_payable") for e in result.errors)

    def test_tax_year_before_cit(self, company_profile):
        cit = CITCalculator.compute_cit(company_profile, [cit_revenue(100000)], [cit_expense(90000)])

        result = validate_cit_return(cit, company_profile, 2022, TODAY)

        assert any("2023" in e for e in result.errors)

    def test_future_tax_year(self, company_profile):
        cit = CITCalculator.compute_cit(company_profile, [cit_revenue(100000)], [cit_expense(90000)])

        result = validate_cit_return(cit, company_profile, 2026, TODAY)

        assert any("future" in e for e in result.errors)

    def test_loss_and_margin_warnings(self, company_profile):
        loss = CITCalculator.compute_cit(company_profile, [cit_revenue(100000)], [cit_expense(150000)])
        assert any("loss carry forward" in w for w in validate_cit_return(loss, company_profile, 2025, TODAY).warnings)

        margin = CITCalculator.compute_cit(company_profile, [cit_revenue(1000000)], [cit_expense(100000)])
        result = validate_cit_return(margin, company_profile, 2025, TODAY)
        assert result.is_valid is True
        assert any("transfer pricing" in w for w in result.warnings)

    def test_small_business_relief(self, company_profile):
        profile = company_profile.model_copy(update={"small_business_relief_elected": True})
        cit = CITCalculator.compute_cit(profile, [cit_revenue(2000000)], [cit_expense(1500000)])
        assert cit.small_business_relief_applied is True

        assert validate_cit_return(cit, profile, 2025, TODAY).is_valid is True

        edited = cit.model_copy(update={"cit_payable": Decimal("10000.00")})
        assert "cit_payable must be 0 under Small Business Relief" in validate_cit_return(
            edited, profile, 2025, TODAY
        ).errors

    def test_qfzp_within_de_minimis(self, qfzp_profile):
        cit = CITCalculator.compute_cit(
            qfzp_profile,
            [cit_revenue(950000, is_export=True), cit_revenue(30000, activity_type="mainland-sales")],
            [cit_expense(480000)],
        )

        result = validate_cit_return(cit, qfzp_profile, 2025, TODAY)

        assert result.errors == []

    def test_profile_without_trn(self, company_profile):
        profile = company_profile.model_copy(update={"trn_number": None})
        cit = CITCalculator.compute_cit(profile, [cit_revenue(100000)], [cit_expense(90000)])

        result = validate_cit_return(cit, profile, 2025, TODAY)

        assert result.errors == ["TRN is required to file a return"]
