"""
UAE TaxDesk - Record Validation Tests
"""

import logging
import pytest
from datetime import date
from decimal import Decimal

from taxdesk.services.validation_service import ValidationService
from taxdesk.utils.error_handling import (
    ErrorCode,
    InvalidAmountException,
    InvalidTRNException,
    InvoiceLockedException,
    MissingCategoryException,
    MissingReceiptException,
    ValidationException,
)


@pytest.fixture
def validator() -> ValidationService:
    return ValidationService(fta_compliant_mode=True)


def raw_revenue(**overrides):
    data = {
        "date": "2025-01-15",
        "description": "Consulting",
        "category": "Consulting Fees",
        "amount": "1000.00",
    }
    data.update(overrides)
    return data


def raw_expense(**overrides):
    data = {
        "date": "2025-01-20",
        "description": "Office rent",
        "vendor": "Landlord",
        "category": "Rent",
        "amount": 400,
    }
    data.update(overrides)
    return data


class TestTransactionValidation:
    """Revenue and expense records."""

    def test_valid_revenue(self, validator):
        entry = validator.parse_revenue(raw_revenue())

        assert entry.amount == Decimal("1000.00")
        assert entry.date == date(2025, 1, 15)
        assert entry.id

    @pytest.mark.parametrize("amount", [-1, "-0.01", "abc", None, True, "NaN", "Infinity"])
    def test_invalid_amount(self, validator, amount):
        with pytest.raises(InvalidAmountException) as exc_info:
            validator.parse_revenue(raw_revenue(amount=amount))

        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT
        assert exc_info.value.status_code == 422

    @pytest.mark.parametrize("category", [None, "", "   "])
    def test_missing_category(self, validator, category):
        with pytest.raises(MissingCategoryException):
            validator.parse_expense(raw_expense(category=category))

    def test_missing_required_field(self, validator):
        data = raw_expense()
        del data["vendor"]

        with pytest.raises(ValidationException) as exc_info:
            validator.parse_expense(data)

        assert exc_info.value.field == "vendor"

    def test_zero_amount_allowed(self, validator):
        assert validator.parse_expense(raw_expense(amount=0)).amount == Decimal("0")

    def test_unclassified_revenue_warned_once(self, validator, caplog):
        with caplog.at_level(logging.WARNING):
            entry = validator.parse_revenue(raw_revenue())
            entry.model_dump()
            entry.model_dump_json()
            assert entry.income_classification.value == "non-qualifying"

        warnings = [r for r in caplog.records if "no activity type" in r.getMessage()]
        assert len(warnings) == 1
        assert entry.id in warnings[0].getMessage()

    def test_classified_revenue_not_warned(self, validator, caplog):
        with caplog.at_level(logging.WARNING):
            validator.parse_revenue(raw_revenue(activity_type="export-services"))
            validator.parse_revenue(raw_revenue(is_export=True))

        assert not [r for r in caplog.records if "no activity type" in r.getMessage()]


class TestReceiptRequirement:
    """FTA-compliant mode."""

    def test_expense_without_receipt_rejected(self, validator):
        expense = validator.parse_expense(raw_expense())

        with pytest.raises(MissingReceiptException):
            validator.validate_expense_for_filing(expense)

    def test_expense_with_receipt_accepted(self, validator):
        expense = validator.parse_expense(raw_expense(receipt_file_id="receipt-1"))

        assert validator.validate_expense_for_filing(expense) is expense

    def test_receipt_not_required_outside_compliant_mode(self):
        validator = ValidationService(fta_compliant_mode=False)
        expense = validator.parse_expense(raw_expense())

        assert validator.validate_expense_for_filing(expense) is expense


class TestProfileValidation:
    """Company profile and TRN."""

    def test_valid_profile(self, validator):
        profile = validator.parse_profile({
            "company_name": "Falcon Trading LLC",
            "trn_number": "100123456700003",
            "financial_year_end": "2024-12-31",
        })

        assert profile.is_setup_complete is True

    @pytest.mark.parametrize("trn", ["12345", "10012345670000A", "1001234567000031"])
    def test_invalid_trn(self, validator, trn):
        with pytest.raises(InvalidTRNException):
            validator.parse_profile({"trn_number": trn, "financial_year_end": "2024-12-31"})

    def test_blank_trn_means_not_set(self, validator):
        profile = validator.parse_profile({"trn_number": "", "financial_year_end": "2024-12-31"})

        assert profile.trn_number is None
        assert profile.is_setup_complete is False

    def test_missing_financial_year_end(self, validator):
        with pytest.raises(ValidationException) as exc_info:
            validator.parse_profile({"company_name": "Falcon Trading LLC"})

        assert exc_info.value.field == "financial_year_end"


class TestRevenueRevision:
    """Invoiced revenue is never changed in place."""

    def test_revise_uninvoiced_entry(self, validator, consulting_revenue):
        revised = validator.revise_revenue(consulting_revenue, {"amount": "1200"})

        assert revised.id == consulting_revenue.id
        assert revised.amount == Decimal("1200")

    def test_revise_invoiced_entry_creates_duplicate(self, validator, consulting_revenue):
        invoiced = consulting_revenue.model_copy(update={"invoice_generated": True, "invoice_id": "inv-1"})

        revised = validator.revise_revenue(invoiced, {"amount": "1200"})

        assert revised.id != invoiced.id
        assert revised.invoice_generated is False
        assert revised.invoice_id is None
        assert revised.amount == Decimal("1200")
        assert invoiced.amount == Decimal("1000.00")

    def test_revise_invoiced_entry_locked(self, validator, consulting_revenue):
        invoiced = consulting_revenue.model_copy(update={"invoice_generated": True, "invoice_id": "inv-1"})

        with pytest.raises(InvoiceLockedException):
            validator.revise_revenue(invoiced, {"amount": "1200"}, duplicate_if_invoiced=False)

    def test_revision_reclassifies_income(self, validator, consulting_revenue):
        revised = validator.revise_revenue(consulting_revenue, {"is_export": True})

        assert revised.income_classification.value == "qualifying"
