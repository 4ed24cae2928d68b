"""
UAE TaxDesk - Record Validation Service

Boundary validation for records coming from the external data store.
The calculators assume clean, non-negative input; everything malformed is
rejected here with a typed validation error before any computation runs.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from pydantic import ValidationError

from taxdesk.config import settings
from taxdesk.schemas.tax import CompanyProfile, ExpenseEntry, RevenueEntry, new_id
from taxdesk.utils.error_handling import (
    InvalidAmountException,
    InvoiceLockedException,
    MissingCategoryException,
    MissingReceiptException,
    ValidationException,
    validate_trn,
)

logger = logging.getLogger(__name__)


def _check_amount(value: Any, field: str = "amount") -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidAmountException(value, field=field)
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidAmountException(value, field=field)
    if not amount.is_finite() or amount < 0:
        raise InvalidAmountException(value, field=field)
    return amount


def _check_category(value: Any) -> str:
    if value is None or str(value).strip() == "":
        raise MissingCategoryException()
    return str(value).strip()


def _wrap(model_error: ValidationError, record: str) -> ValidationException:
    first = model_error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    return ValidationException(
        message=f"Invalid {record}: {first.get('msg', 'validation failed')}",
        field=field,
        details={"errors": [
            {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg")}
            for e in model_error.errors()
        ]},
    )


class ValidationService:
    """
    Validates revenue, expense and profile records.

    In FTA-compliant mode an expense must carry a receipt reference before
    it can be filed.
    """

    def __init__(self, fta_compliant_mode: Optional[bool] = None):
        if fta_compliant_mode is None:
            fta_compliant_mode = settings.fta_compliant_mode
        self.fta_compliant_mode = fta_compliant_mode

    # ===========================================
    # TRANSACTIONS
    # ===========================================

    def parse_revenue(self, data: Dict[str, Any]) -> RevenueEntry:
        """Validate a raw revenue record."""
        payload = dict(data)
        payload["category"] = _check_category(payload.get("category"))
        payload["amount"] = _check_amount(payload.get("amount"))
        try:
            entry = RevenueEntry.model_validate(payload)
        except ValidationError as e:
            raise _wrap(e, "revenue entry")
        if not entry.is_export and not entry.activity_type:
            logger.warning(
                f"Revenue entry {entry.id} has no activity type and is not an export, "
                "classifying as non-qualifying"
            )
        return entry

    def parse_expense(self, data: Dict[str, Any]) -> ExpenseEntry:
        """Validate a raw expense record."""
        payload = dict(data)
        payload["category"] = _check_category(payload.get("category"))
        payload["amount"] = _check_amount(payload.get("amount"))
        try:
            return ExpenseEntry.model_validate(payload)
        except ValidationError as e:
            raise _wrap(e, "expense entry")

    def validate_expense_for_filing(self, expense: ExpenseEntry) -> ExpenseEntry:
        """Reject an expense without a receipt when FTA-compliant mode is on."""
        if self.fta_compliant_mode and not expense.receipt_file_id:
            raise MissingReceiptException(expense.id)
        return expense

    # ===========================================
    # COMPANY PROFILE
    # ===========================================

    def parse_profile(self, data: Dict[str, Any]) -> CompanyProfile:
        """Validate a raw company profile. A present TRN must be 15 digits."""
        payload = dict(data)
        trn = payload.get("trn_number")
        if trn is not None and str(trn).strip() != "":
            payload["trn_number"] = validate_trn(str(trn))
        try:
            return CompanyProfile.model_validate(payload)
        except ValidationError as e:
            raise _wrap(e, "company profile")

    # ===========================================
    # REVISIONS
    # ===========================================

    def revise_revenue(
        self,
        entry: RevenueEntry,
        changes: Dict[str, Any],
        duplicate_if_invoiced: bool = True,
    ) -> RevenueEntry:
        """
        Apply changes to a revenue entry.

        An entry with an issued invoice is never changed in place: either a
        new un-invoiced duplicate carrying the changes is returned, or
        InvoiceLockedException is raised when duplicate_if_invoiced is False.
        """
        payload = entry.model_dump(exclude={"income_classification"})
        payload.update(changes)
        payload.pop("income_classification", None)

        if entry.invoice_generated:
            if not duplicate_if_invoiced:
                raise InvoiceLockedException(entry.id, entry.invoice_id)
            payload.update(id=new_id(), invoice_generated=False, invoice_id=None)
            logger.warning(
                f"Revenue entry {entry.id} is invoiced ({entry.invoice_id}); "
                f"changes saved as new entry {payload['id']}"
            )
        else:
            payload["id"] = entry.id

        return self.parse_revenue(payload)
