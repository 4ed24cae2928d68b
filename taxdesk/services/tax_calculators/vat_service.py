"""
UAE TaxDesk - VAT Calculator Service

VAT treatment and calculation for UAE VAT compliance.

UAE VAT Rate: 5% (Federal Decree-Law No. 8 of 2017)

Key Features:
- Category -> VAT treatment rule table (standard, exempt, reverse charge)
- Tax-exclusive and tax-inclusive VAT extraction
- Output/input VAT summary with reverse-charge disclosure
- VAT return preparation (VAT 201 figures)
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from taxdesk.schemas.tax import (
    ExpenseEntry,
    ReverseChargeLine,
    RevenueEntry,
    TransactionCategory,
    TransactionType,
    VATReturn,
    VATSummary,
    VATTransaction,
    VATTreatment,
)

logger = logging.getLogger(__name__)


# VAT Rate constant
UAE_VAT_RATE = Decimal("5")

ZERO = Decimal("0")


@dataclass(frozen=True)
class VATRule:
    """VAT rule row for a transaction category."""
    vat_applicable: bool
    reverse_charge: bool = False
    exemption_reason: Optional[str] = None


# Category -> VAT rule. Exempt rows carry the reason shown to the user.
VAT_RULES: Dict[TransactionCategory, VATRule] = {
    # Revenue
    TransactionCategory.PRODUCT_SALES: VATRule(vat_applicable=True),
    TransactionCategory.SERVICE_INCOME: VATRule(vat_applicable=True),
    TransactionCategory.RENTAL_INCOME: VATRule(vat_applicable=True),
    TransactionCategory.CONSULTING_FEES: VATRule(vat_applicable=True),
    TransactionCategory.COMMISSION_INCOME: VATRule(vat_applicable=True),
    TransactionCategory.INTEREST_INCOME: VATRule(
        vat_applicable=False, exemption_reason="Financial services exemption"
    ),
    TransactionCategory.OTHER_REVENUE: VATRule(vat_applicable=True),

    # Expense
    TransactionCategory.COST_OF_GOODS_SOLD: VATRule(vat_applicable=True),
    TransactionCategory.SALARIES_AND_WAGES: VATRule(
        vat_applicable=False, exemption_reason="Employment services exemption"
    ),
    TransactionCategory.RENT: VATRule(vat_applicable=True),
    TransactionCategory.UTILITIES: VATRule(vat_applicable=True),
    TransactionCategory.MARKETING_AND_ADVERTISING: VATRule(vat_applicable=True),
    # Often billed by foreign suppliers
    TransactionCategory.SOFTWARE_SUBSCRIPTIONS: VATRule(vat_applicable=True, reverse_charge=True),
    TransactionCategory.PROFESSIONAL_SERVICES: VATRule(vat_applicable=True, reverse_charge=True),
    TransactionCategory.OFFICE_SUPPLIES: VATRule(vat_applicable=True),
    TransactionCategory.BANK_CHARGES: VATRule(
        vat_applicable=False, exemption_reason="Financial services exemption"
    ),
    TransactionCategory.INSURANCE: VATRule(
        vat_applicable=False, exemption_reason="Insurance services exemption"
    ),
    TransactionCategory.TRAVEL_AND_MEALS: VATRule(vat_applicable=True),
    TransactionCategory.DEPRECIATION: VATRule(
        vat_applicable=False, exemption_reason="Accounting entry - not a supply"
    ),
    TransactionCategory.VAT_PAID: VATRule(
        vat_applicable=False, exemption_reason="VAT payment - not subject to VAT"
    ),
    TransactionCategory.OTHER_EXPENSES: VATRule(vat_applicable=True),
}

# Applied to any category string without a row above
DEFAULT_VAT_RULE = VATRule(vat_applicable=True)

ZERO_RATED_EXPORT_REASON = "Export of goods or services (zero-rated)"


class VATCalculator:
    """
    VAT calculation utilities.

    UAE VAT is 5% (standard rate). Exempt categories carry 0% and an
    exemption reason. Reverse-charge categories are taxed the same way; the
    flag only decides that the buyer self-assesses the VAT.
    """

    @staticmethod
    def get_rule(category: str) -> VATRule:
        """Look up the rule row for a category, falling back to the default."""
        try:
            return VAT_RULES[TransactionCategory(category)]
        except ValueError:
            logger.warning(f"Unknown transaction category '{category}', applying standard 5% VAT")
            return DEFAULT_VAT_RULE

    @staticmethod
    def resolve(category: str) -> VATTreatment:
        """
        Resolve the VAT treatment of a category.

        Never raises: unknown categories get the default treatment
        (VAT applicable, 5%, no reverse charge).
        """
        rule = VATCalculator.get_rule(category)
        return VATTreatment(
            vat_applicable=rule.vat_applicable,
            reverse_charge=rule.reverse_charge,
            vat_rate=int(UAE_VAT_RATE) if rule.vat_applicable else 0,
            exemption_reason=None if rule.vat_applicable else (rule.exemption_reason or "Exempt supply"),
        )

    @staticmethod
    def compute_vat(
        category: str,
        amount: Decimal,
        tax_inclusive: bool = False,
    ) -> Decimal:
        """
        Calculate VAT on an amount.

        Args:
            category: Transaction category
            amount: Net amount, or gross amount when tax_inclusive
            tax_inclusive: If True, amount already includes VAT

        Returns:
            Unrounded VAT amount (0 for exempt categories)
        """
        treatment = VATCalculator.resolve(category)
        if not treatment.vat_applicable or treatment.vat_rate == 0:
            return ZERO

        rate = Decimal(treatment.vat_rate)
        amount = Decimal(amount)
        if tax_inclusive:
            # Extract VAT from inclusive amount
            return amount * rate / (100 + rate)
        return amount * rate / 100

    @staticmethod
    def requires_reverse_charge(category: str) -> bool:
        return VATCalculator.resolve(category).reverse_charge

    @staticmethod
    def summarize(transactions: Iterable[VATTransaction]) -> VATSummary:
        """
        Fold a transaction list into output/input VAT totals.

        Revenue lines add to VAT on supplies, expense lines to VAT on
        purchases; zero-rated revenue lines carry no VAT. Reverse-charge
        expense lines with non-zero VAT are listed separately for audit
        disclosure. A negative net means a refund.
        """
        supplies = ZERO
        purchases = ZERO
        reverse_charge: List[ReverseChargeLine] = []

        for txn in transactions:
            if txn.zero_rated and txn.type == TransactionType.REVENUE:
                continue
            vat_amount = VATCalculator.compute_vat(txn.category, txn.amount, txn.tax_inclusive)

            if txn.type == TransactionType.REVENUE:
                supplies += vat_amount
            else:
                purchases += vat_amount
                if vat_amount > 0 and VATCalculator.requires_reverse_charge(txn.category):
                    reverse_charge.append(
                        ReverseChargeLine(
                            category=txn.category,
                            amount=txn.amount,
                            vat_amount=vat_amount,
                        )
                    )

        return VATSummary(
            total_vat_on_supplies=supplies,
            total_vat_on_purchases=purchases,
            net_vat_due=supplies - purchases,
            reverse_charge_transactions=reverse_charge,
        )

    @staticmethod
    def transactions_from_entries(
        revenue: Iterable[RevenueEntry],
        expenses: Iterable[ExpenseEntry],
    ) -> List[VATTransaction]:
        """Turn stored revenue/expense entries into summary input lines. Exports are zero-rated."""
        lines = [
            VATTransaction(
                category=entry.category,
                amount=entry.amount,
                type=TransactionType.REVENUE,
                zero_rated=entry.is_export,
            )
            for entry in revenue
        ]
        lines.extend(
            VATTransaction(category=entry.category, amount=entry.amount, type=TransactionType.EXPENSE)
            for entry in expenses
        )
        return lines


class VATReturnService:
    """Prepares VAT 201 return figures for one tax period."""

    def __init__(self, calculator: Optional[VATCalculator] = None):
        self.calculator = calculator or VATCalculator()

    def prepare_vat_return(
        self,
        revenue: Iterable[RevenueEntry],
        expenses: Iterable[ExpenseEntry],
        period_start: date,
        period_end: date,
    ) -> VATReturn:
        """
        Prepare VAT return figures for entries dated within the period.

        Export supplies in taxable categories are zero-rated: reported in
        their own box with no output VAT.

        Reverse-charge VAT is self-assessed: it is declared as output tax and
        recovered as input tax in the same return, so it nets to zero.
        """
        period_revenue = [e for e in revenue if period_start <= e.date <= period_end]
        period_expenses = [e for e in expenses if period_start <= e.date <= period_end]

        standard_rated_supplies = ZERO
        zero_rated_supplies = ZERO
        exempt_supplies = ZERO
        output_vat = ZERO
        for entry in period_revenue:
            treatment = self.calculator.resolve(entry.category)
            if treatment.vat_applicable and entry.is_export:
                zero_rated_supplies += entry.amount
            elif treatment.vat_applicable:
                standard_rated_supplies += entry.amount
                output_vat += self.calculator.compute_vat(entry.category, entry.amount)
            else:
                exempt_supplies += entry.amount

        standard_rated_expenses = ZERO
        reverse_charge_vat = ZERO
        recoverable_input_vat = ZERO
        for entry in period_expenses:
            treatment = self.calculator.resolve(entry.category)
            if not treatment.vat_applicable:
                continue
            vat_amount = self.calculator.compute_vat(entry.category, entry.amount)
            standard_rated_expenses += entry.amount
            recoverable_input_vat += vat_amount
            if treatment.reverse_charge:
                reverse_charge_vat += vat_amount

        net_vat_due = output_vat + reverse_charge_vat - recoverable_input_vat

        logger.info(
            f"Prepared VAT return {period_start} - {period_end}: "
            f"{len(period_revenue)} supplies, {len(period_expenses)} purchases, net {net_vat_due:.2f}"
        )

        return VATReturn(
            period_start=period_start,
            period_end=period_end,
            standard_rated_supplies=standard_rated_supplies,
            zero_rated_supplies=zero_rated_supplies,
            exempt_supplies=exempt_supplies,
            total_supplies=standard_rated_supplies + zero_rated_supplies + exempt_supplies,
            output_vat=output_vat,
            standard_rated_expenses=standard_rated_expenses,
            reverse_charge_vat=reverse_charge_vat,
            recoverable_input_vat=recoverable_input_vat,
            net_vat_due=net_vat_due,
            is_refund_due=net_vat_due < 0,
            revenue_count=len(period_revenue),
            expense_count=len(period_expenses),
        )
