"""
UAE TaxDesk - Invoice Service

Builds the canonical invoice record from confirmed revenue.

Line VAT and invoice totals are computed here and nowhere else; the PDF,
FTA JSON and XML renderers only format the values stored on the Invoice.
"""

import logging
import re
import threading
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from taxdesk.config import settings
from taxdesk.schemas.invoice import ContactDetails, Invoice, InvoiceItem, Party, TaxCategoryCode
from taxdesk.schemas.tax import CompanyProfile, RevenueEntry
from taxdesk.services.tax_calculators.vat_service import UAE_VAT_RATE, ZERO_RATED_EXPORT_REASON, VATCalculator
from taxdesk.utils.error_handling import InvoiceLockedException

logger = logging.getLogger(__name__)


CENTS = Decimal("0.01")

INVOICE_NUMBER_PATTERN = re.compile(r"^INV-(\d{8})-(\d{4})$")


def to_money(value: Decimal) -> Decimal:
    """Round to fils (2 decimal places, half up)."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Format an AED amount the same way in every output: '1050.00'."""
    return f"{to_money(value):.2f}"


# ===========================================
# LINE AND TOTAL CALCULATION
# ===========================================

def compute_item(
    description: str,
    quantity: Decimal,
    unit_price: Decimal,
    tax_rate: Decimal,
    exemption_reason: Optional[str] = None,
) -> InvoiceItem:
    """
    Build an invoice line with its tax breakdown.

    taxable_amount = quantity * unit_price (rounded to fils)
    tax_amount     = round(taxable_amount * tax_rate / 100, 2)
    total_amount   = taxable_amount + tax_amount
    """
    quantity = Decimal(str(quantity))
    unit_price = Decimal(str(unit_price))
    tax_rate = Decimal(str(tax_rate))

    taxable_amount = to_money(quantity * unit_price)
    tax_amount = to_money(taxable_amount * tax_rate / 100)
    category = TaxCategoryCode.STANDARD_RATE if tax_rate > 0 else TaxCategoryCode.ZERO_RATED

    return InvoiceItem(
        description=description,
        quantity=quantity,
        unit_price=unit_price,
        taxable_amount=taxable_amount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        tax_category=category,
        total_amount=taxable_amount + tax_amount,
        exemption_reason=exemption_reason if category == TaxCategoryCode.ZERO_RATED else None,
    )


def compute_totals(items: Iterable[InvoiceItem]) -> Tuple[Decimal, Decimal, Decimal]:
    """Return (subtotal, vat_amount, amount) summed from the lines."""
    subtotal = Decimal("0.00")
    vat_amount = Decimal("0.00")
    for item in items:
        subtotal += item.taxable_amount
        vat_amount += item.tax_amount
    return subtotal, vat_amount, subtotal + vat_amount


# ===========================================
# INVOICE NUMBER GENERATION
# ===========================================

class InvoiceNumberSequence:
    """
    Issues invoice numbers unique per tenant.

    Format: INV-YYYYMMDD-NNNN (e.g., INV-20250115-0001), counted per tenant
    and issue date. Safe to share between threads.
    """

    def __init__(self):
        self._counters: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def seed(self, tenant_id: str, issued_numbers: Iterable[str]) -> None:
        """Continue after numbers already issued (e.g. loaded from storage)."""
        with self._lock:
            for number in issued_numbers:
                match = INVOICE_NUMBER_PATTERN.match(number)
                if not match:
                    continue
                key = (tenant_id, match.group(1))
                self._counters[key] = max(self._counters.get(key, 0), int(match.group(2)))

    def next_number(self, tenant_id: str, issue_date: date) -> str:
        day = issue_date.strftime("%Y%m%d")
        with self._lock:
            count = self._counters.get((tenant_id, day), 0) + 1
            if count > 9999:
                raise ValueError(f"Invoice number range exhausted for {day}")
            self._counters[(tenant_id, day)] = count
        return f"INV-{day}-{count:04d}"


invoice_numbers = InvoiceNumberSequence()


# ===========================================
# INVOICE CONSTRUCTION
# ===========================================

def seller_from_profile(profile: CompanyProfile) -> Party:
    """Seller block from the company profile."""
    kwargs = {}
    if profile.address is not None:
        kwargs["address"] = profile.address
    return Party(
        name=profile.company_name or "",
        trn=profile.trn_number,
        contact=ContactDetails(phone=profile.phone, email=profile.email),
        **kwargs,
    )


def build_invoice(
    seller: Party,
    buyer: Party,
    items: List[InvoiceItem],
    invoice_number: str,
    issue_date: date,
    due_date: Optional[date] = None,
    issuer_is_qfzp: bool = False,
    revenue_entry_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Invoice:
    """Assemble a canonical invoice; totals come from compute_totals."""
    subtotal, vat_amount, amount = compute_totals(items)
    return Invoice(
        invoice_number=invoice_number,
        issue_date=issue_date,
        due_date=due_date or issue_date + timedelta(days=settings.invoice_due_days),
        currency=settings.default_currency,
        seller=seller,
        buyer=buyer,
        items=items,
        subtotal=subtotal,
        vat_amount=vat_amount,
        amount=amount,
        customization_id=settings.customization_id,
        profile_id=settings.profile_id,
        business_process_type_id=settings.business_process_type_id,
        issuer_is_qfzp=issuer_is_qfzp,
        revenue_entry_id=revenue_entry_id,
        notes=notes,
    )


def build_invoice_from_revenue(
    entry: RevenueEntry,
    profile: CompanyProfile,
    buyer: Optional[Party] = None,
    vat_enabled: bool = True,
    issue_date: Optional[date] = None,
    due_date: Optional[date] = None,
    tenant_id: str = "default",
    sequence: Optional[InvoiceNumberSequence] = None,
) -> Invoice:
    """
    Create an invoice for a confirmed revenue entry.

    The entry becomes one standard-rated line when VAT is enabled and its
    category is taxable; otherwise (exempt category, export, VAT disabled)
    a zero-rated line carrying the reason.
    """
    if entry.invoice_generated:
        raise InvoiceLockedException(entry.id, entry.invoice_id)

    issue_date = issue_date or date.today()
    sequence = sequence or invoice_numbers

    treatment = VATCalculator.resolve(entry.category)
    tax_rate = Decimal("0")
    if not treatment.vat_applicable:
        exemption_reason = treatment.exemption_reason
    elif entry.is_export:
        exemption_reason = ZERO_RATED_EXPORT_REASON
    elif vat_enabled and profile.vat_registered:
        tax_rate = UAE_VAT_RATE
        exemption_reason = None
    else:
        exemption_reason = "VAT not charged"

    item = compute_item(
        description=entry.description,
        quantity=Decimal("1"),
        unit_price=entry.amount,
        tax_rate=tax_rate,
        exemption_reason=exemption_reason,
    )

    invoice = build_invoice(
        seller=seller_from_profile(profile),
        buyer=buyer or Party(name=entry.customer or "Customer"),
        items=[item],
        invoice_number=sequence.next_number(tenant_id, issue_date),
        issue_date=issue_date,
        due_date=due_date,
        issuer_is_qfzp=profile.is_qfzp,
        revenue_entry_id=entry.id,
    )
    logger.info(f"Built invoice {invoice.invoice_number} for revenue entry {entry.id} (AED {format_amount(invoice.amount)})")
    return invoice


def mark_revenue_invoiced(entry: RevenueEntry, invoice: Invoice) -> RevenueEntry:
    """Return the entry flagged as invoiced; the original is left untouched."""
    if entry.invoice_generated:
        raise InvoiceLockedException(entry.id, entry.invoice_id)
    return entry.model_copy(update={"invoice_generated": True, "invoice_id": invoice.id})
