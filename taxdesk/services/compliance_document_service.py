"""
UAE TaxDesk - Compliance Document Service

Produces the three synchronized invoice artifacts (PDF, FTA JSON, XML)
from one canonical invoice.

Generation is all-or-nothing: the invoice is validated first, the three
renders run in parallel, and if any render fails no artifact is returned.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from taxdesk.config import settings
from taxdesk.schemas.invoice import ComplianceDocuments, Invoice, TaxCategoryCode
from taxdesk.schemas.tax import TRN_REGEX
from taxdesk.services.einvoice_export_service import EInvoiceExportService
from taxdesk.services.invoice_pdf_service import InvoicePDFService
from taxdesk.services.invoice_service import INVOICE_NUMBER_PATTERN
from taxdesk.utils.error_handling import DocumentGenerationException, InvoiceValidationException

logger = logging.getLogger(__name__)


CENTS = Decimal("0.01")


def validate_invoice(invoice: Invoice) -> List[str]:
    """
    Check the canonical invoice invariants.

    Returns every violation found (empty list when the invoice is valid).
    """
    violations: List[str] = []

    if not INVOICE_NUMBER_PATTERN.match(invoice.invoice_number):
        violations.append(f"invoice_number '{invoice.invoice_number}' does not match INV-YYYYMMDD-NNNN")

    if not invoice.seller.name:
        violations.append("seller name is required")
    if not invoice.seller.trn:
        violations.append("seller TRN is required")
    elif not TRN_REGEX.match(invoice.seller.trn):
        violations.append(f"seller TRN '{invoice.seller.trn}' must be exactly 15 digits")
    if invoice.buyer.trn and not TRN_REGEX.match(invoice.buyer.trn):
        violations.append(f"buyer TRN '{invoice.buyer.trn}' must be exactly 15 digits")

    if not invoice.items:
        violations.append("invoice has no line items")

    subtotal = Decimal("0")
    vat_amount = Decimal("0")
    for index, item in enumerate(invoice.items, 1):
        if item.taxable_amount < 0:
            violations.append(f"item {index}: taxable_amount must not be negative")

        expected_tax = (item.taxable_amount * item.tax_rate / 100).quantize(CENTS, rounding=ROUND_HALF_UP)
        if item.tax_amount != expected_tax:
            violations.append(
                f"item {index}: tax_amount {item.tax_amount} != round(taxable_amount * tax_rate / 100, 2) = {expected_tax}"
            )
        if item.total_amount != item.taxable_amount + item.tax_amount:
            violations.append(
                f"item {index}: total_amount {item.total_amount} != taxable_amount + tax_amount"
            )

        standard = item.tax_category == TaxCategoryCode.STANDARD_RATE
        if standard != (item.tax_rate > 0):
            violations.append(f"item {index}: tax category {item.tax_category.value} does not match rate {item.tax_rate}%")

        subtotal += item.taxable_amount
        vat_amount += item.tax_amount

    if invoice.subtotal != subtotal:
        violations.append(f"subtotal {invoice.subtotal} != sum of item taxable amounts {subtotal}")
    if invoice.vat_amount != vat_amount:
        violations.append(f"vat_amount {invoice.vat_amount} != sum of item tax amounts {vat_amount}")
    if invoice.amount != invoice.subtotal + invoice.vat_amount:
        violations.append(f"amount {invoice.amount} != subtotal + vat_amount ({invoice.subtotal + invoice.vat_amount})")

    return violations


class ComplianceDocumentService:
    """Generates the PDF, FTA JSON and XML documents for an invoice."""

    def __init__(
        self,
        pdf_service: Optional[InvoicePDFService] = None,
        export_service: Optional[EInvoiceExportService] = None,
        max_workers: Optional[int] = None,
    ):
        self.pdf_service = pdf_service or InvoicePDFService()
        self.export_service = export_service or EInvoiceExportService()
        self.max_workers = max_workers or settings.document_render_workers

    def generate(self, invoice: Invoice, locale: str = "en") -> ComplianceDocuments:
        """
        Generate all compliance documents for an invoice.

        Args:
            invoice: Canonical invoice
            locale: PDF label language ("en" or "ar"); never affects amounts

        Returns:
            ComplianceDocuments with PDF bytes, FTA JSON and XML

        Raises:
            InvoiceValidationException: invariants failed, nothing rendered
            DocumentGenerationException: at least one render failed
        """
        violations = validate_invoice(invoice)
        if violations:
            logger.warning(f"Invoice {invoice.invoice_number} rejected: {len(violations)} violation(s)")
            raise InvoiceValidationException(invoice.invoice_number, violations)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="render") as pool:
            futures = {
                "pdf": pool.submit(self.pdf_service.generate_invoice_pdf, invoice, locale),
                "json": pool.submit(self.export_service.to_json, invoice),
                "xml": pool.submit(self.export_service.to_xml, invoice),
            }

        results: Dict[str, object] = {}
        failures: Dict[str, str] = {}
        first_error: Optional[Exception] = None
        for name, future in futures.items():
            error = future.exception()
            if error is not None:
                failures[name] = f"{type(error).__name__}: {error}"
                first_error = first_error or error
                logger.error(f"{name.upper()} render failed for invoice {invoice.invoice_number}: {error}")
            else:
                results[name] = future.result()

        if failures:
            raise DocumentGenerationException(invoice.invoice_number, failures, original_error=first_error)

        logger.info(f"Generated compliance documents for invoice {invoice.invoice_number}")
        return ComplianceDocuments(
            invoice_number=invoice.invoice_number,
            pdf_bytes=results["pdf"],
            fta_json=results["json"],
            xml_string=results["xml"],
            document_hash=self.export_service.generate_document_hash(invoice),
        )


def get_compliance_document_service() -> ComplianceDocumentService:
    """Get compliance document service instance."""
    return ComplianceDocumentService()
