"""
UAE TaxDesk - FTA E-Invoice Export Service

Renders the canonical invoice in structured digital formats:
- JSON (FTA e-invoice payload, PINT AE field names)
- XML (flat <Invoice> document, UTF-8)

Every amount is written through format_amount, so both formats carry
exactly the figures stored on the Invoice.
"""

import hashlib
import json
from decimal import Decimal
from typing import Any, Dict, List
import xml.etree.ElementTree as ET
from xml.dom import minidom

from taxdesk.schemas.invoice import Invoice, InvoiceItem, Party
from taxdesk.services.invoice_service import format_amount


def _plain_number(value: Decimal) -> str:
    """Decimal without exponent or trailing zeros: Decimal('5.00') -> '5'."""
    return f"{Decimal(value).normalize():f}"


class EInvoiceExportService:
    """
    Service for generating FTA e-invoice documents.

    Supports:
    - FTA JSON payload with document hash and QR data
    - Flat XML invoice
    """

    def generate_document_hash(self, invoice: Invoice) -> str:
        """
        SHA-256 over the invoice identity and amount fields.

        Any change to a party TRN, date or amount changes the hash.
        """
        hash_input = "|".join([
            invoice.uuid,
            invoice.invoice_number,
            invoice.issue_date.isoformat(),
            invoice.seller.trn or "",
            invoice.buyer.trn or "B2C",
            format_amount(invoice.subtotal),
            format_amount(invoice.vat_amount),
            format_amount(invoice.amount),
        ])
        return hashlib.sha256(hash_input.encode("utf-8")).hexdigest()

    def generate_qr_code_data(self, invoice: Invoice) -> str:
        """QR payload: sellerTRN|buyerTRN|issueDate|amount."""
        return "|".join([
            invoice.seller.trn or "",
            invoice.buyer.trn or "",
            invoice.issue_date.isoformat(),
            format_amount(invoice.amount),
        ])

    # ===========================================
    # JSON
    # ===========================================

    def to_json(self, invoice: Invoice) -> str:
        """
        Convert invoice to the FTA JSON e-invoice payload.

        Args:
            invoice: The validated canonical invoice

        Returns:
            JSON string
        """
        json_invoice = {
            "uuid": invoice.uuid,
            "invoiceNumber": invoice.invoice_number,
            "issueDate": invoice.issue_date.isoformat(),
            "dueDate": invoice.due_date.isoformat(),
            "currency": invoice.currency,
            "customizationID": invoice.customization_id,
            "profileID": invoice.profile_id,
            "businessProcessTypeID": invoice.business_process_type_id,
            "seller": self._party_to_dict(invoice.seller),
            "buyer": self._party_to_dict(invoice.buyer),
            "items": [self._item_to_dict(item) for item in invoice.items],
            "taxTotals": self._tax_totals(invoice.items),
            "subtotal": format_amount(invoice.subtotal),
            "vatAmount": format_amount(invoice.vat_amount),
            "amount": format_amount(invoice.amount),
            "documentHash": self.generate_document_hash(invoice),
            "qrCode": self.generate_qr_code_data(invoice),
        }
        if invoice.notes:
            json_invoice["notes"] = invoice.notes

        return json.dumps(json_invoice, indent=2, ensure_ascii=False)

    def _party_to_dict(self, party: Party) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": party.name}
        if party.trn:
            data["taxRegistrationNumber"] = party.trn
        data["address"] = {
            "street": party.address.street,
            "city": party.address.city,
            "emirate": party.address.emirate,
            "country": party.address.country,
            "postalCode": party.address.postal_code,
        }
        data["contactDetails"] = {
            "phone": party.contact.phone,
            "email": party.contact.email,
        }
        return data

    def _item_to_dict(self, item: InvoiceItem) -> Dict[str, Any]:
        data = {
            "id": item.id,
            "description": item.description,
            "quantity": _plain_number(item.quantity),
            "unitPrice": format_amount(item.unit_price),
            "taxableAmount": format_amount(item.taxable_amount),
            "taxRate": _plain_number(item.tax_rate),
            "taxAmount": format_amount(item.tax_amount),
            "taxCategory": item.tax_category.value,
            "totalAmount": format_amount(item.total_amount),
        }
        if item.exemption_reason:
            data["exemptionReason"] = item.exemption_reason
        return data

    def _tax_totals(self, items: List[InvoiceItem]) -> List[Dict[str, str]]:
        """Taxable and tax amounts per tax category, in first-seen order."""
        totals: Dict[str, Dict[str, Any]] = {}
        for item in items:
            key = item.tax_category.value
            entry = totals.setdefault(key, {
                "taxCategory": key,
                "taxRate": _plain_number(item.tax_rate),
                "taxableAmount": Decimal("0"),
                "taxAmount": Decimal("0"),
            })
            entry["taxableAmount"] += item.taxable_amount
            entry["taxAmount"] += item.tax_amount
        return [
            {**entry, "taxableAmount": format_amount(entry["taxableAmount"]), "taxAmount": format_amount(entry["taxAmount"])}
            for entry in totals.values()
        ]

    # ===========================================
    # XML
    # ===========================================

    def to_xml(self, invoice: Invoice) -> str:
        """
        Convert invoice to the flat XML format.

        Free text is escaped by ElementTree; characters XML cannot carry make
        the re-parse fail, so a malformed document is never returned.

        Args:
            invoice: The validated canonical invoice

        Returns:
            XML string with a UTF-8 declaration
        """
        root = ET.Element("Invoice")

        self._add_element(root, "InvoiceNumber", invoice.invoice_number)
        self._add_element(root, "IssueDate", invoice.issue_date.isoformat())
        self._add_element(root, "SupplierTRN", invoice.seller.trn or "")
        self._add_element(root, "SupplierName", invoice.seller.name)
        self._add_element(root, "CustomerName", invoice.buyer.name)
        self._add_element(root, "CustomerTRN", invoice.buyer.trn or "")
        self._add_element(root, "Description", invoice.description)
        self._add_element(root, "Subtotal", format_amount(invoice.subtotal))
        self._add_element(root, "VAT", format_amount(invoice.vat_amount))
        self._add_element(root, "Total", format_amount(invoice.amount))

        # Convert to pretty XML string
        xml_str = ET.tostring(root, encoding="unicode")
        dom = minidom.parseString(xml_str)
        return dom.toprettyxml(indent="  ", encoding="UTF-8").decode("utf-8")

    def _add_element(self, parent: ET.Element, tag: str, text: str) -> ET.Element:
        """Add a simple text element."""
        elem = ET.SubElement(parent, tag)
        elem.text = text
        return elem


def get_einvoice_export_service() -> EInvoiceExportService:
    """Get e-invoice export service instance."""
    return EInvoiceExportService()
