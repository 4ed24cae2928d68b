"""
UAE TaxDesk - Invoice Schemas

Canonical invoice record shared by the PDF, FTA JSON and XML renderers.
Invariants are checked by the compliance document service before any
rendering, not at construction, so a broken invoice can be reported in full.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from taxdesk.schemas.tax import Address, new_id


class TaxCategoryCode(str, Enum):
    """Tax category codes per PINT AE."""
    STANDARD_RATE = "S"  # 5%
    ZERO_RATED = "Z"     # 0%


class ContactDetails(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None


class Party(BaseModel):
    """Seller or buyer block."""
    name: str
    trn: Optional[str] = None
    address: Address = Field(default_factory=Address)
    contact: ContactDetails = Field(default_factory=ContactDetails)


class InvoiceItem(BaseModel):
    """Invoice line with its own tax breakdown."""
    id: str = Field(default_factory=new_id)
    description: str
    quantity: Decimal
    unit_price: Decimal
    taxable_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    tax_category: TaxCategoryCode
    total_amount: Decimal
    exemption_reason: Optional[str] = None


class Invoice(BaseModel):
    """Canonical invoice record."""
    id: str = Field(default_factory=new_id)
    invoice_number: str
    issue_date: date
    due_date: date
    currency: str = "AED"
    seller: Party
    buyer: Party
    items: List[InvoiceItem]
    subtotal: Decimal
    vat_amount: Decimal
    amount: Decimal
    uuid: str = Field(default_factory=new_id)
    customization_id: str
    profile_id: str
    business_process_type_id: str
    issuer_is_qfzp: bool = False
    revenue_entry_id: Optional[str] = None
    notes: Optional[str] = None

    @property
    def description(self) -> str:
        """Single-line description used by the flat XML export."""
        return "; ".join(item.description for item in self.items)


class ComplianceDocuments(BaseModel):
    """The three synchronized artifacts produced for one invoice."""
    invoice_number: str
    pdf_bytes: bytes
    fta_json: str
    xml_string: str
    document_hash: str

    @property
    def pdf_filename(self) -> str:
        return f"invoice-{self.invoice_number}.pdf"

    @property
    def xml_filename(self) -> str:
        return f"invoice-{self.invoice_number}.xml"

    @property
    def json_filename(self) -> str:
        return f"invoice-{self.invoice_number}.json"
