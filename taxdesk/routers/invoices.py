"""
UAE TaxDesk - Invoices Router

API endpoints for building invoices from revenue and generating the
PDF / FTA JSON / XML compliance documents.
"""

import base64
import json
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from taxdesk.dependencies import get_document_service, get_validation_service, require_permission
from taxdesk.schemas.invoice import ComplianceDocuments, Invoice, Party
from taxdesk.schemas.tax import RevenueEntry
from taxdesk.services.compliance_document_service import ComplianceDocumentService
from taxdesk.services.invoice_service import build_invoice_from_revenue, mark_revenue_invoiced
from taxdesk.services.validation_service import ValidationService
from taxdesk.utils.permissions import Permission


router = APIRouter(prefix="/invoices", tags=["Invoices"])

view_invoices = require_permission(Permission.VIEW_INVOICES)
create_invoices = require_permission(Permission.CREATE_INVOICES)


# ===========================================
# REQUEST/RESPONSE SCHEMAS
# ===========================================

class InvoiceFromRevenueRequest(BaseModel):
    """Schema for creating an invoice from a confirmed revenue entry."""
    revenue: Dict[str, Any]
    profile: Dict[str, Any]
    buyer: Optional[Party] = None
    vat_enabled: bool = True
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    tenant_id: str = "default"


class InvoiceFromRevenueResponse(BaseModel):
    invoice: Invoice
    revenue_entry: RevenueEntry


class DocumentRequest(BaseModel):
    invoice: Invoice
    locale: str = Field("en", pattern="^(en|ar)$")


class DocumentBundleResponse(BaseModel):
    """All three artifacts; the PDF is base64 encoded."""
    invoice_number: str
    document_hash: str
    fta_json: Dict[str, Any]
    xml: str
    pdf_base64: str
    pdf_filename: str
    xml_filename: str
    json_filename: str


# ===========================================
# HELPER FUNCTIONS
# ===========================================

async def generate_documents(
    service: ComplianceDocumentService,
    request: DocumentRequest,
) -> ComplianceDocuments:
    return await run_in_threadpool(service.generate, request.invoice, request.locale)


def attachment(content, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ===========================================
# ENDPOINTS
# ===========================================

@router.post("/from-revenue", response_model=InvoiceFromRevenueResponse)
async def create_invoice_from_revenue(
    request: InvoiceFromRevenueRequest,
    role=Depends(create_invoices),
    validator: ValidationService = Depends(get_validation_service),
):
    """
    Build the canonical invoice for a revenue entry.

    The returned revenue entry is flagged as invoiced; an entry that is
    already invoiced is rejected.
    """
    entry = validator.parse_revenue(request.revenue)
    profile = validator.parse_profile(request.profile)

    invoice = build_invoice_from_revenue(
        entry,
        profile,
        buyer=request.buyer,
        vat_enabled=request.vat_enabled,
        issue_date=request.issue_date,
        due_date=request.due_date,
        tenant_id=request.tenant_id,
    )
    return InvoiceFromRevenueResponse(invoice=invoice, revenue_entry=mark_revenue_invoiced(entry, invoice))


@router.post("/documents", response_model=DocumentBundleResponse)
async def create_documents(
    request: DocumentRequest,
    role=Depends(view_invoices),
    service: ComplianceDocumentService = Depends(get_document_service),
):
    """Generate PDF, FTA JSON and XML together."""
    documents = await generate_documents(service, request)
    return DocumentBundleResponse(
        invoice_number=documents.invoice_number,
        document_hash=documents.document_hash,
        fta_json=json.loads(documents.fta_json),
        xml=documents.xml_string,
        pdf_base64=base64.b64encode(documents.pdf_bytes).decode("ascii"),
        pdf_filename=documents.pdf_filename,
        xml_filename=documents.xml_filename,
        json_filename=documents.json_filename,
    )


@router.post("/pdf")
async def download_pdf(
    request: DocumentRequest,
    role=Depends(view_invoices),
    service: ComplianceDocumentService = Depends(get_document_service),
):
    documents = await generate_documents(service, request)
    return attachment(documents.pdf_bytes, "application/pdf", documents.pdf_filename)


@router.post("/xml")
async def download_xml(
    request: DocumentRequest,
    role=Depends(view_invoices),
    service: ComplianceDocumentService = Depends(get_document_service),
):
    documents = await generate_documents(service, request)
    return attachment(documents.xml_string.encode("utf-8"), "application/xml", documents.xml_filename)


@router.post("/json")
async def download_json(
    request: DocumentRequest,
    role=Depends(view_invoices),
    service: ComplianceDocumentService = Depends(get_document_service),
):
    documents = await generate_documents(service, request)
    return attachment(documents.fta_json.encode("utf-8"), "application/json", documents.json_filename)
