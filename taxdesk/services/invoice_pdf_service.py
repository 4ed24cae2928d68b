"""
UAE TaxDesk - Invoice PDF Service

Generates FTA-style tax invoice PDFs from the canonical invoice record.
Uses ReportLab for PDF generation with UAE business formatting.

Features:
- Federal Tax Authority branding block
- Seller/buyer TRN details
- Line items with per-line VAT breakdown
- Totals in AED, always 2 decimal places
- Declaration and signature block
- QFZP disclosure footnote
- English or Arabic (right-to-left) labels
"""

import io
import logging
import threading
from decimal import Decimal
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

import arabic_reshaper
from bidi.algorithm import get_display
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from taxdesk.config import settings
from taxdesk.schemas.invoice import Invoice, Party
from taxdesk.services.invoice_service import format_amount

logger = logging.getLogger(__name__)


ARABIC_FONT_NAME = "TaxDeskArabic"

FTA_GREEN = colors.HexColor("#00732f")
HEADER_BLUE = colors.HexColor("#1a365d")

LABELS: Dict[str, Dict[str, str]] = {
    "en": {
        "authority": "Federal Tax Authority - United Arab Emirates",
        "title": "TAX INVOICE",
        "invoice_number": "Invoice Number",
        "issue_date": "Issue Date",
        "due_date": "Due Date",
        "seller": "Supplier",
        "buyer": "Bill To",
        "trn": "TRN",
        "description": "Description",
        "quantity": "Qty",
        "unit_price": "Unit Price",
        "taxable": "Taxable Amount",
        "vat_rate": "VAT %",
        "vat": "VAT",
        "total": "Total",
        "subtotal": "Subtotal",
        "vat_total": "VAT ({rates})",
        "amount_due": "Total (AED)",
        "declaration": (
            "We declare that this invoice shows the actual price of the goods or "
            "services described and that all particulars are true and correct."
        ),
        "signature": "Authorised Signatory",
        "qfzp": (
            "Issued by a Qualifying Free Zone Person. Qualifying income is subject "
            "to Corporate Tax at 0% under Federal Decree-Law No. 47 of 2022."
        ),
        "notes": "Notes",
    },
    "ar": {
        "authority": "الهيئة الاتحادية للضرائب - الإمارات العربية المتحدة",
        "title": "فاتورة ضريبية",
        "invoice_number": "رقم الفاتورة",
        "issue_date": "تاريخ الإصدار",
        "due_date": "تاريخ الاستحقاق",
        "seller": "المورد",
        "buyer": "فاتورة إلى",
        "trn": "رقم التسجيل الضريبي",
        "description": "الوصف",
        "quantity": "الكمية",
        "unit_price": "سعر الوحدة",
        "taxable": "المبلغ الخاضع للضريبة",
        "vat_rate": "نسبة الضريبة",
        "vat": "ضريبة القيمة المضافة",
        "total": "الإجمالي",
        "subtotal": "المجموع الفرعي",
        "vat_total": "ضريبة القيمة المضافة ({rates})",
        "amount_due": "الإجمالي (درهم)",
        "declaration": (
            "نقر بأن هذه الفاتورة تبين السعر الفعلي للسلع أو الخدمات الموصوفة "
            "وأن جميع البيانات صحيحة ودقيقة."
        ),
        "signature": "المفوض بالتوقيع",
        "qfzp": (
            "صادرة عن شخص مؤهل في منطقة حرة. يخضع الدخل المؤهل لضريبة الشركات "
            "بنسبة 0% وفقاً للمرسوم بقانون اتحادي رقم 47 لسنة 2022."
        ),
        "notes": "ملاحظات",
    },
}

def vat_rate_label(invoice: Invoice) -> str:
    """Distinct line rates for the totals row, e.g. "5%", "0%" or "0% / 5%"."""
    rates = sorted({item.tax_rate for item in invoice.items}) or [Decimal("0")]
    return " / ".join(f"{rate.normalize():f}%" for rate in rates)


_font_lock = threading.Lock()
_arabic_font_registered = False


def _register_arabic_font(path: str) -> None:
    global _arabic_font_registered
    with _font_lock:
        if not _arabic_font_registered:
            pdfmetrics.registerFont(TTFont(ARABIC_FONT_NAME, path))
            # <b> markup maps back onto the same face
            pdfmetrics.registerFontFamily(
                ARABIC_FONT_NAME,
                normal=ARABIC_FONT_NAME,
                bold=ARABIC_FONT_NAME,
                italic=ARABIC_FONT_NAME,
                boldItalic=ARABIC_FONT_NAME,
            )
            _arabic_font_registered = True


class InvoicePDFService:
    """Service for generating PDF tax invoices."""

    def __init__(self, arabic_font_path: Optional[str] = None):
        self.arabic_font_path = arabic_font_path or settings.pdf_arabic_font_path

    def _resolve_locale(self, locale: str) -> str:
        if locale != "ar":
            return "en"
        if not self.arabic_font_path:
            logger.warning("Arabic PDF requested but no Arabic font is configured, using English labels")
            return "en"
        _register_arabic_font(self.arabic_font_path)
        return "ar"

    def generate_invoice_pdf(self, invoice: Invoice, locale: str = "en") -> bytes:
        """
        Generate a PDF invoice.

        Args:
            invoice: Validated canonical invoice
            locale: "en" or "ar"; only changes labels and layout direction

        Returns:
            PDF bytes
        """
        locale = self._resolve_locale(locale)
        rtl = locale == "ar"
        labels = LABELS[locale]

        def label(key: str, **values) -> str:
            text = labels[key].format(**values) if values else labels[key]
            if rtl:
                return get_display(arabic_reshaper.reshape(text))
            return text

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=18*mm,
            leftMargin=18*mm,
            topMargin=18*mm,
            bottomMargin=18*mm,
            title=f"Tax Invoice {invoice.invoice_number}",
        )

        styles = getSampleStyleSheet()
        label_font = ARABIC_FONT_NAME if rtl else "Helvetica"
        bold_font = ARABIC_FONT_NAME if rtl else "Helvetica-Bold"
        align = TA_RIGHT if rtl else TA_LEFT

        normal_style = ParagraphStyle(
            'InvoiceNormal',
            parent=styles['Normal'],
            fontName=label_font,
            fontSize=9,
            leading=12,
            alignment=align,
        )
        value_style = ParagraphStyle(
            'InvoiceValue',
            parent=styles['Normal'],
            fontName="Helvetica",
            fontSize=9,
            leading=12,
            alignment=align,
        )
        title_style = ParagraphStyle(
            'InvoiceTitle',
            parent=styles['Heading1'],
            fontName=bold_font,
            fontSize=20,
            textColor=HEADER_BLUE,
            alignment=TA_CENTER,
            spaceAfter=6,
        )
        small_style = ParagraphStyle(
            'InvoiceSmall',
            parent=normal_style,
            fontSize=8,
            textColor=colors.HexColor('#4a5568'),
        )

        elements = []
        elements.append(self._build_branding(label, bold_font))
        elements.append(Spacer(1, 8))
        elements.append(Paragraph(label("title"), title_style))
        elements.append(HRFlowable(width="100%", thickness=1, color=FTA_GREEN))
        elements.append(Spacer(1, 8))

        elements.append(self._build_info_table(invoice, label, normal_style, value_style, rtl))
        elements.append(Spacer(1, 12))

        elements.append(self._build_items_table(invoice, label, label_font, bold_font, rtl))
        elements.append(Spacer(1, 10))

        elements.append(self._build_totals_table(invoice, label, bold_font, rtl))
        elements.append(Spacer(1, 16))

        if invoice.notes:
            elements.append(Paragraph(f"<b>{label('notes')}</b>", normal_style))
            elements.append(Paragraph(escape(invoice.notes), value_style))
            elements.append(Spacer(1, 10))

        elements.append(Paragraph(label("declaration"), small_style))
        elements.append(Spacer(1, 24))
        elements.append(self._build_signature(label, label_font, rtl))

        if invoice.issuer_is_qfzp:
            elements.append(Spacer(1, 16))
            elements.append(HRFlowable(width="100%", thickness=0.5, color=colors.grey))
            elements.append(Paragraph(f"* {label('qfzp')}", small_style))

        doc.build(elements)

        pdf_bytes = buffer.getvalue()
        buffer.close()

        return pdf_bytes

    def _build_branding(self, label, bold_font):
        """FTA branding bar."""
        table = Table([[label("authority")]], colWidths=[174*mm])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), FTA_GREEN),
            ('TEXTCOLOR', (0, 0), (-1, -1), colors.white),
            ('FONTNAME', (0, 0), (-1, -1), bold_font),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('TOPPADDING', (0, 0), (-1, -1), 8),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
        ]))
        return table

    def _party_block(self, party: Party, heading: str, label, normal_style, value_style) -> List:
        address = party.address
        lines = [escape(party.name)]
        address_line = ", ".join(p for p in (address.street, address.city, address.emirate, address.country) if p)
        if address_line:
            lines.append(escape(address_line))
        if party.contact.email:
            lines.append(escape(party.contact.email))
        if party.contact.phone:
            lines.append(escape(party.contact.phone))
        block = [Paragraph(f"<b>{heading}</b>", normal_style), Paragraph("<br/>".join(lines), value_style)]
        if party.trn:
            block.append(Paragraph(label("trn"), normal_style))
            block.append(Paragraph(escape(party.trn), value_style))
        return block

    def _build_info_table(self, invoice: Invoice, label, normal_style, value_style, rtl: bool):
        """Invoice details plus supplier and customer blocks."""
        details = [
            Paragraph(f"<b>{label('invoice_number')}</b>", normal_style),
            Paragraph(escape(invoice.invoice_number), value_style),
            Paragraph(f"<b>{label('issue_date')}</b>", normal_style),
            Paragraph(invoice.issue_date.isoformat(), value_style),
            Paragraph(f"<b>{label('due_date')}</b>", normal_style),
            Paragraph(invoice.due_date.isoformat(), value_style),
        ]
        seller = self._party_block(invoice.seller, label("seller"), label, normal_style, value_style)
        buyer = self._party_block(invoice.buyer, label("buyer"), label, normal_style, value_style)

        row = [details, seller, buyer]
        if rtl:
            row.reverse()

        table = Table([row], colWidths=[58*mm, 58*mm, 58*mm])
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOX', (0, 0), (-1, -1), 0.5, colors.grey),
            ('INNERGRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('TOPPADDING', (0, 0), (-1, -1), 6),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        return table

    def _build_items_table(self, invoice: Invoice, label, label_font, bold_font, rtl: bool):
        """Line items with per-line tax breakdown."""
        header = [label(k) for k in ("description", "quantity", "unit_price", "taxable", "vat_rate", "vat", "total")]
        col_widths = [52*mm, 14*mm, 22*mm, 24*mm, 16*mm, 20*mm, 26*mm]

        cell_style = ParagraphStyle('ItemCell', fontName="Helvetica", fontSize=8, leading=10)
        data = [header]
        for item in invoice.items:
            data.append([
                Paragraph(escape(item.description), cell_style),
                f"{item.quantity.normalize():f}",
                format_amount(item.unit_price),
                format_amount(item.taxable_amount),
                f"{item.tax_rate.normalize():f}% ({item.tax_category.value})",
                format_amount(item.tax_amount),
                format_amount(item.total_amount),
            ])

        if rtl:
            data = [list(reversed(row)) for row in data]
            col_widths = list(reversed(col_widths))

        table = Table(data, colWidths=col_widths, repeatRows=1)
        table.setStyle(TableStyle([
            # Header styling
            ('BACKGROUND', (0, 0), (-1, 0), HEADER_BLUE),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), bold_font),
            ('FONTSIZE', (0, 0), (-1, 0), 8),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('TOPPADDING', (0, 0), (-1, 0), 8),

            # Row styling
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 8),
            ('ALIGN', (0, 1), (-1, -1), 'RIGHT'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),

            # Grid
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),

            # Alternating row colors
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f8f9fa')]),
        ]))
        return table

    def _build_totals_table(self, invoice: Invoice, label, bold_font, rtl: bool):
        """Subtotal, VAT and total, taken as-is from the invoice."""
        rows = [
            [label("subtotal"), f"{invoice.currency} {format_amount(invoice.subtotal)}"],
            [label("vat_total", rates=vat_rate_label(invoice)), f"{invoice.currency} {format_amount(invoice.vat_amount)}"],
            [label("amount_due"), f"{invoice.currency} {format_amount(invoice.amount)}"],
        ]
        if rtl:
            rows = [list(reversed(row)) for row in rows]
            data = [row + ["", ""] for row in rows]
            col_widths = [40*mm, 44*mm, 50*mm, 40*mm]
            label_col, value_col = 1, 0
        else:
            data = [["", ""] + row for row in rows]
            col_widths = [40*mm, 50*mm, 44*mm, 40*mm]
            label_col, value_col = 2, 3

        table = Table(data, colWidths=col_widths)
        table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
            ('FONTNAME', (label_col, 0), (label_col, -1), bold_font),
            ('FONTNAME', (value_col, 0), (value_col, -1), 'Helvetica'),
            ('FONTNAME', (value_col, -1), (value_col, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
            ('LINEABOVE', (min(label_col, value_col), -1), (max(label_col, value_col), -1), 1, colors.black),
        ]))
        return table

    def _build_signature(self, label, label_font, rtl: bool):
        """Signature line."""
        row = ["", "_" * 30]
        caption = ["", label("signature")]
        if rtl:
            row.reverse()
            caption.reverse()
        table = Table([row, caption], colWidths=[104*mm, 70*mm])
        table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 1), (-1, 1), label_font),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
        ]))
        return table
