"""
UAE TaxDesk - Services Package

Tax classification, notification and compliance document services.

Modules:
- tax_calculators: VAT rule table, income classifier, CIT calculator
- validation_service: Boundary validation of raw records
- notification_service: Deadline notifications, scheduler, filing calendar
- invoice_service: Canonical invoice construction and numbering
- invoice_pdf_service: PDF rendering (ReportLab)
- einvoice_export_service: FTA JSON and XML rendering
- compliance_document_service: Validated, all-or-nothing document generation
"""
