"""
UAE TaxDesk - Test Configuration

Pytest fixtures and configuration.
"""

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from taxdesk.dependencies import get_notification_center, get_profile_store, ProfileStore
from taxdesk.schemas.invoice import Party
from taxdesk.schemas.tax import Address, CompanyProfile, ExpenseEntry, RevenueEntry
from taxdesk.services.invoice_service import InvoiceNumberSequence, build_invoice_from_revenue
from taxdesk.services.notification_service import NotificationCenter
from main import app


SELLER_TRN = "100123456700003"
BUYER_TRN = "100987654300003"


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest.fixture
def company_profile() -> CompanyProfile:
    """A fully set-up mainland company."""
    return CompanyProfile(
        company_name="Falcon Trading LLC",
        trn_number=SELLER_TRN,
        financial_year_end=date(2024, 12, 31),
        cit_submission_date=date(2025, 9, 30),
        vat_registered=True,
        agent_certificate_uploaded=True,
        bank_slip_uploaded=True,
        address=Address(street="Sheikh Zayed Road", city="Dubai", emirate="Dubai"),
        phone="+97140000000",
        email="accounts@falcon.example",
    )


@pytest.fixture
def qfzp_profile(company_profile: CompanyProfile) -> CompanyProfile:
    """Same company as a Qualifying Free Zone Person."""
    return company_profile.model_copy(update={"is_qfzp": True})


@pytest.fixture
def consulting_revenue() -> RevenueEntry:
    return RevenueEntry(
        date=date(2025, 1, 15),
        description="Consulting services",
        customer="Oasis Retail LLC",
        category="Consulting Fees",
        amount=Decimal("1000.00"),
    )


@pytest.fixture
def rent_expense() -> ExpenseEntry:
    return ExpenseEntry(
        date=date(2025, 1, 20),
        description="Office rent January",
        vendor="Emaar Properties",
        category="Rent",
        amount=Decimal("400.00"),
        receipt_file_id="receipt-001",
    )


@pytest.fixture
def buyer() -> Party:
    return Party(
        name="Oasis Retail LLC",
        trn=BUYER_TRN,
        address=Address(street="Corniche Road", city="Abu Dhabi", emirate="Abu Dhabi"),
    )


@pytest.fixture
def invoice_sequence() -> InvoiceNumberSequence:
    return InvoiceNumberSequence()


@pytest.fixture
def invoice(consulting_revenue, company_profile, buyer, invoice_sequence):
    """AED 1,000 consulting invoice at 5% VAT."""
    return build_invoice_from_revenue(
        consulting_revenue,
        company_profile,
        buyer=buyer,
        issue_date=date(2025, 1, 15),
        sequence=invoice_sequence,
    )


# ===========================================
# API CLIENT
# ===========================================

@pytest.fixture
def notification_center() -> NotificationCenter:
    return NotificationCenter()


@pytest_asyncio.fixture(scope="function")
async def client(notification_center: NotificationCenter) -> AsyncGenerator[AsyncClient, None]:
    """Test client with a fresh notification center and profile store."""
    store = ProfileStore()
    app.dependency_overrides[get_notification_center] = lambda: notification_center
    app.dependency_overrides[get_profile_store] = lambda: store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


