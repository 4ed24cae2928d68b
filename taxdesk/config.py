"""
UAE TaxDesk - Configuration Settings

Pydantic Settings read from the environment (or a local .env file).
Filing deadlines, e-invoicing identifiers and renderer options live here.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings; every field can be overridden by an env var of the same name."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===========================================
    # APPLICATION
    # ===========================================
    app_name: str = "UAE TaxDesk"
    app_env: str = "development"
    debug: bool = True
    api_version: str = "v1"

    # ===========================================
    # FILING DEADLINES / NOTIFICATIONS
    # ===========================================
    notification_refresh_seconds: int = 60
    vat_due_day: int = 28  # of the month after the tax period
    vat_notice_days: int = 7
    cit_notice_days: int = 30

    # ===========================================
    # FTA E-INVOICING (PINT AE)
    # ===========================================
    default_currency: str = "AED"
    invoice_due_days: int = 30
    fta_compliant_mode: bool = True  # expenses need a receipt reference
    customization_id: str = "urn:peppol:pint:billing-1@ae-1"
    profile_id: str = "urn:peppol:bis:billing"
    business_process_type_id: str = "urn:fdc:peppol.eu:2017:poacc:billing:01:1.0"

    # ===========================================
    # DOCUMENT RENDERING
    # ===========================================
    # TTF with Arabic glyphs; without it locale="ar" PDFs fall back to Helvetica
    pdf_arabic_font_path: Optional[str] = None
    document_render_workers: int = 3

    # ===========================================
    # CORS
    # ===========================================
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()


settings = get_settings()
