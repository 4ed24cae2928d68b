"""
UAE TaxDesk - FastAPI Dependencies

Shared dependencies for the HTTP surface:
1. Caller role (X-User-Role header, set by the host application)
2. Permission checks for generated artifacts
3. The process-wide notification center, profile store and scheduler
"""

from typing import Optional

from fastapi import Depends, Header

from taxdesk.schemas.tax import CompanyProfile
from taxdesk.services.compliance_document_service import ComplianceDocumentService
from taxdesk.services.notification_service import NotificationCenter, NotificationScheduler
from taxdesk.services.validation_service import ValidationService
from taxdesk.utils.permissions import Permission, require_permission as check_permission


class ProfileStore:
    """Holds the current company profile pushed by the host application."""

    def __init__(self):
        self._profile: Optional[CompanyProfile] = None

    def get(self) -> Optional[CompanyProfile]:
        return self._profile

    def set(self, profile: Optional[CompanyProfile]) -> bool:
        """Store a profile. Returns True when it differs from the previous one."""
        changed = profile != self._profile
        self._profile = profile
        return changed


notification_center = NotificationCenter()
profile_store = ProfileStore()
notification_scheduler = NotificationScheduler(notification_center, profile_store.get)


def get_notification_center() -> NotificationCenter:
    return notification_center


def get_profile_store() -> ProfileStore:
    return profile_store


def get_notification_scheduler() -> NotificationScheduler:
    return notification_scheduler


def get_validation_service() -> ValidationService:
    return ValidationService()


def get_document_service() -> ComplianceDocumentService:
    return ComplianceDocumentService()


async def get_user_role(x_user_role: Optional[str] = Header(None)) -> Optional[str]:
    """Role of the caller as asserted by the host application."""
    return x_user_role


def require_permission(permission: Permission):
    """
    Require a permission for the caller's role.

    Usage:
        @router.post("/documents")
        async def documents(role: str = Depends(require_permission(Permission.VIEW_INVOICES))):
            ...
    """
    async def permission_checker(role: Optional[str] = Depends(get_user_role)) -> Optional[str]:
        check_permission(role, permission)
        return role

    return permission_checker
