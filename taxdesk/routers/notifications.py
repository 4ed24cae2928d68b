"""
UAE TaxDesk - Notifications Router

API endpoints for deadline and compliance notifications.

Features:
- List notifications (priority order) with unread count
- Refresh from the current company profile
- Mark as read (single/all)
- Dismiss notifications
- Filing calendar
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from taxdesk.dependencies import (
    ProfileStore,
    get_notification_center,
    get_notification_scheduler,
    get_profile_store,
    get_validation_service,
    require_permission,
)
from taxdesk.schemas.notification import FilingDeadline, Notification, NotificationPriority
from taxdesk.services.notification_service import (
    NotificationCenter,
    NotificationScheduler,
    build_filing_calendar,
)
from taxdesk.services.validation_service import ValidationService
from taxdesk.utils.permissions import Permission


router = APIRouter(prefix="/notifications", tags=["Notifications"])

manage_notifications = require_permission(Permission.MANAGE_NOTIFICATIONS)


# ===========================================
# REQUEST/RESPONSE SCHEMAS
# ===========================================

class NotificationListResponse(BaseModel):
    """Schema for notification list response."""
    notifications: List[Notification]
    total: int
    unread_count: int
    has_urgent: bool


class RefreshRequest(BaseModel):
    """Current company profile; omitted means no profile is set up yet."""
    profile: Optional[Dict[str, Any]] = None
    today: Optional[date] = None


class RefreshResponse(BaseModel):
    added: List[Notification]
    unread_count: int


class CalendarRequest(BaseModel):
    profile: Optional[Dict[str, Any]] = None
    year: int
    today: Optional[date] = None
    filed_periods: List[str] = Field(default_factory=list)


class MessageResponse(BaseModel):
    """Generic message response."""
    message: str
    success: bool = True


# ===========================================
# HELPER FUNCTIONS
# ===========================================

def list_response(center: NotificationCenter) -> NotificationListResponse:
    notifications = center.sorted_notifications()
    return NotificationListResponse(
        notifications=notifications,
        total=len(notifications),
        unread_count=center.unread_count,
        has_urgent=any(n.priority == NotificationPriority.URGENT and not n.is_read for n in notifications),
    )


# ===========================================
# ENDPOINTS
# ===========================================

@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    role=Depends(manage_notifications),
    center: NotificationCenter = Depends(get_notification_center),
):
    """Active notifications, most urgent first."""
    return list_response(center)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_notifications(
    request: RefreshRequest,
    role=Depends(manage_notifications),
    center: NotificationCenter = Depends(get_notification_center),
    store: ProfileStore = Depends(get_profile_store),
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
    validator: ValidationService = Depends(get_validation_service),
):
    """
    Push the current profile and regenerate notifications.

    Ids already active are not duplicated.
    """
    profile = validator.parse_profile(request.profile) if request.profile is not None else None
    if store.set(profile) and scheduler.is_running:
        scheduler.trigger()

    added = await center.refresh(profile, request.today)
    return RefreshResponse(added=added, unread_count=center.unread_count)


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_notifications_read(
    role=Depends(manage_notifications),
    center: NotificationCenter = Depends(get_notification_center),
):
    count = await center.mark_all_as_read()
    return MessageResponse(message=f"Marked {count} notification(s) as read")


@router.post("/calendar", response_model=List[FilingDeadline])
async def filing_calendar(
    request: CalendarRequest,
    role=Depends(manage_notifications),
    validator: ValidationService = Depends(get_validation_service),
):
    """VAT and CIT filing deadlines for a year."""
    profile = validator.parse_profile(request.profile) if request.profile is not None else None
    return build_filing_calendar(
        profile,
        request.year,
        request.today or date.today(),
        request.filed_periods,
    )


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str,
    role=Depends(manage_notifications),
    center: NotificationCenter = Depends(get_notification_center),
):
    return await center.mark_as_read(notification_id)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def dismiss_notification(
    notification_id: str,
    role=Depends(manage_notifications),
    center: NotificationCenter = Depends(get_notification_center),
):
    await center.dismiss(notification_id)
    return MessageResponse(message="Notification dismissed")
