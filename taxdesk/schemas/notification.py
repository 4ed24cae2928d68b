"""
UAE TaxDesk - Notification Schemas

Advisory notifications and filing calendar entries. None of these are
tax-authority records.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Kinds of generated notification."""
    DEADLINE = "deadline"
    MISSING_DOCUMENT = "missing_document"
    SETUP_INCOMPLETE = "setup_incomplete"


class NotificationPriority(str, Enum):
    """Notification priority levels."""
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Lower rank sorts first
PRIORITY_RANK = {
    NotificationPriority.URGENT: 0,
    NotificationPriority.HIGH: 1,
    NotificationPriority.MEDIUM: 2,
    NotificationPriority.LOW: 3,
}


class NotificationAction(BaseModel):
    """UI navigation hint attached to a notification."""
    label: str
    path: str


class Notification(BaseModel):
    """A generated, user-facing notification."""
    id: str
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    due_date: Optional[date] = None
    days_remaining: Optional[int] = None
    action: Optional[NotificationAction] = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


class TaxType(str, Enum):
    VAT = "VAT"
    CIT = "CIT"


class DeadlineStatus(str, Enum):
    UPCOMING = "upcoming"
    OVERDUE = "overdue"
    COMPLETED = "completed"


class FilingDeadline(BaseModel):
    """One entry of the filing calendar."""
    id: str
    tax_type: TaxType
    period: str
    title: str
    due_date: date
    days_remaining: int
    status: DeadlineStatus
