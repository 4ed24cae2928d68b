"""
UAE TaxDesk - Notification Service

Deadline and compliance notifications derived from the company profile.

Rules:
- VAT return: due on the 28th of the month after each tax period; notify 7 days
  ahead, urgent in the last 3 days
- CIT return: due 9 months after financial year end; notify 30 days ahead,
  urgent in the last 7 days
- Setup incomplete: company name or TRN missing
- Missing documents: tax agent certificate, bank verification slip

generate_notifications() is a pure function of (profile, today). The
NotificationCenter keeps the active set and the NotificationScheduler re-runs
generation on a fixed interval and whenever the profile changes.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Set

from dateutil.relativedelta import relativedelta

from taxdesk.config import settings
from taxdesk.schemas.notification import (
    DeadlineStatus,
    FilingDeadline,
    Notification,
    NotificationAction,
    NotificationPriority,
    NotificationType,
    PRIORITY_RANK,
    TaxType,
)
from taxdesk.schemas.tax import CompanyProfile
from taxdesk.utils.error_handling import NotificationNotFoundException

logger = logging.getLogger(__name__)


CIT_FILING_MONTHS = 9
VAT_URGENT_DAYS = 3
CIT_URGENT_DAYS = 7


# ===========================================
# DEADLINE RULES
# ===========================================

def vat_due_date(period_year: int, period_month: int) -> date:
    """VAT return due date for a monthly tax period."""
    return date(period_year, period_month, 1) + relativedelta(months=1, day=settings.vat_due_day)


def next_vat_deadline(today: date) -> date:
    """The nearest VAT due date strictly after today."""
    due = date(today.year, today.month, 1) + relativedelta(day=settings.vat_due_day)
    if due <= today:
        due = due + relativedelta(months=1, day=settings.vat_due_day)
    return due


def cit_due_date(profile: CompanyProfile) -> date:
    """CIT return due date: the supplied submission date, or 9 months after year end."""
    if profile.cit_submission_date:
        return profile.cit_submission_date
    return profile.financial_year_end + relativedelta(months=CIT_FILING_MONTHS)


def _period_label(due: date) -> str:
    period = due - relativedelta(months=1)
    return period.strftime("%Y-%m")


def _vat_notification(today: date) -> Optional[Notification]:
    due = next_vat_deadline(today)
    days_remaining = (due - today).days
    if not 0 < days_remaining <= settings.vat_notice_days:
        return None

    period = _period_label(due)
    return Notification(
        id=f"vat-deadline-{period}",
        type=NotificationType.DEADLINE,
        priority=NotificationPriority.URGENT if days_remaining <= VAT_URGENT_DAYS else NotificationPriority.HIGH,
        title="VAT Return Due",
        message=f"Your VAT return for {period} is due in {days_remaining} day(s), on {due.isoformat()}.",
        due_date=due,
        days_remaining=days_remaining,
        action=NotificationAction(label="File Now", path="/vat"),
    )


def _cit_notification(profile: CompanyProfile, today: date) -> Optional[Notification]:
    due = cit_due_date(profile)
    days_remaining = (due - today).days
    if not 0 < days_remaining <= settings.cit_notice_days:
        return None

    return Notification(
        id="cit-deadline",
        type=NotificationType.DEADLINE,
        priority=NotificationPriority.URGENT if days_remaining <= CIT_URGENT_DAYS else NotificationPriority.HIGH,
        title="Corporate Tax Return Due",
        message=f"Your Corporate Tax return is due in {days_remaining} day(s), on {due.isoformat()}.",
        due_date=due,
        days_remaining=days_remaining,
        action=NotificationAction(label="File Now", path="/cit"),
    )


def generate_notifications(profile: Optional[CompanyProfile], today: date) -> List[Notification]:
    """
    Generate the notifications that apply to a profile on a given day.

    Pure: no state is read or written, so the same inputs always give the
    same ids.
    """
    notifications: List[Notification] = []

    vat = _vat_notification(today)
    if vat:
        notifications.append(vat)

    if profile is not None:
        cit = _cit_notification(profile, today)
        if cit:
            notifications.append(cit)

    if profile is None or not profile.is_setup_complete:
        notifications.append(Notification(
            id="setup-incomplete",
            type=NotificationType.SETUP_INCOMPLETE,
            priority=NotificationPriority.MEDIUM,
            title="Complete Your Company Setup",
            message="Company name and TRN are required before filing returns or issuing invoices.",
            action=NotificationAction(label="Complete Setup", path="/setup"),
        ))

    if profile is None or not profile.agent_certificate_uploaded:
        notifications.append(Notification(
            id="missing-agent-cert",
            type=NotificationType.MISSING_DOCUMENT,
            priority=NotificationPriority.MEDIUM,
            title="Tax Agent Certificate Missing",
            message="Upload your tax agent certificate to complete your compliance file.",
            action=NotificationAction(label="Upload Document", path="/setup"),
        ))

    if profile is None or not profile.bank_slip_uploaded:
        notifications.append(Notification(
            id="missing-bank-slip",
            type=NotificationType.MISSING_DOCUMENT,
            priority=NotificationPriority.MEDIUM,
            title="Bank Verification Slip Missing",
            message="Upload a bank verification slip so refunds can be paid to your account.",
            action=NotificationAction(label="Upload Document", path="/setup"),
        ))

    return notifications


def sort_notifications(notifications: Iterable[Notification]) -> List[Notification]:
    """Order by priority rank, then by ascending days remaining (undated last)."""
    return sorted(
        notifications,
        key=lambda n: (
            PRIORITY_RANK[n.priority],
            n.days_remaining is None,
            n.days_remaining if n.days_remaining is not None else 0,
        ),
    )


# ===========================================
# FILING CALENDAR
# ===========================================

def build_filing_calendar(
    profile: Optional[CompanyProfile],
    year: int,
    today: date,
    filed_periods: Iterable[str] = (),
) -> List[FilingDeadline]:
    """
    Build the filing calendar for a year.

    Includes the twelve monthly VAT returns for the year's periods and, when
    a profile is given, the CIT return for the financial year ending in that
    year. filed_periods holds period labels ("2025-03", "FY2025") already filed.
    """
    filed = set(filed_periods)
    deadlines: List[FilingDeadline] = []

    def status_for(period: str, due: date) -> DeadlineStatus:
        if period in filed:
            return DeadlineStatus.COMPLETED
        if due < today:
            return DeadlineStatus.OVERDUE
        return DeadlineStatus.UPCOMING

    for month in range(1, 13):
        period = f"{year:04d}-{month:02d}"
        due = vat_due_date(year, month)
        deadlines.append(FilingDeadline(
            id=f"vat-{period}",
            tax_type=TaxType.VAT,
            period=period,
            title=f"VAT Return {period}",
            due_date=due,
            days_remaining=(due - today).days,
            status=status_for(period, due),
        ))

    if profile is not None:
        fye = profile.financial_year_end
        if fye.year == year and profile.cit_submission_date:
            due = profile.cit_submission_date
        else:
            due = fye + relativedelta(years=year - fye.year, months=CIT_FILING_MONTHS)
        period = f"FY{year}"
        deadlines.append(FilingDeadline(
            id=f"cit-{period}",
            tax_type=TaxType.CIT,
            period=period,
            title=f"Corporate Tax Return {period}",
            due_date=due,
            days_remaining=(due - today).days,
            status=status_for(period, due),
        ))

    deadlines.sort(key=lambda d: d.due_date)
    return deadlines


# ===========================================
# ACTIVE NOTIFICATION SET
# ===========================================

class NotificationCenter:
    """
    In-memory set of active notifications.

    All writes are serialized on one asyncio.Lock, so a timer tick and a
    profile-change tick always see each other's result when de-duplicating.
    Dismissed ids stay suppressed until their condition clears.
    """

    def __init__(self):
        self._active: Dict[str, Notification] = {}
        self._generated_ids: Set[str] = set()
        self._dismissed: Set[str] = set()
        self._lock = asyncio.Lock()

    async def refresh(self, profile: Optional[CompanyProfile], today: Optional[date] = None) -> List[Notification]:
        """
        Merge freshly generated notifications into the active set.

        Existing ids are replaced by the fresh copy (priority, countdown and
        message move with the calendar) but keep their read state and
        creation time. Conditions that no longer hold are dropped. Returns
        the notifications added by this call.
        """
        today = today or date.today()
        generated = generate_notifications(profile, today)
        generated_ids = {n.id for n in generated}

        async with self._lock:
            for stale_id in self._generated_ids - generated_ids:
                self._active.pop(stale_id, None)
            self._dismissed &= generated_ids
            self._generated_ids = generated_ids

            added = []
            for notification in generated:
                if notification.id in self._dismissed:
                    continue
                existing = self._active.get(notification.id)
                if existing is not None:
                    self._active[notification.id] = notification.model_copy(update={
                        "is_read": existing.is_read,
                        "created_at": existing.created_at,
                    })
                    continue
                self._active[notification.id] = notification
                added.append(notification)

        if added:
            logger.info(f"Added {len(added)} notification(s): {', '.join(n.id for n in added)}")
        return added

    async def mark_as_read(self, notification_id: str) -> Notification:
        async with self._lock:
            notification = self._active.get(notification_id)
            if notification is None:
                raise NotificationNotFoundException(notification_id)
            notification = notification.model_copy(update={"is_read": True})
            self._active[notification_id] = notification
            return notification

    async def mark_all_as_read(self) -> int:
        """Mark every active notification read. Returns how many changed."""
        async with self._lock:
            changed = 0
            for notification_id, notification in self._active.items():
                if not notification.is_read:
                    self._active[notification_id] = notification.model_copy(update={"is_read": True})
                    changed += 1
            return changed

    async def dismiss(self, notification_id: str) -> None:
        async with self._lock:
            if self._active.pop(notification_id, None) is None:
                raise NotificationNotFoundException(notification_id)
            if notification_id in self._generated_ids:
                self._dismissed.add(notification_id)

    async def clear_all(self) -> None:
        async with self._lock:
            self._dismissed |= set(self._active) & self._generated_ids
            self._active.clear()

    def notifications(self) -> List[Notification]:
        return list(self._active.values())

    def sorted_notifications(self) -> List[Notification]:
        return sort_notifications(self._active.values())

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._active.values() if not n.is_read)


# ===========================================
# SCHEDULER
# ===========================================

class NotificationScheduler:
    """
    Re-runs notification generation on a fixed interval and on demand.

    The interval defaults to settings.notification_refresh_seconds. A call
    to trigger() (profile changed) wakes the loop immediately.
    """

    def __init__(
        self,
        center: NotificationCenter,
        profile_provider: Callable[[], Optional[CompanyProfile]],
        interval_seconds: Optional[float] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.center = center
        self.profile_provider = profile_provider
        self.interval_seconds = interval_seconds or settings.notification_refresh_seconds
        self.clock = clock
        self._wake = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.last_run: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> List[Notification]:
        added = await self.center.refresh(self.profile_provider(), self.clock())
        self.last_run = datetime.utcnow()
        return added

    async def _loop(self) -> None:
        while True:
            # A trigger() from here on wakes the wait below
            self._wake.clear()
            try:
                await self.run_once()
            except Exception as e:
                # Next tick retries
                logger.error(f"Notification refresh failed: {e}", exc_info=True)
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Notification scheduler started (every {self.interval_seconds}s)")

    def trigger(self) -> None:
        """Request an immediate refresh, e.g. after a profile change."""
        self._wake.set()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Notification scheduler stopped")
