"""
UAE TaxDesk - Notification Tests

Deadline rules, the active notification set, the scheduler and the
filing calendar.
"""

import asyncio
import pytest
from datetime import date

from taxdesk.schemas.notification import (
    DeadlineStatus,
    Notification,
    NotificationPriority,
    NotificationType,
    TaxType,
)
from taxdesk.schemas.tax import CompanyProfile
from taxdesk.services.notification_service import (
    NotificationCenter,
    NotificationScheduler,
    build_filing_calendar,
    cit_due_date,
    generate_notifications,
    next_vat_deadline,
    sort_notifications,
    vat_due_date,
)
from taxdesk.utils.error_handling import NotificationNotFoundException


def ids(notifications):
    return {n.id for n in notifications}


class TestDeadlineRules:
    """Due date arithmetic."""

    def test_vat_due_on_28th_of_next_month(self):
        assert vat_due_date(2025, 1) == date(2025, 2, 28)
        assert vat_due_date(2025, 12) == date(2026, 1, 28)

    def test_next_vat_deadline_same_month(self):
        assert next_vat_deadline(date(2025, 1, 10)) == date(2025, 1, 28)

    def test_next_vat_deadline_rolls_over_on_due_day(self):
        assert next_vat_deadline(date(2025, 1, 28)) == date(2025, 2, 28)
        assert next_vat_deadline(date(2025, 12, 30)) == date(2026, 1, 28)

    def test_cit_due_date_uses_submission_date(self, company_profile):
        assert cit_due_date(company_profile) == date(2025, 9, 30)

    def test_cit_due_date_falls_back_to_nine_months(self):
        profile = CompanyProfile(financial_year_end=date(2024, 3, 31))

        assert cit_due_date(profile) == date(2024, 12, 31)


class TestGenerateNotifications:
    """Pure generation from (profile, today)."""

    def test_vat_notification_high_priority(self, company_profile):
        notifications = generate_notifications(company_profile, date(2025, 1, 21))

        assert len(notifications) == 1
        vat = notifications[0]
        assert vat.id == "vat-deadline-2024-12"
        assert vat.type == NotificationType.DEADLINE
        assert vat.priority == NotificationPriority.HIGH
        assert vat.days_remaining == 7
        assert vat.due_date == date(2025, 1, 28)
        assert vat.action.path == "/vat"

    def test_vat_notification_urgent(self, company_profile):
        notifications = generate_notifications(company_profile, date(2025, 1, 26))

        assert notifications[0].priority == NotificationPriority.URGENT
        assert notifications[0].days_remaining == 2

    def test_no_vat_notification_outside_window(self, company_profile):
        assert generate_notifications(company_profile, date(2025, 1, 10)) == []

    def test_no_vat_notification_on_due_day(self, company_profile):
        assert generate_notifications(company_profile, date(2025, 1, 28)) == []

    def test_cit_notification_high_priority(self, company_profile):
        notifications = generate_notifications(company_profile, date(2025, 9, 10))

        assert ids(notifications) == {"cit-deadline"}
        assert notifications[0].priority == NotificationPriority.HIGH
        assert notifications[0].days_remaining == 20
        assert notifications[0].action.path == "/cit"

    def test_cit_notification_urgent(self, company_profile):
        notifications = generate_notifications(company_profile, date(2025, 9, 25))
        cit = next(n for n in notifications if n.id == "cit-deadline")

        assert cit.priority == NotificationPriority.URGENT

    def test_no_profile(self):
        notifications = generate_notifications(None, date(2025, 1, 10))

        assert ids(notifications) == {"setup-incomplete", "missing-agent-cert", "missing-bank-slip"}

    def test_incomplete_setup_and_missing_documents(self, company_profile):
        profile = company_profile.model_copy(update={
            "trn_number": None,
            "bank_slip_uploaded": False,
        })
        notifications = generate_notifications(profile, date(2025, 1, 10))

        assert ids(notifications) == {"setup-incomplete", "missing-bank-slip"}
        assert all(n.priority == NotificationPriority.MEDIUM for n in notifications)

    def test_generation_is_deterministic(self, company_profile):
        today = date(2025, 9, 25)

        assert ids(generate_notifications(company_profile, today)) == ids(
            generate_notifications(company_profile, today)
        )


class TestSorting:
    """Priority first, then days remaining."""

    def test_sort_order(self):
        notifications = [
            Notification(id="m", type=NotificationType.MISSING_DOCUMENT, priority=NotificationPriority.MEDIUM,
                         title="m", message="m"),
            Notification(id="h", type=NotificationType.DEADLINE, priority=NotificationPriority.HIGH,
                         title="h", message="h", days_remaining=6),
            Notification(id="u5", type=NotificationType.DEADLINE, priority=NotificationPriority.URGENT,
                         title="u5", message="u5", days_remaining=5),
            Notification(id="u2", type=NotificationType.DEADLINE, priority=NotificationPriority.URGENT,
                         title="u2", message="u2", days_remaining=2),
            Notification(id="m3", type=NotificationType.DEADLINE, priority=NotificationPriority.MEDIUM,
                         title="m3", message="m3", days_remaining=3),
        ]

        assert [n.id for n in sort_notifications(notifications)] == ["u2", "u5", "h", "m3", "m"]


class TestNotificationCenter:
    """Active notification set."""

    @pytest.mark.asyncio
    async def test_refresh_does_not_duplicate(self, company_profile):
        center = NotificationCenter()
        today = date(2025, 9, 10)

        added = await center.refresh(company_profile, today)
        again = await center.refresh(company_profile, today)

        assert ids(added) == {"cit-deadline"}
        assert again == []
        assert len(center.notifications()) == 1

    @pytest.mark.asyncio
    async def test_refresh_moves_countdown_and_priority(self, company_profile):
        center = NotificationCenter()

        await center.refresh(company_profile, date(2025, 1, 21))
        first = center.notifications()[0]
        assert first.priority == NotificationPriority.HIGH
        assert first.days_remaining == 7
        await center.mark_as_read(first.id)

        added = await center.refresh(company_profile, date(2025, 1, 26))

        assert added == []
        vat = center.notifications()[0]
        assert vat.id == "vat-deadline-2024-12"
        assert vat.priority == NotificationPriority.URGENT
        assert vat.days_remaining == 2
        assert "due in 2 day(s)" in vat.message
        assert vat.is_read is True
        assert vat.created_at == first.created_at

    @pytest.mark.asyncio
    async def test_read_state_survives_refresh(self):
        center = NotificationCenter()
        await center.refresh(None, date(2025, 1, 10))

        read = await center.mark_as_read("setup-incomplete")
        assert read.is_read is True
        assert center.unread_count == 2

        await center.refresh(None, date(2025, 1, 10))
        assert center.unread_count == 2

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self):
        center = NotificationCenter()
        await center.refresh(None, date(2025, 1, 10))

        assert await center.mark_all_as_read() == 3
        assert center.unread_count == 0
        assert await center.mark_all_as_read() == 0

    @pytest.mark.asyncio
    async def test_mark_unknown_notification(self):
        center = NotificationCenter()

        with pytest.raises(NotificationNotFoundException):
            await center.mark_as_read("missing")

    @pytest.mark.asyncio
    async def test_dismissed_stays_dismissed_while_condition_holds(self, company_profile):
        center = NotificationCenter()
        no_slip = company_profile.model_copy(update={"bank_slip_uploaded": False})
        today = date(2025, 1, 10)

        await center.refresh(no_slip, today)
        await center.dismiss("missing-bank-slip")
        assert "missing-bank-slip" not in ids(center.notifications())

        added = await center.refresh(no_slip, today)
        assert added == []

        # Condition clears, then returns
        await center.refresh(company_profile, today)
        added = await center.refresh(no_slip, today)
        assert ids(added) == {"missing-bank-slip"}

    @pytest.mark.asyncio
    async def test_dismiss_unknown_notification(self):
        center = NotificationCenter()

        with pytest.raises(NotificationNotFoundException):
            await center.dismiss("missing")

    @pytest.mark.asyncio
    async def test_resolved_conditions_are_pruned(self, company_profile):
        center = NotificationCenter()
        today = date(2025, 1, 10)

        await center.refresh(None, today)
        assert len(center.notifications()) == 3

        await center.refresh(company_profile, today)
        assert center.notifications() == []

    @pytest.mark.asyncio
    async def test_sorted_notifications(self):
        center = NotificationCenter()
        await center.refresh(None, date(2025, 1, 26))

        first = center.sorted_notifications()[0]
        assert first.id == "vat-deadline-2024-12"
        assert first.priority == NotificationPriority.URGENT

    @pytest.mark.asyncio
    async def test_clear_all(self):
        center = NotificationCenter()
        await center.refresh(None, date(2025, 1, 10))

        await center.clear_all()
        assert center.notifications() == []

        added = await center.refresh(None, date(2025, 1, 10))
        assert added == []


class TestNotificationScheduler:
    """Periodic and on-demand regeneration."""

    @pytest.mark.asyncio
    async def test_run_once_uses_current_profile(self, company_profile):
        center = NotificationCenter()
        scheduler = NotificationScheduler(
            center,
            lambda: company_profile,
            interval_seconds=3600,
            clock=lambda: date(2025, 9, 10),
        )

        added = await scheduler.run_once()

        assert ids(added) == {"cit-deadline"}
        assert scheduler.last_run is not None

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        center = NotificationCenter()
        scheduler = NotificationScheduler(
            center,
            lambda: None,
            interval_seconds=3600,
            clock=lambda: date(2025, 1, 10),
        )

        scheduler.start()
        assert scheduler.is_running is True
        for _ in range(10):
            if center.notifications():
                break
            await asyncio.sleep(0)

        assert len(center.notifications()) == 3

        await scheduler.stop()
        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_trigger_during_refresh_runs_again(self):
        center = NotificationCenter()
        calls = []

        def profile_provider():
            calls.append(1)
            if len(calls) == 1:
                scheduler.trigger()
            return None

        scheduler = NotificationScheduler(
            center,
            profile_provider,
            interval_seconds=3600,
            clock=lambda: date(2025, 1, 10),
        )

        scheduler.start()
        for _ in range(100):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

        assert len(calls) == 2


class TestFilingCalendar:
    """Yearly VAT and CIT deadlines."""

    def test_calendar_entries(self, company_profile):
        deadlines = build_filing_calendar(
            company_profile, 2025, date(2025, 3, 1), filed_periods=["2025-01"]
        )

        assert len(deadlines) == 13
        by_id = {d.id: d for d in deadlines}

        assert by_id["vat-2025-01"].status == DeadlineStatus.COMPLETED
        assert by_id["vat-2025-01"].due_date == date(2025, 2, 28)
        assert by_id["vat-2025-02"].status == DeadlineStatus.UPCOMING
        assert by_id["vat-2025-02"].days_remaining == 27

        cit = by_id["cit-FY2025"]
        assert cit.tax_type == TaxType.CIT
        assert cit.due_date == date(2026, 9, 30)

    def test_calendar_is_sorted_by_due_date(self, company_profile):
        deadlines = build_filing_calendar(company_profile, 2025, date(2025, 3, 1))

        assert [d.due_date for d in deadlines] == sorted(d.due_date for d in deadlines)

    def test_overdue_returns(self, company_profile):
        deadlines = build_filing_calendar(company_profile, 2024, date(2025, 10, 15))
        by_id = {d.id: d for d in deadlines}

        assert by_id["vat-2024-06"].status == DeadlineStatus.OVERDUE
        assert by_id["cit-FY2024"].due_date == date(2025, 9, 30)
        assert by_id["cit-FY2024"].status == DeadlineStatus.OVERDUE

    def test_calendar_without_profile(self):
        deadlines = build_filing_calendar(None, 2025, date(2025, 1, 1))

        assert len(deadlines) == 12
        assert all(d.tax_type == TaxType.VAT for d in deadlines)
