#!/usr/bin/env python3
"""
Tests for the reminder workflow engine: scheduling, the dispatch pass,
confirmation tokens, cancellation and statistics.
"""

import pytest
import sys
import os
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock

# Add app to Python path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sqlalchemy.exc import OperationalError

from inkgest.core.config import Settings
from inkgest.core.errors import NotFoundError, ServiceError, ValidationError
from inkgest.schemas.communication import CommunicationPreferences
from inkgest.services.reminders import (
    ALREADY_CONFIRMED,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_INACTIVE,
    INVALID_TOKEN,
    NO_CHANNEL,
    REMINDERS_DISABLED,
    TOKEN_EXPIRED,
    ReminderService,
)
from tests.mocks.record_store import FakeNotificationSender, make_appointment


def build_service(store, sender, now, **overrides):
    test_settings = Settings(APP_URL="https://studio.test", **overrides)
    return ReminderService(store, sender, settings=test_settings, clock=lambda: now)


@pytest.fixture
def service(record_store, sender, now):
    """Reminder service wired to in-memory collaborators"""
    return build_service(record_store, sender, now)


class TestScheduleReminders:
    """Test scheduleAppointmentReminders"""

    @pytest.mark.asyncio
    async def test_fresh_appointment_gets_three_reminders(self, service, record_store, appointment, now):
        """Test a new appointment gets 24h, 2h and confirmation reminders"""
        reminders = await service.schedule_appointment_reminders(appointment.id)

        assert len(reminders) == 3
        assert {r.type for r in reminders} == {"24h", "2h", "confirmation"}
        assert len(record_store.reminders_for(appointment.id)) == 3

        by_type = {r.type: r for r in reminders}
        assert by_type["24h"].scheduled_for == appointment.starts_at - timedelta(hours=24)
        assert by_type["2h"].scheduled_for == appointment.starts_at - timedelta(hours=2)
        assert by_type["confirmation"].scheduled_for == now
        assert all(r.sent is False and r.retry_count == 0 for r in reminders)

    @pytest.mark.asyncio
    async def test_existing_reminder_is_updated_in_place(self, service, record_store, appointment, now):
        """Test rescheduling updates the existing 24h row and creates the other two"""
        existing = record_store.add_reminder(
            appointment, "24h", now - timedelta(days=1),
            sent=True, sent_at=now - timedelta(days=1), error="old failure", retry_count=2,
        )

        with patch.object(record_store, 'update_reminder', wraps=record_store.update_reminder) as mock_update, \
             patch.object(record_store, 'create_reminder', wraps=record_store.create_reminder) as mock_create:
            reminders = await service.schedule_appointment_reminders(appointment.id)

        assert mock_update.call_count == 1
        assert mock_create.call_count == 2
        rows_24h = [r for r in record_store.reminders_for(appointment.id) if r.type == "24h"]
        assert len(rows_24h) == 1
        assert rows_24h[0].id == existing.id
        assert existing.scheduled_for == appointment.starts_at - timedelta(hours=24)
        assert existing.sent is False
        assert existing.sent_at is None
        assert existing.error is None
        assert existing.retry_count == 0
        assert existing in reminders

    @pytest.mark.asyncio
    async def test_rescheduling_twice_never_duplicates(self, service, record_store, appointment):
        """Test calling schedule twice keeps one row per type"""
        await service.schedule_appointment_reminders(appointment.id)
        await service.schedule_appointment_reminders(appointment.id)

        types = [r.type for r in record_store.reminders_for(appointment.id)]
        assert sorted(types) == ["24h", "2h", "confirmation"]

    @pytest.mark.asyncio
    async def test_reschedule_moves_open_confirmation_deadline(self, service, record_store, appointment, now):
        """Test an open confirmation link follows the new start time"""
        await service.schedule_appointment_reminders(appointment.id)
        await service.process_pending_reminders()
        confirmation = next(iter(record_store.confirmations.values()))
        assert confirmation.expires_at == appointment.starts_at - timedelta(hours=12)

        appointment.starts_at = appointment.starts_at + timedelta(days=2)
        await service.schedule_appointment_reminders(appointment.id)

        assert confirmation.expires_at == appointment.starts_at - timedelta(hours=12)

    @pytest.mark.asyncio
    async def test_reschedule_close_to_start_keeps_link_until_start(self, service, record_store, appointment, now):
        """Test moving the appointment within the expiry window extends the link to the start"""
        await service.schedule_appointment_reminders(appointment.id)
        await service.process_pending_reminders()
        confirmation = next(iter(record_store.confirmations.values()))

        appointment.starts_at = now + timedelta(hours=5)
        await service.schedule_appointment_reminders(appointment.id)

        assert confirmation.expires_at == appointment.starts_at

    @pytest.mark.asyncio
    async def test_unknown_appointment_raises_not_found(self, service, record_store):
        """Test scheduling for a missing appointment creates nothing"""
        with pytest.raises(NotFoundError) as exc_info:
            await service.schedule_appointment_reminders("missing-id")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Appointment not found"
        assert record_store.reminders == {}
        assert record_store.writes == 0

    @pytest.mark.asyncio
    async def test_store_failure_is_wrapped(self, service, record_store, appointment):
        """Test database errors surface as 'Failed to schedule appointment reminders'"""
        error = OperationalError("INSERT", {}, Exception("db down"))
        with patch.object(record_store, 'find_reminder', new_callable=AsyncMock) as mock_find:
            mock_find.side_effect = error
            with pytest.raises(ServiceError) as exc_info:
                await service.schedule_appointment_reminders(appointment.id)

        assert exc_info.value.message.startswith("Failed to schedule appointment reminders:")


class TestProcessPendingReminders:
    """Test the dispatch pass"""

    @pytest.mark.asyncio
    async def test_cancelled_appointment_is_skipped_without_sending(self, service, record_store, sender, now):
        """Test reminders of cancelled appointments are closed without a send"""
        appt = record_store.add_appointment(make_appointment(now + timedelta(hours=1), status="CANCELLED"))
        reminder = record_store.add_reminder(appt, "2h", now - timedelta(hours=1))

        summary = await service.process_pending_reminders()

        assert reminder.sent is True
        assert reminder.sent_at == now
        assert reminder.error == APPOINTMENT_INACTIVE
        assert sender.attempts == []
        assert summary.processed == 1
        assert summary.skipped == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["COMPLETED", "NO_SHOW"])
    async def test_finished_appointments_are_skipped(self, service, record_store, sender, now, status):
        """Test completed and no-show appointments never get reminders"""
        appt = record_store.add_appointment(make_appointment(now + timedelta(hours=1), status=status))
        reminder = record_store.add_reminder(appt, "2h", now)

        await service.process_pending_reminders()

        assert reminder.sent is True
        assert reminder.error == APPOINTMENT_INACTIVE
        assert sender.attempts == []

    @pytest.mark.asyncio
    async def test_successful_send_marks_reminder_sent(self, service, record_store, sender, appointment, now):
        """Test a delivered reminder is sent with no error"""
        reminder = record_store.add_reminder(appointment, "24h", now - timedelta(minutes=5))

        summary = await service.process_pending_reminders()

        assert reminder.sent is True
        assert reminder.sent_at == now
        assert reminder.error is None
        assert reminder.retry_count == 0
        assert summary.sent == 1
        assert len(sender.sent) == 1

        message = sender.sent[0]
        assert message.channel == "whatsapp"
        assert message.to == appointment.client.phone
        assert message.template_name == "appointment_reminder_24h"
        # 09:00 UTC on 23/10 is 11:00 in Madrid (CEST)
        assert message.template_parameters == [
            "Laura Gómez", "Fine line tattoo", "23/10/2025", "11:00", "120",
        ]
        assert "Laura Gómez" in message.text

    @pytest.mark.asyncio
    async def test_failed_send_increments_retry_count(self, record_store, appointment, now):
        """Test a throwing send leaves the reminder due with the error recorded"""
        sender = FakeNotificationSender(
            preferences=CommunicationPreferences(email_enabled=False),
            failing={"whatsapp"},
        )
        service = build_service(record_store, sender, now)
        reminder = record_store.add_reminder(appointment, "2h", now, retry_count=1)

        summary = await service.process_pending_reminders()

        assert reminder.sent is False
        assert reminder.sent_at is None
        assert reminder.retry_count == 2
        assert reminder.error == "whatsapp delivery failed"
        assert summary.failed == 1

    @pytest.mark.asyncio
    async def test_failed_reminder_is_retried_next_pass(self, record_store, appointment, now):
        """Test a failed reminder stays due and succeeds on a later pass"""
        sender = FakeNotificationSender(
            preferences=CommunicationPreferences(email_enabled=False),
            failing={"whatsapp"},
        )
        service = build_service(record_store, sender, now)
        reminder = record_store.add_reminder(appointment, "24h", now)

        await service.process_pending_reminders()
        assert reminder.retry_count == 1

        sender.failing.clear()
        await service.process_pending_reminders()

        assert reminder.sent is True
        assert reminder.error is None
        assert reminder.retry_count == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_email_when_whatsapp_fails(self, record_store, appointment, now):
        """Test delivery falls back through the enabled channels"""
        sender = FakeNotificationSender(failing={"whatsapp"})
        service = build_service(record_store, sender, now)
        reminder = record_store.add_reminder(appointment, "24h", now)

        await service.process_pending_reminders()

        assert sender.attempts == ["whatsapp", "email"]
        assert reminder.sent is True
        assert reminder.error is None
        email = sender.sent[0]
        assert email.channel == "email"
        assert email.to == "laura@example.com"
        assert email.subject == "Recordatorio: Cita mañana - Fine line tattoo"
        assert "<h2>Recordatorio de Cita</h2>" in email.html

    @pytest.mark.asyncio
    async def test_email_html_escapes_client_values(self, record_store, now):
        """Test markup typed into a booking reaches the email HTML as text"""
        sender = FakeNotificationSender()
        service = build_service(record_store, sender, now)
        appt = record_store.add_appointment(make_appointment(
            now + timedelta(days=2), name='<a href="https://evil.test">Pay here</a>', phone=None))
        record_store.add_reminder(appt, "24h", now)

        await service.process_pending_reminders()

        email = sender.sent[0]
        assert email.channel == "email"
        assert '<a href="https://evil.test">' not in email.html
        assert "&lt;a href=&quot;https://evil.test&quot;&gt;Pay here&lt;/a&gt;" in email.html
        assert '<a href="https://evil.test">Pay here</a>' in email.text

    @pytest.mark.asyncio
    async def test_preferred_channel_is_tried_first(self, record_store, appointment, now):
        """Test a client preferring email is contacted by email first"""
        sender = FakeNotificationSender(preferences=CommunicationPreferences(preferred_channel="email"))
        service = build_service(record_store, sender, now)
        record_store.add_reminder(appointment, "2h", now)

        await service.process_pending_reminders()

        assert sender.attempts == ["email"]

    @pytest.mark.asyncio
    async def test_all_channels_failing_records_last_error(self, record_store, appointment, now):
        """Test the last channel error is the one stored"""
        sender = FakeNotificationSender(failing={"whatsapp", "email"})
        service = build_service(record_store, sender, now)
        reminder = record_store.add_reminder(appointment, "2h", now)

        await service.process_pending_reminders()

        assert sender.attempts == ["whatsapp", "email"]
        assert reminder.sent is False
        assert reminder.error == "email delivery failed"

    @pytest.mark.asyncio
    async def test_reminders_disabled_is_terminal_skip(self, record_store, appointment, now):
        """Test opted-out clients get their reminders closed"""
        sender = FakeNotificationSender(preferences=CommunicationPreferences(appointment_reminders=False))
        service = build_service(record_store, sender, now)
        reminder = record_store.add_reminder(appointment, "24h", now)

        summary = await service.process_pending_reminders()

        assert reminder.sent is True
        assert reminder.error == REMINDERS_DISABLED
        assert sender.attempts == []
        assert summary.skipped == 1

    @pytest.mark.asyncio
    async def test_no_usable_channel_is_terminal_skip(self, record_store, now):
        """Test a client with no enabled channel that has contact data is skipped"""
        appt = record_store.add_appointment(make_appointment(now + timedelta(days=2), email=None))
        sender = FakeNotificationSender(preferences=CommunicationPreferences(whatsapp_enabled=False))
        service = build_service(record_store, sender, now)
        reminder = record_store.add_reminder(appt, "24h", now)

        await service.process_pending_reminders()

        assert reminder.sent is True
        assert reminder.error == NO_CHANNEL
        assert sender.attempts == []

    @pytest.mark.asyncio
    async def test_not_yet_due_reminders_are_ignored(self, service, record_store, sender, appointment, now):
        """Test future and already-sent reminders are left alone"""
        future = record_store.add_reminder(appointment, "2h", now + timedelta(minutes=1))
        done = record_store.add_reminder(appointment, "24h", now - timedelta(hours=1),
                                         sent=True, sent_at=now - timedelta(hours=1))

        summary = await service.process_pending_reminders()

        assert summary.processed == 0
        assert future.sent is False
        assert done.sent_at == now - timedelta(hours=1)
        assert sender.attempts == []

    @pytest.mark.asyncio
    async def test_one_bad_reminder_does_not_block_the_batch(self, record_store, now):
        """Test a failing row does not stop the other rows from being delivered"""
        bad = record_store.add_appointment(make_appointment(now + timedelta(days=1), email=None))
        good = record_store.add_appointment(make_appointment(now + timedelta(days=1), phone=None))
        sender = FakeNotificationSender(failing={"whatsapp"})
        service = build_service(record_store, sender, now)
        bad_reminder = record_store.add_reminder(bad, "24h", now - timedelta(minutes=2))
        good_reminder = record_store.add_reminder(good, "24h", now - timedelta(minutes=1))

        summary = await service.process_pending_reminders()

        assert bad_reminder.sent is False
        assert bad_reminder.retry_count == 1
        assert good_reminder.sent is True
        assert summary.model_dump() == {"processed": 2, "sent": 1, "skipped": 0, "failed": 1}

    @pytest.mark.asyncio
    async def test_max_retries_stops_retrying(self, record_store, appointment, now):
        """Test reminders at the retry cap are no longer picked up"""
        sender = FakeNotificationSender()
        service = build_service(record_store, sender, now, REMINDER_MAX_RETRIES=3)
        capped = record_store.add_reminder(appointment, "24h", now, retry_count=3, error="boom")

        summary = await service.process_pending_reminders()

        assert summary.processed == 0
        assert capped.sent is False
        assert sender.attempts == []

    @pytest.mark.asyncio
    async def test_store_outage_propagates(self, service, record_store):
        """Test a record store failure aborts the pass"""
        with patch.object(record_store, 'list_due_reminders', new_callable=AsyncMock) as mock_due:
            mock_due.side_effect = OperationalError("SELECT", {}, Exception("db down"))
            with pytest.raises(ServiceError) as exc_info:
                await service.process_pending_reminders()

        assert exc_info.value.message.startswith("Failed to process pending reminders:")

    @pytest.mark.asyncio
    async def test_confirmation_reminder_carries_token_link(self, service, record_store, sender, appointment, now):
        """Test the confirmation reminder creates a token and links to it"""
        record_store.add_reminder(appointment, "confirmation", now)

        await service.process_pending_reminders()

        assert len(record_store.confirmations) == 1
        confirmation = next(iter(record_store.confirmations.values()))
        assert confirmation.appointment_id == appointment.id
        assert confirmation.confirmed is False
        assert confirmation.expires_at == appointment.starts_at - timedelta(hours=12)

        message = sender.sent[0]
        link = f"https://studio.test/confirm/{confirmation.token}"
        assert message.template_name == "appointment_confirmation"
        assert message.template_parameters[-1] == link
        assert link in message.text

    @pytest.mark.asyncio
    async def test_confirmation_token_is_reused_while_open(self, record_store, appointment, now):
        """Test a retried confirmation reminder reuses the open token"""
        sender = FakeNotificationSender(failing={"whatsapp", "email"})
        service = build_service(record_store, sender, now)
        reminder = record_store.add_reminder(appointment, "confirmation", now)

        await service.process_pending_reminders()
        sender.failing.clear()
        await service.process_pending_reminders()

        assert reminder.sent is True
        assert len(record_store.confirmations) == 1

    @pytest.mark.asyncio
    async def test_confirmation_expiry_for_imminent_appointment(self, service, record_store, now):
        """Test an appointment starting soon gets a token valid until it starts"""
        appt = record_store.add_appointment(make_appointment(now + timedelta(hours=3)))
        record_store.add_reminder(appt, "confirmation", now)

        await service.process_pending_reminders()

        confirmation = next(iter(record_store.confirmations.values()))
        assert confirmation.expires_at == appt.starts_at

    @pytest.mark.asyncio
    async def test_preferred_language_selects_template(self, record_store, appointment, now):
        """Test Catalan clients get the Catalan template"""
        sender = FakeNotificationSender(preferences=CommunicationPreferences(preferred_language="ca"))
        service = build_service(record_store, sender, now)
        record_store.add_reminder(appointment, "2h", now)

        await service.process_pending_reminders()

        message = sender.sent[0]
        assert message.locale == "ca"
        assert message.template_name == "appointment_reminder_2h_ca"
        assert message.text.startswith("Hola Laura Gómez, la teva cita")


class TestConfirmAppointment:
    """Test confirmAppointment and token validation"""

    @pytest.fixture
    def confirmation(self, record_store, appointment, now):
        """Open confirmation token for the sample appointment"""
        token = SimpleNamespace(
            id="conf-1", appointment_id=appointment.id, token="tok-valid",
            confirmed=False, confirmed_at=None, expires_at=now + timedelta(days=2), created_at=now,
        )
        record_store.confirmations[token.id] = token
        return token

    @pytest.mark.asyncio
    async def test_unknown_token(self, service):
        """Test an unknown token is rejected"""
        result = await service.confirm_appointment("nope")

        assert result.success is False
        assert result.error == INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_valid_token_confirms_appointment(self, service, record_store, appointment, confirmation, now):
        """Test a valid token confirms the appointment exactly once"""
        result = await service.confirm_appointment("tok-valid")

        assert result.success is True
        assert result.error is None
        assert result.appointment is appointment
        assert appointment.status == "CONFIRMED"
        assert confirmation.confirmed is True
        assert confirmation.confirmed_at == now

    @pytest.mark.asyncio
    async def test_already_confirmed_token(self, service, appointment, confirmation):
        """Test a second confirmation attempt is rejected"""
        first = await service.confirm_appointment("tok-valid")
        second = await service.confirm_appointment("tok-valid")

        assert first.success is True
        assert second.success is False
        assert second.error == ALREADY_CONFIRMED

    @pytest.mark.asyncio
    async def test_expired_token(self, service, appointment, confirmation, now):
        """Test an expired, unconfirmed token is rejected and nothing changes"""
        confirmation.expires_at = now - timedelta(seconds=1)

        result = await service.confirm_appointment("tok-valid")

        assert result.success is False
        assert result.error == TOKEN_EXPIRED
        assert confirmation.confirmed is False
        assert appointment.status == "SCHEDULED"

    @pytest.mark.asyncio
    async def test_already_confirmed_wins_over_expiry(self, service, confirmation, now):
        """Test a confirmed token reports already-confirmed even after expiry"""
        confirmation.confirmed = True
        confirmation.expires_at = now - timedelta(days=1)

        result = await service.confirm_appointment("tok-valid")

        assert result.error == ALREADY_CONFIRMED

    @pytest.mark.asyncio
    async def test_lost_race_reports_already_confirmed(self, service, record_store, appointment, confirmation):
        """Test a concurrent confirmation that won the race is reported"""
        with patch.object(record_store, 'mark_confirmation_confirmed', new_callable=AsyncMock) as mock_mark:
            mock_mark.side_effect = LookupError("Appointment already confirmed")
            result = await service.confirm_appointment("tok-valid")

        assert result.success is False
        assert result.error == ALREADY_CONFIRMED
        assert appointment.status == "SCHEDULED"

    @pytest.mark.asyncio
    async def test_store_failure_returns_failed_to_confirm(self, service, record_store):
        """Test database errors are reported as a failed confirmation"""
        with patch.object(record_store, 'find_confirmation', new_callable=AsyncMock) as mock_find:
            mock_find.side_effect = OperationalError("SELECT", {}, Exception("db down"))
            result = await service.confirm_appointment("tok-valid")

        assert result.success is False
        assert result.error.startswith("Failed to confirm appointment:")

    @pytest.mark.asyncio
    async def test_validate_token_does_not_write(self, service, record_store, appointment, confirmation):
        """Test validating a token leaves it unconfirmed"""
        writes_before = record_store.writes

        result = await service.validate_confirmation_token("tok-valid")

        assert result.success is True
        assert result.appointment is appointment
        assert confirmation.confirmed is False
        assert record_store.writes == writes_before

    @pytest.mark.asyncio
    async def test_validate_expired_token(self, service, appointment, confirmation, now):
        """Test validation reports expiry with the appointment attached"""
        confirmation.expires_at = now - timedelta(minutes=1)

        result = await service.validate_confirmation_token("tok-valid")

        assert result.success is False
        assert result.error == TOKEN_EXPIRED
        assert result.appointment is appointment

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["CANCELLED", "COMPLETED", "NO_SHOW"])
    async def test_inactive_appointment_is_not_revived(self, service, appointment, confirmation, status):
        """Test an open link cannot confirm a cancelled or finished appointment"""
        appointment.status = status

        result = await service.confirm_appointment("tok-valid")

        assert result.success is False
        assert result.error == APPOINTMENT_INACTIVE
        assert appointment.status == status
        assert confirmation.confirmed is False

    @pytest.mark.asyncio
    async def test_validate_reports_inactive_appointment(self, service, appointment, confirmation):
        """Test validation flags links of cancelled appointments"""
        appointment.status = "CANCELLED"

        result = await service.validate_confirmation_token("tok-valid")

        assert result.success is False
        assert result.error == APPOINTMENT_INACTIVE
        assert result.appointment is appointment


class TestCancelReminders:
    """Test cancelAppointmentReminders"""

    @pytest.mark.asyncio
    async def test_cancels_unsent_and_keeps_history(self, service, record_store, appointment, now):
        """Test unsent reminders are closed and sent ones untouched"""
        sent_at = now - timedelta(hours=3)
        delivered = record_store.add_reminder(appointment, "confirmation", sent_at, sent=True, sent_at=sent_at)
        pending_24h = record_store.add_reminder(appointment, "24h", now + timedelta(days=2))
        pending_2h = record_store.add_reminder(appointment, "2h", now + timedelta(days=2), retry_count=1,
                                               error="whatsapp delivery failed")

        cancelled = await service.cancel_appointment_reminders(appointment.id)

        assert cancelled == 2
        for row in (pending_24h, pending_2h):
            assert row.sent is True
            assert row.sent_at == now
            assert row.error == APPOINTMENT_CANCELLED
        assert delivered.sent_at == sent_at
        assert delivered.error is None

    @pytest.mark.asyncio
    async def test_nothing_to_cancel(self, service, appointment):
        """Test cancelling with no pending reminders returns zero"""
        assert await service.cancel_appointment_reminders(appointment.id) == 0


class TestReminderStats:
    """Test getReminderStats"""

    @pytest.fixture
    def window(self, now):
        """Inclusive stats window around the fixed clock"""
        return now - timedelta(days=1), now + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_counts_and_success_rate(self, service, record_store, appointment, now, window):
        """Test 3 delivered rows out of 4 give a 75% success rate"""
        record_store.add_reminder(appointment, "24h", now, sent=True, sent_at=now)
        record_store.add_reminder(appointment, "2h", now, sent=True, sent_at=now)
        record_store.add_reminder(appointment, "confirmation", now, sent=True, sent_at=now)
        record_store.add_reminder(appointment, "24h", now, sent=True, sent_at=now, error=APPOINTMENT_CANCELLED)

        stats = await service.get_reminder_stats("store-1", *window)

        assert stats.total_scheduled == 4
        assert stats.total_sent == 3
        assert stats.total_failed == 1
        assert stats.success_rate == 75
        assert stats.by_type["24h"].model_dump() == {"scheduled": 2, "sent": 1, "failed": 1}
        assert stats.by_type["2h"].model_dump() == {"scheduled": 1, "sent": 1, "failed": 0}
        assert stats.by_type["confirmation"].model_dump() == {"scheduled": 1, "sent": 1, "failed": 0}

    @pytest.mark.asyncio
    async def test_mixed_states(self, service, record_store, appointment, now, window):
        """Test 2 delivered, 1 errored and 1 pending row"""
        record_store.add_reminder(appointment, "24h", now, sent=True, sent_at=now)
        record_store.add_reminder(appointment, "2h", now, sent=True, sent_at=now)
        record_store.add_reminder(appointment, "confirmation", now, sent=True, sent_at=now, error=NO_CHANNEL)
        record_store.add_reminder(appointment, "24h", now)

        stats = await service.get_reminder_stats("store-1", *window)

        assert stats.total_scheduled == 4
        assert stats.total_sent == 2
        assert stats.total_failed == 1
        assert stats.success_rate == 50

    @pytest.mark.asyncio
    async def test_retrying_rows_count_as_failed(self, service, record_store, appointment, now, window):
        """Test unsent rows carrying an error are failures"""
        record_store.add_reminder(appointment, "24h", now, retry_count=2, error="whatsapp delivery failed")

        stats = await service.get_reminder_stats("store-1", *window)

        assert stats.total_failed == 1
        assert stats.total_sent == 0

    @pytest.mark.asyncio
    async def test_success_rate_rounds_half_up(self, service, record_store, appointment, now, window):
        """Test 1 of 8 delivered rounds 12.5 up to 13"""
        record_store.add_reminder(appointment, "24h", now, sent=True, sent_at=now)
        for _ in range(7):
            record_store.add_reminder(appointment, "2h", now)

        stats = await service.get_reminder_stats("store-1", *window)

        assert stats.success_rate == 13

    @pytest.mark.asyncio
    async def test_empty_window(self, service, window):
        """Test no rows gives zeroes and a 0% success rate"""
        stats = await service.get_reminder_stats("store-1", *window)

        assert stats.total_scheduled == 0
        assert stats.success_rate == 0
        assert set(stats.by_type) == {"24h", "2h", "confirmation"}

    @pytest.mark.asyncio
    async def test_scoped_to_store_and_window(self, service, record_store, appointment, now, window):
        """Test rows from other stores or outside the window are excluded"""
        other = record_store.add_appointment(make_appointment(now + timedelta(days=1), store_id="store-2"))
        record_store.add_reminder(other, "24h", now, sent=True, sent_at=now)
        record_store.add_reminder(appointment, "24h", now, created_at=now - timedelta(days=5))
        record_store.add_reminder(appointment, "2h", now, created_at=window[1])

        stats = await service.get_reminder_stats("store-1", *window)

        assert stats.total_scheduled == 1

    @pytest.mark.asyncio
    async def test_inverted_window_is_rejected(self, service, now):
        """Test startDate after endDate is a validation error"""
        with pytest.raises(ValidationError):
            await service.get_reminder_stats("store-1", now, now - timedelta(days=1))

    @pytest.mark.asyncio
    async def test_stats_serialize_camel_case(self, service, window):
        """Test the API shape uses camelCase keys"""
        stats = await service.get_reminder_stats("store-1", *window)
        body = stats.model_dump(by_alias=True)

        assert set(body) == {"totalScheduled", "totalSent", "totalFailed", "successRate", "byType"}
