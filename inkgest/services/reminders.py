# inkgest/services/reminders.py
"""
Reminder workflow: scheduling, the dispatch pass, confirmation tokens,
cancellation and delivery statistics.

The service talks to two collaborators only: a ``ReminderStore`` for
persistence and a ``NotificationSender`` for preferences and delivery.
Both are injected, so tests can pass in-memory fakes.
"""
from __future__ import annotations

import math
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from inkgest.core.config import Settings, settings as default_settings
from inkgest.core.errors import NotFoundError, ServiceError, ValidationError, ErrorSeverity, log_error
from inkgest.core.logging import get_logger
from inkgest.crud.reminder import ReminderStore
from inkgest.db.models.appointment import AppointmentStatus, INACTIVE_STATUSES
from inkgest.db.models.reminder import ReminderType
from inkgest.schemas.communication import ChannelMessage, CommunicationPreferences
from inkgest.schemas.reminder import (
    ConfirmationResult,
    DispatchSummary,
    ReminderStats,
    ReminderTypeStats,
)
from inkgest.services.communication import NotificationSender
from inkgest.services.message_templates import get_template, render, resolve_locale, template_parameters
from inkgest.utils.timezone import to_local, to_utc_aware, utcnow

logger = get_logger(__name__)

# Stable strings surfaced to clients and stored on reminder rows
INVALID_TOKEN = "Invalid confirmation token"
ALREADY_CONFIRMED = "Appointment already confirmed"
TOKEN_EXPIRED = "Confirmation token expired"
APPOINTMENT_INACTIVE = "Appointment cancelled or completed"
APPOINTMENT_CANCELLED = "Appointment cancelled"
REMINDERS_DISABLED = "Client has disabled appointment reminders"
NO_CHANNEL = "No available communication channel"

REMINDER_OFFSETS = (
    (ReminderType.HOURS_24.value, timedelta(hours=24)),
    (ReminderType.HOURS_2.value, timedelta(hours=2)),
)


def _format_amount(value: Any) -> str:
    if value is None:
        return "0"
    amount = float(value)
    return str(int(amount)) if amount.is_integer() else f"{amount:.2f}"


class ReminderService:
    def __init__(
        self,
        store: ReminderStore,
        sender: NotificationSender,
        *,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.sender = sender
        self.settings = settings
        self.clock = clock

    # ---------- Scheduling ----------

    async def schedule_appointment_reminders(self, appointment_id: str) -> list[Any]:
        """
        Create or reset the 24h, 2h and confirmation reminders of an appointment.

        Existing rows are updated in place (delivery state reset), so an
        appointment never has two reminders of the same type.
        """
        try:
            appointment = await self.store.get_appointment(appointment_id)
            if appointment is None:
                raise NotFoundError("Appointment")

            now = self.clock()
            starts_at = to_utc_aware(appointment.starts_at)
            targets = [(rtype, starts_at - offset) for rtype, offset in REMINDER_OFFSETS]
            targets.append((ReminderType.CONFIRMATION.value, now))

            reminders = []
            for reminder_type, scheduled_for in targets:
                existing = await self.store.find_reminder(appointment_id, reminder_type)
                if existing is not None:
                    reminder = await self.store.update_reminder(
                        existing.id,
                        scheduled_for=scheduled_for,
                        sent=False,
                        sent_at=None,
                        error=None,
                        retry_count=0,
                    )
                else:
                    reminder = await self.store.create_reminder(
                        appointment_id=appointment_id,
                        reminder_type=reminder_type,
                        scheduled_for=scheduled_for,
                    )
                reminders.append(reminder)

            # A moved start also moves the deadline of a link already sent
            confirmation = await self.store.find_open_confirmation(appointment_id, now)
            if confirmation is not None:
                await self.store.update_confirmation(
                    confirmation.id, expires_at=self._confirmation_expiry(starts_at, now)
                )
        except SQLAlchemyError as e:
            raise ServiceError(f"Failed to schedule appointment reminders: {e}") from e

        logger.info("reminders_scheduled", appointment_id=appointment_id, count=len(reminders))
        return reminders

    # ---------- Dispatch ----------

    async def process_pending_reminders(self) -> DispatchSummary:
        """
        One dispatch pass over every due, unsent reminder.

        Delivery problems are written onto the reminder row and never abort
        the pass. Only record store failures propagate.
        """
        now = self.clock()
        summary = DispatchSummary()
        try:
            due = await self.store.list_due_reminders(now, max_retries=self.settings.REMINDER_MAX_RETRIES)
            for reminder in due:
                outcome = await self._process_reminder(reminder, now)
                summary.processed += 1
                setattr(summary, outcome, getattr(summary, outcome) + 1)
        except SQLAlchemyError as e:
            log_error(e, {"component": "reminder_dispatch"}, ErrorSeverity.HIGH)
            raise ServiceError(f"Failed to process pending reminders: {e}") from e

        logger.info("reminder_pass_complete", **summary.model_dump())
        return summary

    async def _process_reminder(self, reminder: Any, now: datetime) -> str:
        appointment = reminder.appointment
        if appointment is None or appointment.status in INACTIVE_STATUSES:
            await self._mark_sent(reminder, now, error=APPOINTMENT_INACTIVE)
            logger.info("reminder_skipped", reminder_id=reminder.id, reason="appointment_inactive")
            return "skipped"

        client = appointment.client
        skip_reason: Optional[str] = None
        try:
            prefs = await self.sender.get_communication_preferences(client.id)
            channels = self._available_channels(client, prefs)
            if not prefs.appointment_reminders:
                skip_reason = REMINDERS_DISABLED
            elif not channels:
                skip_reason = NO_CHANNEL
            else:
                await self._deliver(reminder, appointment, prefs, channels, now)
        except SQLAlchemyError:
            raise
        except Exception as exc:
            retry_count = (reminder.retry_count or 0) + 1
            log_error(exc, {"component": "reminder_dispatch", "reminder_id": reminder.id,
                            "retry_count": retry_count})
            await self.store.update_reminder(
                reminder.id,
                retry_count=retry_count,
                error=str(exc) or type(exc).__name__,
            )
            return "failed"

        if skip_reason:
            await self._mark_sent(reminder, now, error=skip_reason)
            logger.info("reminder_skipped", reminder_id=reminder.id, reason=skip_reason)
            return "skipped"

        await self._mark_sent(reminder, now, error=None)
        return "sent"

    async def _mark_sent(self, reminder: Any, now: datetime, *, error: Optional[str]) -> None:
        await self.store.update_reminder(reminder.id, sent=True, sent_at=now, error=error)

    @staticmethod
    def _available_channels(client: Any, prefs: CommunicationPreferences) -> list[str]:
        channels = []
        for channel in prefs.channel_order():
            contact = client.email if channel == "email" else client.phone
            if contact:
                channels.append(channel)
        return channels

    async def _deliver(self, reminder: Any, appointment: Any, prefs: CommunicationPreferences,
                       channels: Sequence[str], now: datetime) -> str:
        """Try each channel in order; return the one that worked or raise the last failure."""
        client = appointment.client
        locale = resolve_locale(prefs.preferred_language, self.settings.DEFAULT_LOCALE)
        variables = self._build_variables(appointment)

        if reminder.type == ReminderType.CONFIRMATION.value:
            confirmation = await self._get_or_create_confirmation(appointment, now)
            variables["confirmationUrl"] = f"{self.settings.confirmation_base_url}/{confirmation.token}"

        template = get_template(reminder.type, locale)
        last_error: Optional[Exception] = None
        for channel in channels:
            payload = self._build_message(channel, client, reminder.type, template, locale, variables)
            try:
                await self.sender.send_channel_message(client.id, payload)
            except SQLAlchemyError:
                raise
            except Exception as exc:
                last_error = exc
                logger.warning("reminder_channel_failed", reminder_id=reminder.id,
                               channel=channel, error=str(exc))
                continue
            logger.info("reminder_sent", reminder_id=reminder.id, type=reminder.type, channel=channel)
            return channel

        raise last_error

    def _build_variables(self, appointment: Any) -> dict[str, str]:
        store = getattr(appointment, "store", None)
        local_start = to_local(appointment.starts_at, getattr(store, "timezone", None))
        return {
            "clientName": appointment.client.name,
            "serviceName": appointment.service.name if appointment.service else "",
            "appointmentDate": local_start.strftime("%d/%m/%Y"),
            "appointmentTime": local_start.strftime("%H:%M"),
            "price": _format_amount(appointment.price),
            "deposit": _format_amount(appointment.deposit),
        }

    @staticmethod
    def _build_message(channel: str, client: Any, reminder_type: str, template: dict,
                       locale: str, variables: dict[str, str]) -> ChannelMessage:
        if channel == "email":
            return ChannelMessage(
                channel="email",
                to=client.email,
                locale=locale,
                subject=render(template["subject"], variables),
                html=render(template["html"], variables, escape=True),
                text=render(template["text"], variables),
            )
        return ChannelMessage(
            channel=channel,
            to=client.phone,
            locale=locale,
            text=render(template["fallback_text"], variables),
            template_name=template["whatsapp_template"] if channel == "whatsapp" else None,
            template_parameters=template_parameters(reminder_type, variables) if channel == "whatsapp" else [],
        )

    # ---------- Confirmation ----------

    async def _get_or_create_confirmation(self, appointment: Any, now: datetime) -> Any:
        existing = await self.store.find_open_confirmation(appointment.id, now)
        if existing is not None:
            return existing

        return await self.store.create_confirmation(
            appointment_id=appointment.id,
            token=secrets.token_urlsafe(24),
            expires_at=self._confirmation_expiry(to_utc_aware(appointment.starts_at), now),
        )

    def _confirmation_expiry(self, starts_at: datetime, now: datetime) -> datetime:
        expires_at = starts_at - timedelta(hours=self.settings.CONFIRMATION_EXPIRY_HOURS)
        return expires_at if expires_at > now else starts_at

    @staticmethod
    def _check_confirmation(confirmation: Any, appointment: Any, now: datetime) -> Optional[str]:
        if confirmation is None:
            return INVALID_TOKEN
        if confirmation.confirmed:
            return ALREADY_CONFIRMED
        if now > to_utc_aware(confirmation.expires_at):
            return TOKEN_EXPIRED
        # Links already out must not revive a cancelled or finished booking
        if appointment is None or appointment.status in INACTIVE_STATUSES:
            return APPOINTMENT_INACTIVE
        return None

    async def confirm_appointment(self, token: str) -> ConfirmationResult:
        now = self.clock()
        try:
            confirmation = await self.store.find_confirmation(token)
            appointment = None
            if confirmation is not None:
                appointment = await self.store.get_appointment(confirmation.appointment_id)
            failure = self._check_confirmation(confirmation, appointment, now)
            if failure:
                logger.info("confirmation_rejected", reason=failure)
                return ConfirmationResult(success=False, error=failure)

            try:
                await self.store.mark_confirmation_confirmed(confirmation.id, now)
            except LookupError:
                return ConfirmationResult(success=False, error=ALREADY_CONFIRMED)

            appointment = await self.store.set_appointment_status(
                confirmation.appointment_id, AppointmentStatus.CONFIRMED.value
            )
        except SQLAlchemyError as e:
            log_error(e, {"component": "confirmation"})
            return ConfirmationResult(success=False, error=f"Failed to confirm appointment: {e}")

        logger.info("appointment_confirmed", appointment_id=confirmation.appointment_id)
        return ConfirmationResult(success=True, appointment=appointment)

    async def validate_confirmation_token(self, token: str) -> ConfirmationResult:
        """Same checks as confirm_appointment, without writing anything."""
        now = self.clock()
        try:
            confirmation = await self.store.find_confirmation(token)
            appointment = None
            if confirmation is not None:
                appointment = await self.store.get_appointment(confirmation.appointment_id)
            failure = self._check_confirmation(confirmation, appointment, now)
        except SQLAlchemyError as e:
            raise ServiceError(f"Failed to validate confirmation token: {e}") from e
        return ConfirmationResult(success=failure is None, appointment=appointment, error=failure)

    # ---------- Cancellation ----------

    async def cancel_appointment_reminders(self, appointment_id: str) -> int:
        """Close every unsent reminder of the appointment. Sent ones are left alone."""
        try:
            cancelled = await self.store.cancel_pending_reminders(
                appointment_id, self.clock(), APPOINTMENT_CANCELLED
            )
        except SQLAlchemyError as e:
            raise ServiceError(f"Failed to cancel appointment reminders: {e}") from e
        logger.info("reminders_cancelled", appointment_id=appointment_id, count=cancelled)
        return cancelled

    async def get_appointment_reminders(self, appointment_id: str) -> Sequence[Any]:
        try:
            return await self.store.list_appointment_reminders(appointment_id)
        except SQLAlchemyError as e:
            raise ServiceError(f"Failed to get appointment reminders: {e}") from e

    # ---------- Statistics ----------

    async def get_reminder_stats(self, store_id: str, start: datetime, end: datetime) -> ReminderStats:
        """
        Counts over reminders created in [start, end] for a store.

        sent means delivered without error; failed means any row carrying an
        error, skips included.
        """
        start, end = to_utc_aware(start), to_utc_aware(end)
        if start > end:
            raise ValidationError("startDate must be before endDate", field="startDate")
        try:
            rows = await self.store.list_reminders_for_store(store_id, start, end)
        except SQLAlchemyError as e:
            raise ServiceError(f"Failed to get reminder stats: {e}") from e

        by_type = {rtype.value: ReminderTypeStats() for rtype in ReminderType}
        total_sent = total_failed = 0
        for row in rows:
            bucket = by_type.setdefault(row.type, ReminderTypeStats())
            bucket.scheduled += 1
            if row.sent and row.error is None:
                total_sent += 1
                bucket.sent += 1
            if row.error is not None:
                total_failed += 1
                bucket.failed += 1

        total = len(rows)
        success_rate = math.floor(total_sent * 100 / total + 0.5) if total else 0
        return ReminderStats(
            total_scheduled=total,
            total_sent=total_sent,
            total_failed=total_failed,
            success_rate=success_rate,
            by_type=by_type,
        )
