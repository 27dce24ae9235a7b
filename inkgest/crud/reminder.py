# inkgest/crud/reminder.py
"""
Record store used by the reminder workflow.

``ReminderStore`` is the contract the engine depends on; ``SqlReminderStore``
is the SQLAlchemy implementation used in production. Tests provide an
in-memory implementation of the same protocol.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from inkgest.db.models.appointment import Appointment
from inkgest.db.models.reminder import AppointmentConfirmation, ReminderSchedule


class ReminderStore(Protocol):
    async def get_appointment(self, appointment_id: str) -> Optional[Any]: ...

    async def find_reminder(self, appointment_id: str, reminder_type: str) -> Optional[Any]: ...

    async def create_reminder(self, *, appointment_id: str, reminder_type: str,
                              scheduled_for: datetime) -> Any: ...

    async def update_reminder(self, reminder_id: str, **values: Any) -> Any: ...

    async def list_due_reminders(self, now: datetime, *,
                                 max_retries: Optional[int] = None) -> Sequence[Any]: ...

    async def cancel_pending_reminders(self, appointment_id: str, now: datetime, error: str) -> int: ...

    async def list_reminders_for_store(self, store_id: str, start: datetime,
                                       end: datetime) -> Sequence[Any]: ...

    async def list_appointment_reminders(self, appointment_id: str) -> Sequence[Any]: ...

    async def find_confirmation(self, token: str) -> Optional[Any]: ...

    async def find_open_confirmation(self, appointment_id: str, now: datetime) -> Optional[Any]: ...

    async def create_confirmation(self, *, appointment_id: str, token: str,
                                  expires_at: datetime) -> Any: ...

    async def update_confirmation(self, confirmation_id: str, **values: Any) -> Any: ...

    async def mark_confirmation_confirmed(self, confirmation_id: str, confirmed_at: datetime) -> Any: ...

    async def set_appointment_status(self, appointment_id: str, status: str) -> Optional[Any]: ...


def _appointment_details():
    return (
        selectinload(Appointment.client),
        selectinload(Appointment.service),
        selectinload(Appointment.artist),
        selectinload(Appointment.store),
    )


class SqlReminderStore:
    """ReminderStore backed by an AsyncSession. Every write commits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        res = await self.db.execute(
            sa.select(Appointment)
            .where(Appointment.id == appointment_id)
            .options(*_appointment_details())
        )
        return res.scalar_one_or_none()

    async def find_reminder(self, appointment_id: str, reminder_type: str) -> Optional[ReminderSchedule]:
        res = await self.db.execute(
            sa.select(ReminderSchedule).where(
                ReminderSchedule.appointment_id == appointment_id,
                ReminderSchedule.type == reminder_type,
            )
        )
        return res.scalar_one_or_none()

    async def create_reminder(self, *, appointment_id: str, reminder_type: str,
                              scheduled_for: datetime) -> ReminderSchedule:
        reminder = ReminderSchedule(
            appointment_id=appointment_id,
            type=reminder_type,
            scheduled_for=scheduled_for,
            sent=False,
            retry_count=0,
        )
        self.db.add(reminder)
        await self.db.commit()
        await self.db.refresh(reminder)
        return reminder

    async def update_reminder(self, reminder_id: str, **values: Any) -> ReminderSchedule:
        reminder = await self.db.get(ReminderSchedule, reminder_id)
        if reminder is None:
            raise LookupError(f"Reminder {reminder_id} vanished")
        for field, value in values.items():
            setattr(reminder, field, value)
        await self.db.commit()
        return reminder

    async def list_due_reminders(self, now: datetime, *,
                                 max_retries: Optional[int] = None) -> Sequence[ReminderSchedule]:
        q = (
            sa.select(ReminderSchedule)
            .where(ReminderSchedule.sent.is_(False), ReminderSchedule.scheduled_for <= now)
            .options(
                selectinload(ReminderSchedule.appointment).selectinload(Appointment.client),
                selectinload(ReminderSchedule.appointment).selectinload(Appointment.service),
                selectinload(ReminderSchedule.appointment).selectinload(Appointment.store),
            )
            .order_by(ReminderSchedule.scheduled_for.asc())
        )
        if max_retries is not None:
            q = q.where(ReminderSchedule.retry_count < max_retries)
        res = await self.db.execute(q)
        return res.scalars().all()

    async def cancel_pending_reminders(self, appointment_id: str, now: datetime, error: str) -> int:
        res = await self.db.execute(
            sa.update(ReminderSchedule)
            .where(
                ReminderSchedule.appointment_id == appointment_id,
                ReminderSchedule.sent.is_(False),
            )
            .values(sent=True, sent_at=now, error=error, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return res.rowcount or 0

    async def list_reminders_for_store(self, store_id: str, start: datetime,
                                       end: datetime) -> Sequence[ReminderSchedule]:
        res = await self.db.execute(
            sa.select(ReminderSchedule)
            .join(Appointment, Appointment.id == ReminderSchedule.appointment_id)
            .where(
                Appointment.store_id == store_id,
                ReminderSchedule.created_at >= start,
                ReminderSchedule.created_at <= end,
            )
        )
        return res.scalars().all()

    async def list_appointment_reminders(self, appointment_id: str) -> Sequence[ReminderSchedule]:
        res = await self.db.execute(
            sa.select(ReminderSchedule)
            .where(ReminderSchedule.appointment_id == appointment_id)
            .order_by(ReminderSchedule.scheduled_for.asc())
        )
        return res.scalars().all()

    async def find_confirmation(self, token: str) -> Optional[AppointmentConfirmation]:
        res = await self.db.execute(
            sa.select(AppointmentConfirmation).where(AppointmentConfirmation.token == token)
        )
        return res.scalar_one_or_none()

    async def find_open_confirmation(self, appointment_id: str, now: datetime) -> Optional[AppointmentConfirmation]:
        res = await self.db.execute(
            sa.select(AppointmentConfirmation)
            .where(
                AppointmentConfirmation.appointment_id == appointment_id,
                AppointmentConfirmation.confirmed.is_(False),
                AppointmentConfirmation.expires_at > now,
            )
            .order_by(AppointmentConfirmation.created_at.desc())
            .limit(1)
        )
        return res.scalar_one_or_none()

    async def create_confirmation(self, *, appointment_id: str, token: str,
                                  expires_at: datetime) -> AppointmentConfirmation:
        confirmation = AppointmentConfirmation(
            appointment_id=appointment_id,
            token=token,
            confirmed=False,
            expires_at=expires_at,
        )
        self.db.add(confirmation)
        await self.db.commit()
        await self.db.refresh(confirmation)
        return confirmation

    async def update_confirmation(self, confirmation_id: str, **values: Any) -> AppointmentConfirmation:
        confirmation = await self.db.get(AppointmentConfirmation, confirmation_id)
        if confirmation is None:
            raise LookupError(f"Confirmation {confirmation_id} vanished")
        for field, value in values.items():
            setattr(confirmation, field, value)
        await self.db.commit()
        return confirmation

    async def mark_confirmation_confirmed(self, confirmation_id: str,
                                          confirmed_at: datetime) -> AppointmentConfirmation:
        # Only flips tokens that are still unconfirmed
        res = await self.db.execute(
            sa.update(AppointmentConfirmation)
            .where(
                AppointmentConfirmation.id == confirmation_id,
                AppointmentConfirmation.confirmed.is_(False),
            )
            .values(confirmed=True, confirmed_at=confirmed_at)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        if not res.rowcount:
            raise LookupError("Appointment already confirmed")
        return await self.db.get(AppointmentConfirmation, confirmation_id)

    async def set_appointment_status(self, appointment_id: str, status: str) -> Optional[Appointment]:
        appt = await self.get_appointment(appointment_id)
        if appt is None:
            return None
        appt.status = status
        await self.db.commit()
        return appt
