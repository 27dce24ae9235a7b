# inkgest/services/appointments.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from inkgest.core.errors import NotFoundError, ValidationError, log_error
from inkgest.core.logging import get_logger
from inkgest.crud.appointment import (
    create_appointment,
    find_conflicting_appointment,
    get_appointment,
    get_artist,
    get_client,
    get_room,
    get_service,
    list_store_appointments,
    update_appointment,
)
from inkgest.db.models.appointment import Appointment, AppointmentStatus, INACTIVE_STATUSES
from inkgest.schemas.appointment import AppointmentCreate, AppointmentUpdate
from inkgest.services.google_calendar import (
    create_calendar_event,
    delete_calendar_event,
    update_calendar_event,
)
from inkgest.services.reminders import ReminderService
from inkgest.utils.timezone import to_utc_aware, utcnow

logger = get_logger(__name__)

# Status changes that close pending reminders
REMINDER_STOP_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.NO_SHOW.value)


def _slot(starts_at: datetime, ends_at: datetime) -> str:
    return f"{to_utc_aware(starts_at):%d/%m/%Y %H:%M} to {to_utc_aware(ends_at):%H:%M} UTC"


def _event_text(appt: Appointment) -> tuple[str, str]:
    service = appt.service.name if appt.service else "Appointment"
    client = appt.client.name if appt.client else ""
    summary = f"{service} - {client}" if client else service
    lines = [
        f"Client: {client}",
        f"Artist: {appt.artist.name if appt.artist else ''}",
        f"Price: {appt.price}",
    ]
    if appt.deposit:
        lines.append(f"Deposit: {appt.deposit}")
    if appt.notes:
        lines.append(f"Notes: {appt.notes}")
    return summary, "\n".join(lines)


class AppointmentService:
    """Appointment CRUD; keeps reminders and the calendar in step with each change."""

    def __init__(self, db: AsyncSession, reminders: ReminderService):
        self.db = db
        self.reminders = reminders

    async def _check_conflicts(self, *, starts_at: datetime, ends_at: datetime, artist_id: str,
                               room_id: Optional[str], exclude_id: Optional[str] = None) -> None:
        conflict = await find_conflicting_appointment(
            self.db,
            starts_at=starts_at,
            ends_at=ends_at,
            artist_id=artist_id,
            room_id=room_id,
            exclude_id=exclude_id,
        )
        if conflict is None:
            return
        if conflict.artist_id == artist_id:
            name = conflict.artist.name if conflict.artist else artist_id
            raise ValidationError(
                f"Artist {name} is already booked from {_slot(conflict.starts_at, conflict.ends_at)}",
                field="artistId",
            )
        name = conflict.room.name if conflict.room else room_id
        raise ValidationError(
            f"Room {name} is already booked from {_slot(conflict.starts_at, conflict.ends_at)}",
            field="roomId",
        )

    async def _schedule_reminders(self, appointment_id: str) -> None:
        try:
            await self.reminders.schedule_appointment_reminders(appointment_id)
        except Exception as e:
            # The booking stands even if reminders could not be queued
            log_error(e, {"component": "reminder_scheduling", "appointment_id": appointment_id})

    async def _cancel_reminders(self, appointment_id: str) -> None:
        try:
            await self.reminders.cancel_appointment_reminders(appointment_id)
        except Exception as e:
            log_error(e, {"component": "reminder_cancellation", "appointment_id": appointment_id})

    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        artist = await get_artist(self.db, str(data.artist_id))
        if artist is None:
            raise NotFoundError("Artist")
        if await get_client(self.db, str(data.client_id)) is None:
            raise NotFoundError("Client")
        if await get_service(self.db, str(data.service_id)) is None:
            raise NotFoundError("Service")
        room_id = str(data.room_id) if data.room_id else None
        if room_id and await get_room(self.db, room_id) is None:
            raise NotFoundError("Room")

        starts_at = to_utc_aware(data.start_time)
        ends_at = to_utc_aware(data.end_time)
        await self._check_conflicts(starts_at=starts_at, ends_at=ends_at,
                                    artist_id=artist.id, room_id=room_id)

        appt = await create_appointment(
            self.db,
            store_id=artist.store_id,
            client_id=str(data.client_id),
            artist_id=artist.id,
            service_id=str(data.service_id),
            room_id=room_id,
            starts_at=starts_at,
            ends_at=ends_at,
            price=data.price,
            deposit=data.deposit,
            notes=data.notes,
        )
        logger.info("appointment_created", appointment_id=appt.id, store_id=appt.store_id)

        await self._schedule_reminders(appt.id)

        summary, description = _event_text(appt)
        event = await create_calendar_event(summary, description, starts_at, ends_at,
                                            calendar_id=artist.google_calendar_id)
        if event:
            appt = await update_appointment(self.db, appt, {"google_event_id": event["event_id"]})
        return appt

    async def get_appointment(self, appointment_id: str) -> Appointment:
        appt = await get_appointment(self.db, appointment_id)
        if appt is None:
            raise NotFoundError("Appointment")
        return appt

    async def list_store_appointments(
        self,
        store_id: str,
        *,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        artist_id: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Sequence[Appointment]:
        return await list_store_appointments(
            self.db,
            store_id=store_id,
            start_utc=to_utc_aware(start_date),
            end_utc=to_utc_aware(end_date),
            artist_id=artist_id,
            client_id=client_id,
            status=status,
        )

    async def update_appointment(self, appointment_id: str, data: AppointmentUpdate) -> Appointment:
        appt = await self.get_appointment(appointment_id)

        values: dict[str, Any] = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "start_time":
                values["starts_at"] = to_utc_aware(value)
            elif field == "end_time":
                values["ends_at"] = to_utc_aware(value)
            elif field == "status":
                values["status"] = value.value if value is not None else appt.status
            elif field.endswith("_id"):
                values[field] = str(value) if value is not None else None
            else:
                values[field] = value

        starts_at = values.get("starts_at", to_utc_aware(appt.starts_at))
        ends_at = values.get("ends_at", to_utc_aware(appt.ends_at))
        if ends_at <= starts_at:
            raise ValidationError("End time must be after start time", field="endTime")

        if "artist_id" in values and await get_artist(self.db, values["artist_id"]) is None:
            raise NotFoundError("Artist")
        if values.get("room_id") and await get_room(self.db, values["room_id"]) is None:
            raise NotFoundError("Room")

        new_status = values.get("status", appt.status)
        slot_changed = any(k in values for k in ("starts_at", "ends_at", "artist_id", "room_id"))
        if slot_changed and new_status not in INACTIVE_STATUSES:
            await self._check_conflicts(
                starts_at=starts_at,
                ends_at=ends_at,
                artist_id=values.get("artist_id", appt.artist_id),
                room_id=values.get("room_id", appt.room_id),
                exclude_id=appt.id,
            )

        old_status = appt.status
        old_start = to_utc_aware(appt.starts_at)
        if new_status == AppointmentStatus.CANCELLED.value and old_status != new_status:
            values["cancelled_at"] = utcnow()

        appt = await update_appointment(self.db, appt, values)
        logger.info("appointment_updated", appointment_id=appt.id, fields=sorted(values))

        if new_status in REMINDER_STOP_STATUSES and old_status != new_status:
            await self._cancel_reminders(appt.id)
        elif starts_at != old_start:
            await self._cancel_reminders(appt.id)
            await self._schedule_reminders(appt.id)

        if appt.google_event_id:
            if new_status == AppointmentStatus.CANCELLED.value:
                await delete_calendar_event(appt.google_event_id, appt.artist.google_calendar_id)
            elif slot_changed:
                summary, description = _event_text(appt)
                await update_calendar_event(appt.google_event_id, summary, description,
                                            starts_at, ends_at, appt.artist.google_calendar_id)
        return appt

    async def cancel_appointment(self, appointment_id: str, reason: Optional[str] = None) -> Appointment:
        appt = await self.get_appointment(appointment_id)
        appt.mark_as_cancelled(reason)
        appt = await update_appointment(self.db, appt, {})
        logger.info("appointment_cancelled", appointment_id=appt.id)

        await self.reminders.cancel_appointment_reminders(appt.id)

        if appt.google_event_id:
            await delete_calendar_event(appt.google_event_id, appt.artist.google_calendar_id)
        return appt
