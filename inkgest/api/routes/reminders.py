# inkgest/api/routes/reminders.py

from __future__ import annotations
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from inkgest.api.deps import get_reminder_service, require_cron_secret
from inkgest.schemas.base import envelope
from inkgest.schemas.reminder import ReminderScheduleOut, ScheduleRemindersRequest
from inkgest.services.reminders import ReminderService

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.post("")
async def schedule_reminders(payload: ScheduleRemindersRequest,
                             reminders: ReminderService = Depends(get_reminder_service)):
    rows = await reminders.schedule_appointment_reminders(str(payload.appointment_id))
    return envelope([ReminderScheduleOut.model_validate(r) for r in rows])


@router.put("", dependencies=[Depends(require_cron_secret)])
async def process_reminders(reminders: ReminderService = Depends(get_reminder_service)):
    """Dispatch pass, invoked by the external scheduler."""
    summary = await reminders.process_pending_reminders()
    return envelope(summary)


@router.get("/stats")
async def reminder_stats(
    store_id: UUID = Query(..., alias="storeId"),
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    reminders: ReminderService = Depends(get_reminder_service),
):
    stats = await reminders.get_reminder_stats(str(store_id), start_date, end_date)
    return envelope(stats)


@router.get("/{appointment_id}")
async def appointment_reminders(appointment_id: str,
                                reminders: ReminderService = Depends(get_reminder_service)):
    rows = await reminders.get_appointment_reminders(appointment_id)
    return envelope([ReminderScheduleOut.model_validate(r) for r in rows])


@router.post("/{appointment_id}/cancel")
async def cancel_reminders(appointment_id: str,
                           reminders: ReminderService = Depends(get_reminder_service)):
    cancelled = await reminders.cancel_appointment_reminders(appointment_id)
    return envelope({"cancelled": cancelled})
