# inkgest/api/routes/appointments.py

from __future__ import annotations
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from inkgest.api.deps import get_appointment_service, get_reminder_service
from inkgest.db.models.appointment import AppointmentStatus
from inkgest.schemas.appointment import AppointmentCreate, AppointmentUpdate, appointment_out
from inkgest.schemas.base import envelope
from inkgest.services.appointments import AppointmentService
from inkgest.services.reminders import ReminderService

router = APIRouter(prefix="/appointments", tags=["appointments"])


# -------- Client confirmation links (public) --------

@router.get("/confirm/{token}")
async def check_confirmation(token: str, reminders: ReminderService = Depends(get_reminder_service)):
    result = await reminders.validate_confirmation_token(token)
    data = {
        "valid": result.success,
        "appointment": appointment_out(result.appointment).model_dump(mode="json", by_alias=True)
        if result.appointment is not None else None,
        "error": result.error,
    }
    return envelope(data)


@router.post("/confirm/{token}")
async def confirm_appointment(token: str, reminders: ReminderService = Depends(get_reminder_service)):
    result = await reminders.confirm_appointment(token)
    if not result.success:
        return JSONResponse(envelope(success=False, error=result.error), status_code=400)
    return envelope(appointment_out(result.appointment))


# -------- Appointment CRUD --------

@router.post("", status_code=201)
async def create_appointment(payload: AppointmentCreate,
                             service: AppointmentService = Depends(get_appointment_service)):
    appt = await service.create_appointment(payload)
    return envelope(appointment_out(appt))


@router.get("")
async def list_appointments(
    store_id: UUID = Query(..., alias="storeId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    artist_id: Optional[UUID] = Query(None, alias="artistId"),
    client_id: Optional[UUID] = Query(None, alias="clientId"),
    status: Optional[AppointmentStatus] = Query(None),
    service: AppointmentService = Depends(get_appointment_service),
):
    rows = await service.list_store_appointments(
        str(store_id),
        start_date=start_date,
        end_date=end_date,
        artist_id=str(artist_id) if artist_id else None,
        client_id=str(client_id) if client_id else None,
        status=status.value if status else None,
    )
    return envelope([appointment_out(r) for r in rows])


@router.get("/{appointment_id}")
async def get_appointment(appointment_id: str, service: AppointmentService = Depends(get_appointment_service)):
    return envelope(appointment_out(await service.get_appointment(appointment_id)))


@router.put("/{appointment_id}")
async def update_appointment(appointment_id: str, payload: AppointmentUpdate,
                             service: AppointmentService = Depends(get_appointment_service)):
    appt = await service.update_appointment(appointment_id, payload)
    return envelope(appointment_out(appt))


@router.delete("/{appointment_id}")
async def cancel_appointment(
    appointment_id: str,
    reason: Optional[str] = Query(None, max_length=500),
    service: AppointmentService = Depends(get_appointment_service),
):
    appt = await service.cancel_appointment(appointment_id, reason)
    return envelope(appointment_out(appt))
