# inkgest/schemas/appointment.py

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from inkgest.db.models.appointment import AppointmentStatus
from inkgest.schemas.base import CamelModel
from inkgest.utils.timezone import to_utc_aware


class AppointmentCreate(CamelModel):
    client_id: UUID
    artist_id: UUID
    service_id: UUID
    room_id: Optional[UUID] = None
    start_time: datetime = Field(..., description="ISO8601; naive values are UTC")
    end_time: datetime
    price: float = Field(..., gt=0)
    deposit: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("start_time", "end_time")
    @classmethod
    def times_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_aware(value)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AppointmentUpdate(CamelModel):
    client_id: Optional[UUID] = None
    artist_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    room_id: Optional[UUID] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    price: Optional[float] = Field(None, gt=0)
    deposit: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("start_time", "end_time")
    @classmethod
    def times_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_aware(value)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class PartySummary(CamelModel):
    id: str
    name: str


class AppointmentOut(CamelModel):
    id: str
    store_id: str
    client_id: str
    artist_id: str
    service_id: str
    room_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    price: float
    deposit: Optional[float] = None
    notes: Optional[str] = None
    google_event_id: Optional[str] = None
    client: Optional[PartySummary] = None
    artist: Optional[PartySummary] = None
    service: Optional[PartySummary] = None


def _summary(obj: Any) -> Optional[PartySummary]:
    if obj is None:
        return None
    return PartySummary(id=str(obj.id), name=obj.name)


def appointment_out(appt: Any) -> AppointmentOut:
    """Build the API view of an appointment whose client/artist/service are loaded."""
    return AppointmentOut(
        id=str(appt.id),
        store_id=str(appt.store_id),
        client_id=str(appt.client_id),
        artist_id=str(appt.artist_id),
        service_id=str(appt.service_id),
        room_id=appt.room_id,
        start_time=appt.starts_at,
        end_time=appt.ends_at,
        status=appt.status,
        price=appt.price,
        deposit=appt.deposit,
        notes=appt.notes,
        google_event_id=appt.google_event_id,
        client=_summary(appt.client),
        artist=_summary(appt.artist),
        service=_summary(appt.service),
    )
