# inkgest/crud/appointment.py

from __future__ import annotations
from datetime import datetime
from typing import Any, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from inkgest.db.models.appointment import Appointment, AppointmentStatus, INACTIVE_STATUSES
from inkgest.db.models.artist import Artist
from inkgest.db.models.client import Client
from inkgest.db.models.service import Service
from inkgest.db.models.store import Room


async def get_artist(db: AsyncSession, artist_id: str) -> Optional[Artist]:
    return await db.get(Artist, artist_id)


async def get_client(db: AsyncSession, client_id: str) -> Optional[Client]:
    return await db.get(Client, client_id)


async def get_service(db: AsyncSession, service_id: str) -> Optional[Service]:
    return await db.get(Service, service_id)


async def get_room(db: AsyncSession, room_id: str) -> Optional[Room]:
    return await db.get(Room, room_id)


async def get_appointment(db: AsyncSession, appointment_id: str) -> Optional[Appointment]:
    res = await db.execute(
        sa.select(Appointment)
        .where(Appointment.id == appointment_id)
        .execution_options(populate_existing=True)
        .options(
            selectinload(Appointment.client),
            selectinload(Appointment.artist),
            selectinload(Appointment.service),
            selectinload(Appointment.room),
        )
    )
    return res.scalar_one_or_none()


async def find_conflicting_appointment(
    db: AsyncSession,
    *,
    starts_at: datetime,
    ends_at: datetime,
    artist_id: Optional[str] = None,
    room_id: Optional[str] = None,
    exclude_id: Optional[str] = None,
) -> Optional[Appointment]:
    """First active appointment overlapping [starts_at, ends_at) for the artist or room."""
    if artist_id is None and room_id is None:
        return None

    owner = []
    if artist_id is not None:
        owner.append(Appointment.artist_id == artist_id)
    if room_id is not None:
        owner.append(Appointment.room_id == room_id)

    q = (
        sa.select(Appointment)
        .where(
            sa.or_(*owner),
            Appointment.status.not_in(INACTIVE_STATUSES),
            Appointment.starts_at < ends_at,
            Appointment.ends_at > starts_at,
        )
        .options(selectinload(Appointment.artist), selectinload(Appointment.room))
        .order_by(Appointment.starts_at.asc())
        .limit(1)
    )
    if exclude_id is not None:
        q = q.where(Appointment.id != exclude_id)
    res = await db.execute(q)
    return res.scalar_one_or_none()


async def create_appointment(
    db: AsyncSession,
    *,
    store_id: str,
    client_id: str,
    artist_id: str,
    service_id: str,
    starts_at: datetime,
    ends_at: datetime,
    price: float,
    deposit: Optional[float] = None,
    room_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Appointment:
    appt = Appointment(
        store_id=store_id,
        client_id=client_id,
        artist_id=artist_id,
        service_id=service_id,
        room_id=room_id,
        starts_at=starts_at,
        ends_at=ends_at,
        price=price,
        deposit=deposit,
        notes=notes,
        status=AppointmentStatus.SCHEDULED.value,
    )
    db.add(appt)
    await db.commit()
    return await get_appointment(db, appt.id)


async def update_appointment(db: AsyncSession, appt: Appointment, values: dict[str, Any]) -> Appointment:
    for field, value in values.items():
        setattr(appt, field, value)
    await db.commit()
    return await get_appointment(db, appt.id)


async def list_store_appointments(
    db: AsyncSession,
    *,
    store_id: str,
    start_utc: Optional[datetime] = None,
    end_utc: Optional[datetime] = None,
    artist_id: Optional[str] = None,
    client_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 500,
) -> Sequence[Appointment]:
    q = sa.select(Appointment).where(Appointment.store_id == store_id)
    if start_utc is not None:
        q = q.where(Appointment.starts_at >= start_utc)
    if end_utc is not None:
        q = q.where(Appointment.starts_at <= end_utc)
    if artist_id is not None:
        q = q.where(Appointment.artist_id == artist_id)
    if client_id is not None:
        q = q.where(Appointment.client_id == client_id)
    if status is not None:
        q = q.where(Appointment.status == status)
    q = q.options(
        selectinload(Appointment.client),
        selectinload(Appointment.artist),
        selectinload(Appointment.service),
    ).order_by(Appointment.starts_at.asc()).limit(limit)
    res = await db.execute(q)
    return res.scalars().all()
