# inkgest/db/models/appointment.py

from __future__ import annotations
import enum
import uuid
from datetime import datetime, timezone
from typing import Optional
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from inkgest.db.session import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Statuses that no longer block the artist/room and never get reminders
INACTIVE_STATUSES = (
    AppointmentStatus.CANCELLED.value,
    AppointmentStatus.COMPLETED.value,
    AppointmentStatus.NO_SHOW.value,
)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        sa.Index("ix_appointments_store_id_starts_at", "store_id", "starts_at"),
        sa.Index("ix_appointments_artist_id", "artist_id"),
        sa.Index("ix_appointments_client_id", "client_id"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False)
    client_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    artist_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("artists.id"), nullable=False)
    service_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("services.id"), nullable=False)
    room_id: Mapped[str | None] = mapped_column(sa.String(36), sa.ForeignKey("rooms.id", ondelete="SET NULL"))

    # Store as timezone-aware UTC
    starts_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=AppointmentStatus.SCHEDULED.value)
    notes: Mapped[str | None] = mapped_column(sa.Text)
    price: Mapped[float] = mapped_column(sa.Numeric(10, 2, asdecimal=False), nullable=False)
    deposit: Mapped[float | None] = mapped_column(sa.Numeric(10, 2, asdecimal=False))

    google_event_id: Mapped[str | None] = mapped_column(sa.String(255))
    cancelled_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relations
    store: Mapped["Store"] = relationship()
    client: Mapped["Client"] = relationship()
    artist: Mapped["Artist"] = relationship()
    service: Mapped["Service"] = relationship()
    room: Mapped[Optional["Room"]] = relationship()
    reminders: Mapped[list["ReminderSchedule"]] = relationship(
        back_populates="appointment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def mark_as_cancelled(self, reason: str | None = None):
        self.status = AppointmentStatus.CANCELLED.value
        self.cancelled_at = datetime.now(timezone.utc)
        if reason:
            self.notes = f"Cancelled: {reason}" if not self.notes else f"{self.notes}\nCancelled: {reason}"
