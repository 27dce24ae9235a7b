# inkgest/db/models/reminder.py

from __future__ import annotations
import enum
import uuid
from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from inkgest.db.session import Base


class ReminderType(str, enum.Enum):
    HOURS_24 = "24h"
    HOURS_2 = "2h"
    CONFIRMATION = "confirmation"


class ReminderSchedule(Base):
    __tablename__ = "reminder_schedules"
    __table_args__ = (
        # One row per (appointment, type); rescheduling updates in place
        sa.UniqueConstraint("appointment_id", "type", name="uq_reminder_schedules_appointment_type"),
        sa.Index("ix_reminder_schedules_due", "sent", "scheduled_for"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    appointment_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    scheduled_for: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    sent: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    sent_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
    error: Mapped[str | None] = mapped_column(sa.Text)
    retry_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

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

    appointment: Mapped["Appointment"] = relationship(back_populates="reminders")


class AppointmentConfirmation(Base):
    """Single-use token letting a client confirm without logging in. Never deleted."""

    __tablename__ = "appointment_confirmations"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    appointment_id: Mapped[str] = mapped_column(
        sa.String(36), sa.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    confirmed: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    appointment: Mapped["Appointment"] = relationship()
