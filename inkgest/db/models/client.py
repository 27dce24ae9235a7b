# inkgest/db/models/client.py

from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from inkgest.db.session import Base

class Client(Base):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    email: Mapped[str | None] = mapped_column(sa.String(255))
    phone: Mapped[str | None] = mapped_column(sa.String(32))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    preferences: Mapped[Optional["CommunicationPreference"]] = relationship(
        back_populates="client",
        cascade="all, delete-orphan",
        uselist=False,
    )


class CommunicationPreference(Base):
    """Per-client channel opt-ins. Missing row means defaults."""

    __tablename__ = "communication_preferences"

    client_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("clients.id", ondelete="CASCADE"), primary_key=True)
    whatsapp_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    email_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    sms_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    appointment_reminders: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    preferred_language: Mapped[str] = mapped_column(sa.String(8), nullable=False, default="es")
    preferred_channel: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="whatsapp")
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    client: Mapped["Client"] = relationship(back_populates="preferences")
