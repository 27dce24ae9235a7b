# inkgest/db/models/store.py

from __future__ import annotations
import uuid
from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from inkgest.db.session import Base

class Store(Base):
    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    # IANA zone used when rendering reminder dates for clients
    timezone: Mapped[str] = mapped_column(sa.String(64), nullable=False, default="Europe/Madrid")
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    rooms: Mapped[list["Room"]] = relationship(back_populates="store", cascade="all, delete-orphan")


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(sa.String(80), nullable=False)

    store: Mapped["Store"] = relationship(back_populates="rooms")
