# inkgest/db/models/artist.py

from __future__ import annotations
import uuid
from typing import Any
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from inkgest.db.session import Base

class Artist(Base):
    __tablename__ = "artists"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    email: Mapped[str | None] = mapped_column(sa.String(255))
    # ["traditional", "fine_line", ...]
    specialties: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    # {"monday": [{"start": "10:00", "end": "14:00"}], ...}
    schedule: Mapped[dict[str, Any]] = mapped_column(sa.JSON, nullable=False, default=dict)
    google_calendar_id: Mapped[str | None] = mapped_column(sa.String(255))
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
