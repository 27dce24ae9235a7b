# inkgest/db/models/service.py

from __future__ import annotations
import uuid
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from inkgest.db.session import Base

class Service(Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    store_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text)
    duration_min: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=60)
    price: Mapped[float] = mapped_column(sa.Numeric(10, 2, asdecimal=False), nullable=False)
    category: Mapped[str] = mapped_column(sa.String(32), nullable=False, default="TATTOO")
    requires_consent: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
