# inkgest/schemas/reminder.py

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from inkgest.schemas.base import CamelModel


class ScheduleRemindersRequest(CamelModel):
    appointment_id: UUID


class ReminderScheduleOut(CamelModel):
    id: str
    appointment_id: str
    type: str
    scheduled_for: datetime
    sent: bool
    sent_at: Optional[datetime] = None
    error: Optional[str] = None
    retry_count: int = 0


class ReminderTypeStats(CamelModel):
    scheduled: int = 0
    sent: int = 0
    failed: int = 0


class ReminderStats(CamelModel):
    total_scheduled: int
    total_sent: int
    total_failed: int
    success_rate: int
    by_type: dict[str, ReminderTypeStats]


class DispatchSummary(CamelModel):
    processed: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class ConfirmationResult(BaseModel):
    """Outcome of confirming (or validating) a confirmation token."""
    success: bool
    appointment: Optional[Any] = Field(None, description="Resolved appointment on success")
    error: Optional[str] = None
