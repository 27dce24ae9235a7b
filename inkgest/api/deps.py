# inkgest/api/deps.py
"""
Request-scoped service wiring. Process-wide collaborators (the messaging
gateway) live on app.state; sessions and services are built per request.
"""
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inkgest.core.config import settings
from inkgest.core.errors import AuthenticationError
from inkgest.crud.reminder import SqlReminderStore
from inkgest.db.session import get_session
from inkgest.services.appointments import AppointmentService
from inkgest.services.channels import MessagingGateway
from inkgest.services.communication import CommunicationService
from inkgest.services.reminders import ReminderService


def get_gateway(request: Request) -> MessagingGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = MessagingGateway(settings)
        request.app.state.gateway = gateway
    return gateway


def get_communication_service(
    db: AsyncSession = Depends(get_session),
    gateway: MessagingGateway = Depends(get_gateway),
) -> CommunicationService:
    return CommunicationService(db, gateway)


def get_reminder_service(
    db: AsyncSession = Depends(get_session),
    sender: CommunicationService = Depends(get_communication_service),
) -> ReminderService:
    return ReminderService(SqlReminderStore(db), sender, settings=settings)


def get_appointment_service(
    db: AsyncSession = Depends(get_session),
    reminders: ReminderService = Depends(get_reminder_service),
) -> AppointmentService:
    return AppointmentService(db, reminders)


def require_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Dispatch trigger auth: Authorization: Bearer <CRON_SECRET>."""
    expected = settings.CRON_SECRET
    if not expected or not authorization:
        raise AuthenticationError("Unauthorized")
    if not secrets.compare_digest(authorization, f"Bearer {expected}"):
        raise AuthenticationError("Unauthorized")
