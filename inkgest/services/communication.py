# inkgest/services/communication.py
from __future__ import annotations

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from inkgest.core.errors import NotFoundError, ValidationError
from inkgest.core.logging import get_logger
from inkgest.crud.client import get_client, get_preferences, upsert_preferences
from inkgest.schemas.communication import (
    ChannelMessage,
    CommunicationPreferences,
    CommunicationPreferencesUpdate,
)
from inkgest.services.channels import MessagingGateway

logger = get_logger(__name__)


class NotificationSender(Protocol):
    async def get_communication_preferences(self, client_id: str) -> CommunicationPreferences: ...

    async def send_channel_message(self, client_id: str, payload: ChannelMessage) -> Any: ...


class CommunicationService:
    """Client preferences plus delivery over the shared gateway."""

    def __init__(self, db: AsyncSession, gateway: MessagingGateway):
        self.db = db
        self.gateway = gateway

    async def get_communication_preferences(self, client_id: str) -> CommunicationPreferences:
        prefs = await get_preferences(self.db, client_id)
        if prefs is None:
            return CommunicationPreferences()
        return CommunicationPreferences.model_validate(prefs)

    async def update_communication_preferences(
        self, client_id: str, data: CommunicationPreferencesUpdate
    ) -> CommunicationPreferences:
        if await get_client(self.db, client_id) is None:
            raise NotFoundError("Client")
        prefs = await upsert_preferences(self.db, client_id, data.model_dump(exclude_unset=True, exclude_none=True))
        logger.info("communication_preferences_updated", client_id=client_id)
        return CommunicationPreferences.model_validate(prefs)

    async def send_channel_message(self, client_id: str, payload: ChannelMessage) -> Any:
        logger.debug("channel_message", client_id=client_id, channel=payload.channel)
        if payload.channel == "whatsapp":
            return await self.gateway.send_whatsapp(
                payload.to,
                payload.text,
                template_name=payload.template_name,
                language=payload.locale,
                parameters=payload.template_parameters,
            )
        if payload.channel == "sms":
            return await self.gateway.send_sms(payload.to, payload.text)
        if payload.channel == "email":
            return await self.gateway.send_email(
                payload.to,
                payload.subject or "",
                payload.html or payload.text,
                payload.text,
            )
        raise ValidationError(f"Unsupported channel: {payload.channel}", field="channel")
