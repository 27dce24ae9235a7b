# inkgest/schemas/communication.py

from typing import Any, Literal, Optional

from pydantic import Field

from inkgest.schemas.base import CamelModel

Channel = Literal["whatsapp", "sms", "email"]
Locale = Literal["es", "ca", "en"]

# Fallback order after the preferred channel
CHANNEL_PRIORITY: tuple[str, ...] = ("whatsapp", "sms", "email")


class CommunicationPreferences(CamelModel):
    whatsapp_enabled: bool = True
    email_enabled: bool = True
    sms_enabled: bool = False
    appointment_reminders: bool = True
    preferred_language: str = "es"
    preferred_channel: Channel = "whatsapp"

    def is_enabled(self, channel: str) -> bool:
        return bool(getattr(self, f"{channel}_enabled", False))

    def channel_order(self) -> list[str]:
        """Preferred channel first, then the other enabled ones."""
        order = [self.preferred_channel] + [c for c in CHANNEL_PRIORITY if c != self.preferred_channel]
        return [c for c in order if self.is_enabled(c)]


class CommunicationPreferencesUpdate(CamelModel):
    whatsapp_enabled: Optional[bool] = None
    email_enabled: Optional[bool] = None
    sms_enabled: Optional[bool] = None
    appointment_reminders: Optional[bool] = None
    preferred_language: Optional[Locale] = None
    preferred_channel: Optional[Channel] = None


class ChannelMessage(CamelModel):
    """One outbound message on one channel."""
    channel: Channel
    to: str
    locale: str = "es"
    text: str
    template_name: Optional[str] = None
    template_parameters: list[str] = Field(default_factory=list)
    subject: Optional[str] = None
    html: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
