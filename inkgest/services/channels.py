# inkgest/services/channels.py
"""
Outbound channel senders: WhatsApp Cloud API, Twilio SMS and Resend email.

One ``MessagingGateway`` is built at startup and shared by every request.
Every send raises on failure so callers can fall back to another channel.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx
import phonenumbers
import resend
from phonenumbers import PhoneNumberFormat
from twilio.rest import Client as TwilioClient

from inkgest.core.config import Settings, settings as default_settings
from inkgest.core.errors import ServiceError, ValidationError
from inkgest.core.logging import get_logger

logger = get_logger(__name__)


def normalize_phone(raw: str, region: str = "ES") -> str:
    """E.164 form of a client phone number."""
    try:
        parsed = phonenumbers.parse(raw, region)
    except phonenumbers.NumberParseException as e:
        raise ValidationError(f"Invalid phone number: {raw}", field="phone") from e
    if not (phonenumbers.is_valid_number(parsed) or phonenumbers.is_possible_number(parsed)):
        raise ValidationError(f"Invalid phone number: {raw}", field="phone")
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


class MessagingGateway:
    def __init__(self, settings: Settings = default_settings,
                 http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._http_client = http_client
        self._twilio: Optional[TwilioClient] = None
        if settings.RESEND_API_KEY:
            resend.api_key = settings.RESEND_API_KEY

    # ---------- WhatsApp ----------

    @property
    def whatsapp_configured(self) -> bool:
        return bool(self.settings.WHATSAPP_ACCESS_TOKEN and self.settings.WHATSAPP_PHONE_NUMBER_ID)

    async def _post_whatsapp(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.whatsapp_configured:
            raise ServiceError("WhatsApp API credentials not configured")

        url = f"{self.settings.WHATSAPP_API_URL.rstrip('/')}/{self.settings.WHATSAPP_PHONE_NUMBER_ID}/messages"
        headers = {"Authorization": f"Bearer {self.settings.WHATSAPP_ACCESS_TOKEN}"}
        body = {"messaging_product": "whatsapp", **payload}

        if self._http_client is not None:
            response = await self._http_client.post(url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                response = await client.post(url, json=body, headers=headers)

        if response.status_code >= 400:
            try:
                detail = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                detail = response.text
            raise ServiceError(f"WhatsApp API error ({response.status_code}): {detail}")
        return response.json()

    async def send_whatsapp(self, to: str, text: str, *, template_name: Optional[str] = None,
                            language: str = "es", parameters: Optional[list[str]] = None) -> Dict[str, Any]:
        """Send an approved template, falling back to a plain text message."""
        phone = normalize_phone(to, self.settings.DEFAULT_REGION).lstrip("+")

        if template_name:
            try:
                result = await self._post_whatsapp({
                    "to": phone,
                    "type": "template",
                    "template": {
                        "name": template_name,
                        "language": {"code": language},
                        "components": [{
                            "type": "body",
                            "parameters": [{"type": "text", "text": p} for p in (parameters or [])],
                        }],
                    },
                })
                logger.info("whatsapp_template_sent", template=template_name, to=phone)
                return result
            except Exception as e:
                logger.warning("whatsapp_template_failed", template=template_name, error=str(e))

        result = await self._post_whatsapp({"to": phone, "type": "text", "text": {"body": text}})
        logger.info("whatsapp_text_sent", to=phone)
        return result

    # ---------- SMS ----------

    def _twilio_client(self) -> TwilioClient:
        if not (self.settings.TWILIO_ACCOUNT_SID and self.settings.TWILIO_AUTH_TOKEN and self.settings.TWILIO_FROM_NUMBER):
            raise ServiceError("Twilio SMS credentials not configured")
        if self._twilio is None:
            self._twilio = TwilioClient(self.settings.TWILIO_ACCOUNT_SID, self.settings.TWILIO_AUTH_TOKEN)
        return self._twilio

    async def send_sms(self, to: str, body: str) -> Dict[str, Any]:
        client = self._twilio_client()
        phone = normalize_phone(to, self.settings.DEFAULT_REGION)
        # Twilio's client is blocking
        message = await asyncio.to_thread(
            client.messages.create,
            body=body,
            from_=self.settings.TWILIO_FROM_NUMBER,
            to=phone,
        )
        logger.info("sms_sent", sid=message.sid, to=phone)
        return {"sid": message.sid}

    # ---------- Email ----------

    async def send_email(self, to: str, subject: str, html: str, text: Optional[str] = None) -> Dict[str, Any]:
        if not self.settings.RESEND_API_KEY:
            raise ServiceError("Email service not configured")

        email_data: Dict[str, Any] = {
            "from": self.settings.EMAIL_FROM,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            email_data["text"] = text

        try:
            response = await asyncio.to_thread(resend.Emails.send, email_data)
        except Exception as e:
            raise ServiceError(f"Failed to send email: {e}") from e

        logger.info("email_sent", subject=subject[:60])
        return dict(response) if response else {}
