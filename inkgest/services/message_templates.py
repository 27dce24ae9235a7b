# inkgest/services/message_templates.py
"""
Reminder message templates per reminder type and locale.

WhatsApp sends use approved Cloud API templates (body parameters in the
order of ``variables``); the fallback text is used when the template send
fails and for SMS. Placeholders are ``{{name}}``.
"""
from __future__ import annotations

import html
import re
from typing import Any, Dict, Optional

SUPPORTED_LOCALES = ("es", "ca", "en")

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def render(text: str, variables: Dict[str, Any], escape: bool = False) -> str:
    """
    Replace {{name}} placeholders; unknown names are left as they are.
    With ``escape`` the values are HTML-escaped (email bodies).
    """
    def _sub(match: re.Match) -> str:
        key = match.group(1)
        if key in variables and variables[key] is not None:
            value = str(variables[key])
            return html.escape(value) if escape else value
        return match.group(0)

    return _PLACEHOLDER.sub(_sub, text)


def _email_html(title: str, greeting: str, intro: str, rows: list[tuple[str, str]],
                closing: str, button: Optional[str] = None, link_hint: Optional[str] = None) -> str:
    items = "\n".join(f"    <li><strong>{label}:</strong> {value}</li>" for label, value in rows)
    parts = [
        f"<h2>{title}</h2>",
        f"<p>{greeting} {{{{clientName}}}},</p>",
        f"<p>{intro}</p>",
        f"<ul>\n{items}\n</ul>",
    ]
    if button:
        parts.append(
            '<p><a href="{{confirmationUrl}}" style="background-color: #4CAF50; color: white; '
            f'padding: 10px 20px; text-decoration: none; border-radius: 5px;">{button}</a></p>'
        )
    if link_hint:
        parts.append(f"<p>{link_hint} {{{{confirmationUrl}}}}</p>")
    parts.append(f"<p>{closing}</p>")
    return "\n".join(parts)


_LABELS = {
    "es": {"service": "Servicio", "date": "Fecha", "time": "Hora", "price": "Precio"},
    "ca": {"service": "Servei", "date": "Data", "time": "Hora", "price": "Preu"},
    "en": {"service": "Service", "date": "Date", "time": "Time", "price": "Price"},
}


def _rows(locale: str, with_date: bool = True) -> list[tuple[str, str]]:
    labels = _LABELS[locale]
    rows = [(labels["service"], "{{serviceName}}")]
    if with_date:
        rows.append((labels["date"], "{{appointmentDate}}"))
    rows.append((labels["time"], "{{appointmentTime}}"))
    rows.append((labels["price"], "€{{price}}"))
    return rows


REMINDER_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "24h": {
        "variables": ["clientName", "serviceName", "appointmentDate", "appointmentTime", "price"],
        "locales": {
            "es": {
                "whatsapp_template": "appointment_reminder_24h",
                "fallback_text": "Hola {{clientName}}, te recordamos que tienes una cita para {{serviceName}} mañana {{appointmentDate}} a las {{appointmentTime}}. ¡Te esperamos!",
                "subject": "Recordatorio: Cita mañana - {{serviceName}}",
                "html": _email_html("Recordatorio de Cita", "Hola", "Te recordamos que tienes una cita programada para:", _rows("es"), "¡Te esperamos!"),
                "text": "Hola {{clientName}}, te recordamos que tienes una cita para {{serviceName}} el {{appointmentDate}} a las {{appointmentTime}}. Precio: €{{price}}. ¡Te esperamos!",
            },
            "ca": {
                "whatsapp_template": "appointment_reminder_24h_ca",
                "fallback_text": "Hola {{clientName}}, et recordem que tens una cita per {{serviceName}} demà {{appointmentDate}} a les {{appointmentTime}}. T'esperem!",
                "subject": "Recordatori: Cita demà - {{serviceName}}",
                "html": _email_html("Recordatori de Cita", "Hola", "Et recordem que tens una cita programada per:", _rows("ca"), "T'esperem!"),
                "text": "Hola {{clientName}}, et recordem que tens una cita per {{serviceName}} el {{appointmentDate}} a les {{appointmentTime}}. Preu: €{{price}}. T'esperem!",
            },
            "en": {
                "whatsapp_template": "appointment_reminder_24h_en",
                "fallback_text": "Hi {{clientName}}, reminder that you have an appointment for {{serviceName}} tomorrow {{appointmentDate}} at {{appointmentTime}}. See you there!",
                "subject": "Reminder: Appointment tomorrow - {{serviceName}}",
                "html": _email_html("Appointment Reminder", "Hi", "This is a reminder that you have an appointment scheduled for:", _rows("en"), "See you there!"),
                "text": "Hi {{clientName}}, reminder that you have an appointment for {{serviceName}} on {{appointmentDate}} at {{appointmentTime}}. Price: €{{price}}. See you there!",
            },
        },
    },
    "2h": {
        "variables": ["clientName", "serviceName", "appointmentTime", "price"],
        "locales": {
            "es": {
                "whatsapp_template": "appointment_reminder_2h",
                "fallback_text": "Hola {{clientName}}, tu cita para {{serviceName}} es en 2 horas ({{appointmentTime}}). ¡No olvides venir!",
                "subject": "Tu cita es en 2 horas - {{serviceName}}",
                "html": _email_html("¡Tu cita es en 2 horas!", "Hola", "Te recordamos que tu cita es en 2 horas:", _rows("es", with_date=False), "¡Te esperamos!"),
                "text": "Hola {{clientName}}, tu cita para {{serviceName}} es en 2 horas ({{appointmentTime}}). Precio: €{{price}}. ¡Te esperamos!",
            },
            "ca": {
                "whatsapp_template": "appointment_reminder_2h_ca",
                "fallback_text": "Hola {{clientName}}, la teva cita per {{serviceName}} és en 2 hores ({{appointmentTime}}). No oblidis venir!",
                "subject": "La teva cita és en 2 hores - {{serviceName}}",
                "html": _email_html("La teva cita és en 2 hores!", "Hola", "Et recordem que la teva cita és en 2 hores:", _rows("ca", with_date=False), "T'esperem!"),
                "text": "Hola {{clientName}}, la teva cita per {{serviceName}} és en 2 hores ({{appointmentTime}}). Preu: €{{price}}. T'esperem!",
            },
            "en": {
                "whatsapp_template": "appointment_reminder_2h_en",
                "fallback_text": "Hi {{clientName}}, your appointment for {{serviceName}} is in 2 hours ({{appointmentTime}}). Don't forget to come!",
                "subject": "Your appointment is in 2 hours - {{serviceName}}",
                "html": _email_html("Your appointment is in 2 hours!", "Hi", "This is a reminder that your appointment is in 2 hours:", _rows("en", with_date=False), "See you there!"),
                "text": "Hi {{clientName}}, your appointment for {{serviceName}} is in 2 hours ({{appointmentTime}}). Price: €{{price}}. See you there!",
            },
        },
    },
    "confirmation": {
        "variables": ["clientName", "serviceName", "appointmentDate", "appointmentTime", "price", "confirmationUrl"],
        "locales": {
            "es": {
                "whatsapp_template": "appointment_confirmation",
                "fallback_text": "Hola {{clientName}}, por favor confirma tu cita para {{serviceName}} el {{appointmentDate}} a las {{appointmentTime}}. Confirma aquí: {{confirmationUrl}}",
                "subject": "Confirma tu cita - {{serviceName}}",
                "html": _email_html("Confirma tu Cita", "Hola", "Por favor confirma tu cita programada para:", _rows("es"), "¡Gracias!",
                                    button="Confirmar Cita",
                                    link_hint="Si no puedes confirmar haciendo clic en el botón, copia y pega este enlace en tu navegador:"),
                "text": "Hola {{clientName}}, por favor confirma tu cita para {{serviceName}} el {{appointmentDate}} a las {{appointmentTime}}. Precio: €{{price}}. Confirma aquí: {{confirmationUrl}}",
            },
            "ca": {
                "whatsapp_template": "appointment_confirmation_ca",
                "fallback_text": "Hola {{clientName}}, si us plau confirma la teva cita per {{serviceName}} el {{appointmentDate}} a les {{appointmentTime}}. Confirma aquí: {{confirmationUrl}}",
                "subject": "Confirma la teva cita - {{serviceName}}",
                "html": _email_html("Confirma la teva Cita", "Hola", "Si us plau confirma la teva cita programada per:", _rows("ca"), "Gràcies!",
                                    button="Confirmar Cita",
                                    link_hint="Si no pots confirmar fent clic al botó, copia i enganxa aquest enllaç al teu navegador:"),
                "text": "Hola {{clientName}}, si us plau confirma la teva cita per {{serviceName}} el {{appointmentDate}} a les {{appointmentTime}}. Preu: €{{price}}. Confirma aquí: {{confirmationUrl}}",
            },
            "en": {
                "whatsapp_template": "appointment_confirmation_en",
                "fallback_text": "Hi {{clientName}}, please confirm your appointment for {{serviceName}} on {{appointmentDate}} at {{appointmentTime}}. Confirm here: {{confirmationUrl}}",
                "subject": "Confirm your appointment - {{serviceName}}",
                "html": _email_html("Confirm Your Appointment", "Hi", "Please confirm your scheduled appointment for:", _rows("en"), "Thank you!",
                                    button="Confirm Appointment",
                                    link_hint="If you can't confirm by clicking the button, copy and paste this link into your browser:"),
                "text": "Hi {{clientName}}, please confirm your appointment for {{serviceName}} on {{appointmentDate}} at {{appointmentTime}}. Price: €{{price}}. Confirm here: {{confirmationUrl}}",
            },
        },
    },
}


def resolve_locale(locale: Optional[str], default: str = "es") -> str:
    if locale:
        short = locale.split("-")[0].lower()
        if short in SUPPORTED_LOCALES:
            return short
    return default if default in SUPPORTED_LOCALES else "es"


def get_template(reminder_type: str, locale: str) -> Dict[str, str]:
    try:
        template = REMINDER_TEMPLATES[reminder_type]
    except KeyError:
        raise ValueError(f"Unknown reminder type: {reminder_type}") from None
    return template["locales"][locale]


def template_parameters(reminder_type: str, variables: Dict[str, Any]) -> list[str]:
    """Body parameters for the WhatsApp template, in declared order."""
    return [str(variables.get(name) or "") for name in REMINDER_TEMPLATES[reminder_type]["variables"]]
