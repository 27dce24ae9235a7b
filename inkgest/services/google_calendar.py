# inkgest/services/google_calendar.py
"""
Google Calendar sync for studio appointments.

Each booking mirrors onto its artist's calendar (or GOOGLE_CALENDAR_ID when
the artist has none). Every call here returns None/False on trouble instead
of raising, so a calendar outage never blocks a booking.
"""
from __future__ import annotations

import json
import os
import logging
from datetime import datetime
from typing import Optional, Dict, Any

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

CALENDAR_SCOPES = ['https://www.googleapis.com/auth/calendar']

_calendar_service = None


def _integration_enabled() -> bool:
    return os.getenv("GOOGLE_CALENDAR_ENABLED", "").lower() in ("true", "1", "yes")


def _load_service_account() -> Optional[Dict[str, Any]]:
    raw = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON")
    if not raw:
        logger.warning("Calendar sync enabled but GOOGLE_SERVICE_ACCOUNT_JSON is empty")
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error("GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON: %s", e)
        return None


def get_calendar_service():
    """Calendar API client, built once per process. None while sync is off."""
    global _calendar_service

    if _calendar_service is None and _integration_enabled():
        info = _load_service_account()
        if info is None:
            return None
        try:
            credentials = service_account.Credentials.from_service_account_info(info, scopes=CALENDAR_SCOPES)
            _calendar_service = build('calendar', 'v3', credentials=credentials)
            logger.info("Calendar client ready")
        except Exception as e:
            logger.error("Could not build Calendar client: %s", e)
            return None

    return _calendar_service


def _target_calendar(calendar_id: Optional[str]) -> str:
    return calendar_id or os.getenv("GOOGLE_CALENDAR_ID", "primary")


def _timed_fields(summary: str, description: str, starts_at_utc: datetime, ends_at_utc: datetime) -> Dict[str, Any]:
    return {
        'summary': summary,
        'description': description,
        'start': {'dateTime': starts_at_utc.isoformat(), 'timeZone': 'UTC'},
        'end': {'dateTime': ends_at_utc.isoformat(), 'timeZone': 'UTC'},
    }


def _synced(event: Dict[str, Any], calendar_id: str, starts_at_utc: datetime, ends_at_utc: datetime) -> Dict[str, Any]:
    return {
        'event_id': event.get('id'),
        'event_link': event.get('htmlLink', ''),
        'calendar_id': calendar_id,
        'start_time': starts_at_utc.isoformat(),
        'end_time': ends_at_utc.isoformat(),
    }


def _run(action: str, request, event_id: Optional[str] = None):
    """Execute a prepared API request; (ok, payload) with errors logged, not raised."""
    try:
        return True, request.execute()
    except HttpError as e:
        if getattr(e.resp, 'status', None) == 404:
            logger.warning("Calendar %s: event %s not found", action, event_id)
        else:
            logger.error("Calendar %s rejected by Google: %s", action, e)
    except Exception as e:
        logger.error("Calendar %s failed: %s", action, e)
    return False, None


async def create_calendar_event(
    summary: str,
    description: str,
    starts_at_utc: datetime,
    ends_at_utc: datetime,
    calendar_id: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Put a booking on the artist calendar.

    Args:
        summary: Event title, e.g. "Fine line tattoo - Ana García"
        description: Free-text details shown in the event
        starts_at_utc: Appointment start (UTC)
        ends_at_utc: Appointment end (UTC)
        calendar_id: Artist calendar (defaults to GOOGLE_CALENDAR_ID)

    Returns:
        event_id/event_link/calendar_id/start_time/end_time, or None when
        sync is off or Google refused the event
    """
    service = get_calendar_service()
    if not service:
        logger.debug("Calendar sync off, booking not mirrored")
        return None

    target = _target_calendar(calendar_id)
    body = _timed_fields(summary, description, starts_at_utc, ends_at_utc)
    ok, event = _run("insert", service.events().insert(calendarId=target, body=body))
    if not ok:
        return None

    logger.info("Calendar event %s added for '%s'", event.get('id'), summary)
    return _synced(event, target, starts_at_utc, ends_at_utc)


async def update_calendar_event(
    event_id: str,
    summary: str,
    description: str,
    starts_at_utc: datetime,
    ends_at_utc: datetime,
    calendar_id: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """Retitle/move an event, keeping whatever else is stored on it."""
    service = get_calendar_service()
    if not service:
        return None

    target = _target_calendar(calendar_id)
    ok, stored = _run("get", service.events().get(calendarId=target, eventId=event_id), event_id)
    if not ok:
        return None

    stored.update(_timed_fields(summary, description, starts_at_utc, ends_at_utc))
    ok, event = _run("update", service.events().update(calendarId=target, eventId=event_id, body=stored), event_id)
    if not ok:
        return None

    logger.info("Calendar event %s moved to %s", event_id, starts_at_utc.isoformat())
    return _synced(event, target, starts_at_utc, ends_at_utc)


async def delete_calendar_event(event_id: str, calendar_id: Optional[str] = None) -> bool:
    service = get_calendar_service()
    if not service:
        return False

    ok, _ = _run("delete", service.events().delete(calendarId=_target_calendar(calendar_id), eventId=event_id), event_id)
    if ok:
        logger.info("Calendar event %s removed", event_id)
    return ok
