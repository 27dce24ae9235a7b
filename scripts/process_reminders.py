#!/usr/bin/env python3
"""
Run one reminder dispatch pass.

Meant for cron (e.g. every 5 minutes):
    */5 * * * * cd /srv/inkgest && python scripts/process_reminders.py

By default it calls PUT {APP_URL}/reminders with the cron bearer secret so the
pass runs inside the API process. With --local it opens its own database
session and runs the pass in this process instead.
"""

import argparse
import asyncio
import os
import sys

import httpx

# Make inkgest importable when run from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from inkgest.core.config import settings
from inkgest.core.logging import get_logger, set_correlation_id, setup_logging

logger = get_logger("process_reminders")


async def run_remote(base_url: str, secret: str) -> dict:
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS * 6) as client:
        response = await client.put(
            f"{base_url.rstrip('/')}/reminders",
            headers={"Authorization": f"Bearer {secret}"},
        )
    response.raise_for_status()
    body = response.json()
    if not body.get("success"):
        raise RuntimeError(body.get("error") or "Reminder pass failed")
    return body.get("data", {})


async def run_local() -> dict:
    from inkgest.crud.reminder import SqlReminderStore
    from inkgest.db.session import AsyncSessionLocal, engine
    from inkgest.services.channels import MessagingGateway
    from inkgest.services.communication import CommunicationService
    from inkgest.services.reminders import ReminderService

    gateway = MessagingGateway(settings)
    try:
        async with AsyncSessionLocal() as session:
            service = ReminderService(
                SqlReminderStore(session),
                CommunicationService(session, gateway),
                settings=settings,
            )
            summary = await service.process_pending_reminders()
            return summary.model_dump()
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Dispatch due appointment reminders")
    parser.add_argument("--url", default=os.getenv("REMINDER_API_URL", settings.APP_URL),
                        help="Base URL of the InkGest API")
    parser.add_argument("--local", action="store_true",
                        help="Run the pass in-process against the database")
    args = parser.parse_args()

    setup_logging(debug=settings.is_development, level=settings.LOG_LEVEL)
    set_correlation_id(job="process_reminders")

    try:
        if args.local:
            summary = asyncio.run(run_local())
        else:
            if not settings.CRON_SECRET:
                print("❌ CRON_SECRET is not set")
                return 1
            summary = asyncio.run(run_remote(args.url, settings.CRON_SECRET))
    except Exception as e:
        logger.error("reminder_pass_failed", error=str(e), error_type=type(e).__name__)
        print(f"❌ Reminder pass failed: {e}")
        return 1

    print(f"✅ Reminders processed: {summary}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
