# inkgest/crud/client.py

from __future__ import annotations
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inkgest.db.models.client import Client, CommunicationPreference


async def get_client(db: AsyncSession, client_id: str) -> Optional[Client]:
    return await db.get(Client, client_id)


async def get_preferences(db: AsyncSession, client_id: str) -> Optional[CommunicationPreference]:
    return await db.get(CommunicationPreference, client_id)


async def upsert_preferences(db: AsyncSession, client_id: str, values: dict[str, Any]) -> CommunicationPreference:
    prefs = await db.get(CommunicationPreference, client_id)
    if prefs is None:
        prefs = CommunicationPreference(client_id=client_id)
        db.add(prefs)
    for field, value in values.items():
        setattr(prefs, field, value)
    await db.commit()
    await db.refresh(prefs)
    return prefs
