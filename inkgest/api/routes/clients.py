# inkgest/api/routes/clients.py

from __future__ import annotations

from fastapi import APIRouter, Depends

from inkgest.api.deps import get_communication_service
from inkgest.schemas.base import envelope
from inkgest.schemas.communication import CommunicationPreferencesUpdate
from inkgest.services.communication import CommunicationService

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/{client_id}/communication-preferences")
async def get_preferences(client_id: str, comms: CommunicationService = Depends(get_communication_service)):
    return envelope(await comms.get_communication_preferences(client_id))


@router.put("/{client_id}/communication-preferences")
async def update_preferences(client_id: str, payload: CommunicationPreferencesUpdate,
                             comms: CommunicationService = Depends(get_communication_service)):
    return envelope(await comms.update_communication_preferences(client_id, payload))
