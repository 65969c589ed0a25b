"""
Digest Controllers (API Routes)
===============================
"""

from fastapi import APIRouter, Depends

from checktrack.digest.application import (
    DigestCycleResponse,
    DigestDeliveryService,
    DigestPreferencesDTO,
    DigestPreviewResponse,
)
from checktrack.shared.api.dependencies import get_digest_service
from checktrack.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/digests", tags=["Digests"])


@router.get("/preferences/{user_id}", response_model=DigestPreferencesDTO, summary="Get digest preferences")
async def get_preferences(user_id: str, service: DigestDeliveryService = Depends(get_digest_service)):
    return DigestPreferencesDTO.from_entity(await service.get_preferences(user_id))


@router.put("/preferences/{user_id}", response_model=DigestPreferencesDTO, summary="Save digest preferences")
async def save_preferences(
    user_id: str,
    request: DigestPreferencesDTO,
    service: DigestDeliveryService = Depends(get_digest_service)
):
    preferences = request.model_copy(update={"user_id": user_id}).to_entity()
    saved = await service.save_preferences(preferences)
    return DigestPreferencesDTO.from_entity(saved)


@router.get(
    "/preview/{user_id}",
    response_model=DigestPreviewResponse,
    summary="Preview a digest",
    description="Builds the digest for the user's current window without sending it."
)
async def preview_digest(user_id: str, service: DigestDeliveryService = Depends(get_digest_service)):
    return DigestPreviewResponse.from_digest(await service.preview(user_id))


@router.post("/run", response_model=DigestCycleResponse, summary="Run one digest delivery cycle")
async def run_digests(service: DigestDeliveryService = Depends(get_digest_service)):
    sent = await service.process_pending_digests()
    return DigestCycleResponse(digests_sent=len(sent), user_ids=[d.user_id for d in sent])
