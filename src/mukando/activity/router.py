"""Activity endpoint: /api/activity."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from mukando.activity.schemas import ActivityCreateRequest, MessageResponse
from mukando.dependencies import get_sync_service
from mukando.sync.service import SyncService

router = APIRouter(prefix="/api/activity", tags=["Activity"])


@router.post("", response_model=MessageResponse)
async def track_activity_endpoint(
    body: ActivityCreateRequest,
    sync: SyncService = Depends(get_sync_service),
) -> MessageResponse:
    """Record a user action in the audit trail."""
    if not body.user_address or not body.activity_type:
        raise HTTPException(status_code=400, detail="userAddress and activityType are required")

    if not await sync.track_activity(body.user_address, body.activity_type, body.details):
        raise HTTPException(status_code=500, detail="Failed to track activity")
    return MessageResponse(message="Activity tracked successfully")
