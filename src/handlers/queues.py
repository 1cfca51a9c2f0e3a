"""
Module: queues.py
Description: Queue status and notification endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as status_codes

from dispatch_queue.manager import QueueManager
from handlers.dependencies import Relay, get_queue_manager, get_relay
from models.response import QueueStatusResponse
from notifications.render import RenderedNotification

router = APIRouter(tags=["queues"])


@router.get("/queues", response_model=List[QueueStatusResponse])
async def list_queues(
    manager: QueueManager = Depends(get_queue_manager)
) -> List[QueueStatusResponse]:
    """Depth, wait and ETA for every destination queue."""
    return [QueueStatusResponse(**status) for status in manager.snapshot()]


@router.get("/queues/{destination_id:path}", response_model=QueueStatusResponse)
async def get_queue(
    destination_id: str,
    manager: QueueManager = Depends(get_queue_manager)
) -> QueueStatusResponse:
    status = manager.status(destination_id)
    if status is None:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=f"No queue for destination: {destination_id}"
        )
    return QueueStatusResponse(**status)


@router.get("/notifications", response_model=List[RenderedNotification])
async def list_notifications(
    limit: int = 20,
    relay: Relay = Depends(get_relay)
) -> List[RenderedNotification]:
    """Most recently shown notifications, oldest first."""
    if limit < 1 or limit > 100:
        raise HTTPException(
            status_code=status_codes.HTTP_400_BAD_REQUEST,
            detail="limit must be between 1 and 100"
        )
    return relay.renderer.recent(limit)
