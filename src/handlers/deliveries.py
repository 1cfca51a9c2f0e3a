"""
Module: deliveries.py
Description: Enqueue endpoints.

Both endpoints are fire-and-forget: they return 202 once the payload is
queued. Delivery outcomes are reported through notifications, never in
the response.
"""

from fastapi import APIRouter, Depends
from fastapi import status as status_codes

from dispatch_queue.manager import QueueManager
from handlers.dependencies import get_queue_manager
from models.request import CaptureRequest, EnqueueRequest
from models.response import EnqueueResponse
from utils.logger import get_logger

router = APIRouter(prefix="/deliveries", tags=["deliveries"])
logger = get_logger(__name__)


def _accepted(manager: QueueManager, destination_id: str) -> EnqueueResponse:
    status = manager.status(destination_id)
    depth = status["depth"] if status else 0

    if depth == 0:
        return EnqueueResponse(
            destination_id=destination_id,
            status="dispatched",
            depth=0,
            estimated_seconds_remaining=0,
            message="Payload dispatched"
        )

    return EnqueueResponse(
        destination_id=destination_id,
        status="queued",
        depth=depth,
        estimated_seconds_remaining=status["estimated_seconds_remaining"],
        message=f"{depth} in queue, ~{status['estimated_seconds_remaining']}s remaining"
    )


@router.post("", status_code=status_codes.HTTP_202_ACCEPTED, response_model=EnqueueResponse)
async def enqueue_delivery(
    request: EnqueueRequest,
    manager: QueueManager = Depends(get_queue_manager)
) -> EnqueueResponse:
    """
    Queue a JSON payload for a destination.

    Unknown destinations are accepted and delivered without rate limit,
    treating the destination id as the endpoint URL.

    Example:
        POST /deliveries
        {"destination_id": "https://hooks.example.com/notes", "payload": {"url": "https://example.com"}}

        Response (202):
        {"destination_id": "...", "status": "queued", "depth": 1, "estimated_seconds_remaining": 8, ...}
    """
    queued_for = manager.enqueue(request.destination_id, request.payload, request.destination_name)
    return _accepted(manager, queued_for or request.destination_id)


@router.post("/capture", status_code=status_codes.HTTP_202_ACCEPTED, response_model=EnqueueResponse)
async def enqueue_capture(
    request: CaptureRequest,
    manager: QueueManager = Depends(get_queue_manager)
) -> EnqueueResponse:
    """Queue a page, link, image or selection capture for a destination."""
    logger.debug(
        "Capture received",
        destination_id=request.destination_id,
        capture_type=request.capture.type
    )
    queued_for = manager.enqueue(request.destination_id, request.capture, request.destination_name)
    return _accepted(manager, queued_for or request.destination_id)
