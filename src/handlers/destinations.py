"""
Module: destinations.py
Description: Destination configuration endpoints.

Implements the configuration API consumed by the destination registry:
- PUT /destinations: Add or update destinations
- GET /destinations: List registered destinations
- DELETE /destinations/{destination_id}: Remove a destination
- POST /destinations/probe: Send a one-shot test payload

Dependencies: FastAPI, typing
Author: Webhook Relay Team
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as status_codes

from delivery.push import PushDeliveryClient
from handlers.dependencies import get_registry, get_transport
from models.destination import parse_destination
from models.errors import DestinationValidationError, UnknownDestinationError
from models.events import ProbeResult
from models.request import ConfigureDestinationsRequest, ProbeRequest
from models.response import ConfigureResponse, DestinationResponse, RejectedDestination
from registry.destinations import DestinationRegistry
from utils.logger import get_logger

router = APIRouter(prefix="/destinations", tags=["destinations"])
logger = get_logger(__name__)


@router.put("", response_model=ConfigureResponse)
async def configure_destinations(
    request: ConfigureDestinationsRequest,
    registry: DestinationRegistry = Depends(get_registry)
) -> ConfigureResponse:
    """
    Add or update destinations.

    Destinations not mentioned keep their current configuration. Each
    destination is validated on its own; invalid ones are reported under
    "rejected" and left unconfigured while valid ones are applied.

    Example:
        PUT /destinations
        {
            "destinations": [
                {"name": "Notes", "endpoint_url": "https://hooks.example.com/notes", "rate_limit_seconds": 10}
            ]
        }
    """
    valid = []
    rejected: List[RejectedDestination] = []
    for item in request.destinations:
        try:
            valid.append(parse_destination(item))
        except DestinationValidationError as e:
            rejected.append(RejectedDestination(**e.to_dict()))

    saved = registry.upsert(valid)

    logger.info(
        "Destinations configured",
        configured=len(saved),
        rejected=len(rejected)
    )

    return ConfigureResponse(
        configured=[DestinationResponse.from_destination(d) for d in saved],
        rejected=rejected
    )


@router.get("", response_model=List[DestinationResponse])
async def list_destinations(
    registry: DestinationRegistry = Depends(get_registry)
) -> List[DestinationResponse]:
    """List registered destinations."""
    return [DestinationResponse.from_destination(d) for d in registry.list()]


@router.post("/probe", response_model=ProbeResult)
async def probe_destination(
    request: ProbeRequest,
    registry: DestinationRegistry = Depends(get_registry),
    transport: PushDeliveryClient = Depends(get_transport)
) -> ProbeResult:
    """
    Send a sample payload straight to a destination.

    Bypasses the queue, the rate limit and retries; reports the status
    code and round-trip time.
    """
    try:
        destination = registry.get(request.destination_id)
    except UnknownDestinationError as e:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

    return await transport.probe(destination)


@router.delete("/{destination_id:path}", status_code=status_codes.HTTP_204_NO_CONTENT)
async def delete_destination(
    destination_id: str,
    registry: DestinationRegistry = Depends(get_registry)
) -> None:
    """
    Remove a destination from the registry.

    Entries already queued for it still drain with its last known rate
    limit.
    """
    try:
        registry.remove(destination_id)
    except UnknownDestinationError as e:
        raise HTTPException(
            status_code=status_codes.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
