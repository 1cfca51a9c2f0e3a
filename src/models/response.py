"""
Module: response.py
Description: API response models for Webhook Relay.

Dependencies: pydantic, typing
Author: Webhook Relay Team
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.destination import Destination


class DestinationResponse(BaseModel):
    """
    Registered destination as returned by the API.

    Header values may carry secrets, so only header names are exposed.
    """

    id: str
    name: str
    endpoint_url: str
    rate_limit_seconds: float
    header_names: List[str] = Field(default_factory=list)

    @classmethod
    def from_destination(cls, destination: Destination) -> "DestinationResponse":
        return cls(
            id=destination.id,
            name=destination.name,
            endpoint_url=destination.endpoint_url,
            rate_limit_seconds=destination.rate_limit_seconds,
            header_names=sorted(destination.headers)
        )


class RejectedDestination(BaseModel):
    destination_id: Optional[str] = None
    message: str
    errors: List[Dict[str, Any]] = Field(default_factory=list)


class ConfigureResponse(BaseModel):
    """Response for PUT /destinations."""

    configured: List[DestinationResponse]
    rejected: List[RejectedDestination]


class QueueStatusResponse(BaseModel):
    """Depth and timing of one destination queue."""

    destination_id: str
    destination_name: str
    depth: int = Field(..., ge=0)
    rate_limit_seconds: float
    wait_seconds: float
    estimated_seconds_remaining: int
    timer_armed: bool
    seconds_since_dispatch: Optional[float] = None


class EnqueueResponse(BaseModel):
    """Response for POST /deliveries."""

    destination_id: str
    status: str = Field(..., description="'dispatched' or 'queued'")
    depth: int = Field(..., ge=0, description="Entries still waiting after this one was accepted")
    estimated_seconds_remaining: int = Field(..., ge=0)
    message: str
