"""
Module: request.py
Description: API request models for Webhook Relay.

Key Components:
- ConfigureDestinationsRequest: Replace/extend the destination set
- EnqueueRequest: Queue an arbitrary JSON payload
- CaptureRequest: Queue a page/link/image/selection capture
- ProbeRequest: Send a test payload to a registered destination

Dependencies: pydantic, typing
Author: Webhook Relay Team
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from models.entry import CapturePayload


class ConfigureDestinationsRequest(BaseModel):
    """
    Request model for PUT /destinations.

    Destinations are kept as raw objects so each one is validated on its
    own: a malformed destination is rejected without failing its siblings.
    """

    destinations: List[Dict[str, Any]] = Field(
        ...,
        description="Destination objects: id, name, endpoint_url, rate_limit_seconds, headers"
    )


class EnqueueRequest(BaseModel):
    """Request model for POST /deliveries."""

    destination_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("destination_id", "destinationId"),
        description="Destination identity"
    )
    payload: Dict[str, Any] = Field(
        ...,
        description="JSON object POSTed to the destination"
    )
    destination_name: Optional[str] = Field(
        default=None,
        max_length=200,
        validation_alias=AliasChoices("destination_name", "destinationName"),
        description="Display name for notifications"
    )

    @field_validator('destination_id')
    @classmethod
    def validate_destination_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("destination_id must be a non-empty string")
        return v


class CaptureRequest(BaseModel):
    """Request model for POST /deliveries/capture."""

    destination_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("destination_id", "destinationId")
    )
    destination_name: Optional[str] = Field(
        default=None,
        max_length=200,
        validation_alias=AliasChoices("destination_name", "destinationName")
    )
    capture: CapturePayload


class ProbeRequest(BaseModel):
    """Request model for POST /destinations/probe."""

    destination_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("destination_id", "destinationId"),
        description="Registered destination to test"
    )
