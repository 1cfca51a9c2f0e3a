"""
Module: events.py
Description: Events published by the queue manager and delivery wrapper.

Key Components:
- CompletionEvent: Terminal outcome of one delivery
- ProgressEvent: Queue depth and ETA for a deferred destination
- ProgressCleared: A live progress notification went away
- ProbeResult: Outcome of a one-shot destination test

Dependencies: pydantic, typing
Author: Webhook Relay Team
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DeliveryOutcome = Literal["success", "httpError", "networkError"]
ClearReason = Literal["dispatched", "drained", "expired", "shutdown"]


class CompletionEvent(BaseModel):
    """
    Terminal outcome of one delivery.

    Attributes:
        destination_id: Destination identity
        destination_name: Name captured when the entry was enqueued
        outcome: success, httpError or networkError
        detail: Status code text or error message
        attempts: Number of HTTP attempts made
        status_code: Last observed HTTP status, if any
    """

    model_config = ConfigDict(frozen=True)

    destination_id: str
    destination_name: str
    outcome: DeliveryOutcome
    detail: str = ""
    attempts: int = Field(default=1, ge=1)
    status_code: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"


class ProgressEvent(BaseModel):
    """Queue depth and estimated wait for a destination with deferred entries."""

    model_config = ConfigDict(frozen=True)

    destination_id: str
    destination_name: str
    position_count: int = Field(..., ge=1)
    estimated_seconds_remaining: int = Field(..., ge=0)


class ProgressCleared(BaseModel):
    """A live progress notification for a destination was removed."""

    model_config = ConfigDict(frozen=True)

    destination_id: str
    destination_name: str
    reason: ClearReason


class ProbeResult(BaseModel):
    """Outcome of a one-shot test delivery that bypasses the queue."""

    ok: bool
    status_code: Optional[int] = None
    response_time_ms: float = Field(..., ge=0)
    error: Optional[str] = None
