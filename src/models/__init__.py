"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains the data models used by Webhook Relay:
- Destination: Registered webhook endpoint with rate limit
- QueueEntry / CapturePayload: Queued payloads
- CompletionEvent / ProgressEvent / ProgressCleared: Published events

All models are exported here for convenient importing.
"""

from .destination import Destination
from .entry import CapturePayload, QueueEntry
from .events import CompletionEvent, ProgressCleared, ProgressEvent

__all__ = [
    "Destination",
    "CapturePayload",
    "QueueEntry",
    "CompletionEvent",
    "ProgressCleared",
    "ProgressEvent",
]
