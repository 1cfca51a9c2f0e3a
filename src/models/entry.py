"""
Module: entry.py
Description: Queue entry and capture payload models.

Key Components:
- QueueEntry: Immutable item waiting in a destination queue
- CapturePayload: Payload shape produced by page/link/image/selection triggers

Dependencies: pydantic, datetime, typing
Author: Webhook Relay Team
"""

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QueueEntry(BaseModel):
    """
    Item waiting for dispatch in a destination queue.

    Entries are immutable once created. The destination name is captured
    at enqueue time so notifications keep their text even if the
    destination is renamed or removed afterwards.

    Attributes:
        payload: JSON-serializable body POSTed to the destination
        enqueued_at: Scheduler clock reading (seconds) at enqueue time
        destination_name: Destination display name at enqueue time
    """

    model_config = ConfigDict(frozen=True)

    payload: Any = Field(
        ...,
        description="JSON-serializable delivery body"
    )
    enqueued_at: float = Field(
        ...,
        description="Scheduler clock reading when the entry was enqueued"
    )
    destination_name: str = Field(
        default="Webhook",
        description="Destination display name captured at enqueue time"
    )


CaptureType = Literal["page", "link", "image", "selection", "test"]


class CapturePayload(BaseModel):
    """
    Payload built by a capture trigger for a page, link, image or selection.

    Field names are serialized in camelCase, the format destinations
    receive.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., min_length=1, description="URL the capture refers to")
    page_url: Optional[str] = Field(default=None, alias="pageUrl")
    type: CaptureType = Field(default="page", description="Capture context")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        description="ISO 8601 capture time"
    )
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[str] = None
    favicon: Optional[str] = None
    link_title: Optional[str] = Field(default=None, alias="linkTitle")
    alt_text: Optional[str] = Field(default=None, alias="altText")
    note: Optional[str] = None
    selected_text: Optional[str] = Field(default=None, alias="selectedText")
    custom_fields: Optional[Dict[str, Any]] = Field(default=None, alias="customFields")

    @model_validator(mode='after')
    def normalize_optional_text(self) -> "CapturePayload":
        # Empty note means "no note"; selected text only applies to selections
        if self.note is not None and not self.note.strip():
            self.note = None
        if self.type != "selection":
            self.selected_text = None
        return self

    def to_body(self) -> Dict[str, Any]:
        """Serialize into the JSON body sent to destinations."""
        body = self.model_dump(by_alias=True, exclude={"selected_text", "custom_fields"})
        if self.type == "selection":
            body["selectedText"] = self.selected_text
        if self.custom_fields:
            body["customFields"] = self.custom_fields
        return body


def sample_capture() -> CapturePayload:
    """Fixed payload used to probe a destination."""
    return CapturePayload(
        url="https://example.com/image.jpg",
        pageUrl="https://example.com/article",
        type="test",
        title="Testing",
        description="Testing description from meta tag",
        keywords="technology, programming, tutorial",
        favicon="https://example.com/favicon.ico",
        linkTitle="Title if it was a link type",
        altText="Image alt text if it was a link type",
        note="Additional note content if there was some",
    )
