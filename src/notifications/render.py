"""
Module: render.py
Description: Human-readable rendering of relay events.

Turns completion and progress events into notification title/message
pairs. Progress notifications are coalesced per destination: a newer
update replaces the visible one, and a cleared event removes it.
"""

from collections import deque
from typing import Any, Deque, Dict, List

from pydantic import BaseModel

from models.events import CompletionEvent, ProgressCleared, ProgressEvent
from notifications.hub import NotificationHub
from utils.logger import get_logger

logger = get_logger(__name__)


class RenderedNotification(BaseModel):
    """A notification as a user would see it."""

    notification_id: str
    kind: str
    title: str
    message: str
    success: bool = True


def render_completion(event: CompletionEvent) -> RenderedNotification:
    name = event.destination_name
    if event.outcome == "success":
        title, message = f"✅ {name} - Success", f"Data sent successfully to {name}"
    elif event.outcome == "httpError":
        title = f"❌ {name} - Failed"
        message = f"Failed to send data after {event.attempts} attempts"
        if event.status_code is not None:
            message += f" (HTTP {event.status_code})"
    else:
        title, message = f"❌ {name} - Error", f"Network error: {event.detail}"

    return RenderedNotification(
        notification_id=f"delivery_{event.destination_id}",
        kind=event.outcome,
        title=title,
        message=message,
        success=event.succeeded
    )


def render_progress(event: ProgressEvent) -> RenderedNotification:
    return RenderedNotification(
        notification_id=f"queue_{event.destination_id}",
        kind="queued",
        title=f"⏳ {event.destination_name} - Queued",
        message=f"{event.position_count} in queue, ~{event.estimated_seconds_remaining}s remaining"
    )


class NotificationRenderer:
    """
    Hub subscriber that renders and logs notifications.

    Attributes:
        live: Visible progress notifications keyed by destination id
        history: Most recent rendered notifications, oldest first
    """

    def __init__(self, history_size: int = 100):
        self.live: Dict[str, RenderedNotification] = {}
        self.history: Deque[RenderedNotification] = deque(maxlen=history_size)

    def attach(self, hub: NotificationHub) -> None:
        hub.subscribe(self.handle, CompletionEvent, ProgressEvent, ProgressCleared)

    def handle(self, event: Any) -> None:
        if isinstance(event, ProgressCleared):
            if self.live.pop(event.destination_id, None) is not None:
                logger.debug(
                    "Notification cleared",
                    destination_id=event.destination_id,
                    reason=event.reason
                )
            return

        if isinstance(event, ProgressEvent):
            notification = render_progress(event)
            self.live[event.destination_id] = notification
        else:
            notification = render_completion(event)

        self.history.append(notification)
        logger.info(
            "Notification shown",
            notification_id=notification.notification_id,
            title=notification.title,
            message=notification.message
        )

    def recent(self, limit: int = 20) -> List[RenderedNotification]:
        return list(self.history)[-limit:]
