"""
Module: progress.py
Description: Periodic queue progress notifications.

While a destination has deferred entries, a progress event with the
queue depth and estimated wait is published immediately and then every
update interval. A destination has at most one live notification;
starting a new one replaces the old one. Every notification is cleared
after a hard lifetime ceiling even if nobody clears it.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from dispatch_queue.scheduling import Scheduler, TimerSlot
from models.events import ProgressCleared, ProgressEvent
from notifications.hub import NotificationHub
from utils.logger import get_logger

logger = get_logger(__name__)

# (position_count, estimated_seconds_remaining) or None when the queue is empty
Estimator = Callable[[str], Optional[Tuple[int, int]]]


@dataclass
class LiveNotification:
    notification_id: str
    destination_name: str
    updates: TimerSlot = field(default_factory=TimerSlot)
    expiry: TimerSlot = field(default_factory=TimerSlot)


class ProgressTracker:
    """
    Publishes ProgressEvent / ProgressCleared for deferred destinations.

    Attributes:
        interval: Seconds between progress updates
        max_lifetime: Seconds after which a notification is force-cleared
    """

    def __init__(
        self,
        scheduler: Scheduler,
        hub: NotificationHub,
        estimator: Estimator,
        interval: float = 5,
        max_lifetime: float = 60
    ):
        if not 1 <= interval <= 60:
            raise ValueError("interval must be between 1 and 60 seconds")

        self.scheduler = scheduler
        self.hub = hub
        self.interval = interval
        self.max_lifetime = max_lifetime
        self._estimator = estimator
        self._live: Dict[str, LiveNotification] = {}

    def is_active(self, destination_id: str) -> bool:
        return destination_id in self._live

    def start(self, destination_id: str, destination_name: str) -> None:
        """Show (or restart) the progress notification for a destination."""
        previous = self._live.pop(destination_id, None)
        if previous is not None:
            previous.updates.cancel()
            previous.expiry.cancel()

        notification = LiveNotification(
            notification_id=f"queue_{destination_id}_{int(self.scheduler.now() * 1000)}",
            destination_name=destination_name
        )
        self._live[destination_id] = notification
        notification.expiry.arm(
            self.scheduler, self.max_lifetime, self.clear, destination_id, "expired"
        )

        logger.debug(
            "Progress notification started",
            destination_id=destination_id,
            notification_id=notification.notification_id
        )
        self._update(destination_id)

    def _update(self, destination_id: str) -> None:
        notification = self._live.get(destination_id)
        if notification is None:
            return

        estimate = self._estimator(destination_id)
        if estimate is None:
            self.clear(destination_id, "drained")
            return

        position_count, seconds_remaining = estimate
        self.hub.publish(ProgressEvent(
            destination_id=destination_id,
            destination_name=notification.destination_name,
            position_count=position_count,
            estimated_seconds_remaining=seconds_remaining
        ))
        notification.updates.arm(self.scheduler, self.interval, self._update, destination_id)

    def clear(self, destination_id: str, reason: str = "dispatched") -> bool:
        """
        Remove the live notification for a destination, if any.

        Returns:
            True if a notification was cleared
        """
        notification = self._live.pop(destination_id, None)
        if notification is None:
            return False

        notification.updates.cancel()
        notification.expiry.cancel()
        logger.debug(
            "Progress notification cleared",
            destination_id=destination_id,
            notification_id=notification.notification_id,
            reason=reason
        )
        self.hub.publish(ProgressCleared(
            destination_id=destination_id,
            destination_name=notification.destination_name,
            reason=reason
        ))
        return True

    def clear_all(self, reason: str = "shutdown") -> None:
        for destination_id in list(self._live):
            self.clear(destination_id, reason)
