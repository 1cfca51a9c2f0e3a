"""
Module: destination_queue.py
Description: FIFO buffer and rate-limit bookkeeping for one destination.
"""

import math
from collections import deque
from typing import Any, Deque, Dict, Optional

from dispatch_queue.scheduling import TimerSlot
from models.destination import Destination
from models.entry import QueueEntry

# Waits shorter than this count as elapsed; absorbs float noise in clock arithmetic
WAIT_EPSILON = 1e-6


class DestinationQueue:
    """
    Pending entries for exactly one destination.

    Entries leave in insertion order. last_sent_at records the last
    dispatch (not completion); None means nothing was dispatched yet and
    the next entry may go immediately. The queue is never discarded while
    the process runs, so the rate-limit memory survives idle periods.

    Attributes:
        destination: Cached destination configuration
        last_sent_at: Scheduler time of the last dispatch, or None
        timer: Single-slot deferred wake-up timer
    """

    def __init__(self, destination: Destination):
        self.destination = destination
        self.last_sent_at: Optional[float] = None
        self.timer = TimerSlot()
        self._entries: Deque[QueueEntry] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def destination_id(self) -> str:
        return self.destination.id

    @property
    def rate_limit_seconds(self) -> float:
        return self.destination.rate_limit_seconds

    def update_destination(self, destination: Destination) -> bool:
        """
        Replace the cached configuration, keeping entries and last_sent_at.

        Returns:
            True if the rate limit changed
        """
        changed = destination.rate_limit_seconds != self.destination.rate_limit_seconds
        self.destination = destination
        return changed

    def wait_time(self, now: float) -> float:
        """Seconds until the rate limit allows the next dispatch."""
        if self.rate_limit_seconds <= 0 or self.last_sent_at is None:
            return 0.0
        remaining = self.rate_limit_seconds - (now - self.last_sent_at)
        return remaining if remaining > WAIT_EPSILON else 0.0

    def would_defer(self, now: float) -> bool:
        """Whether an entry appended now would have to wait."""
        return len(self._entries) > 0 or self.wait_time(now) > 0

    def append(self, entry: QueueEntry) -> None:
        self._entries.append(entry)

    def pop_for_dispatch(self, now: float) -> QueueEntry:
        """Remove the head entry and stamp the dispatch time."""
        entry = self._entries.popleft()
        self.last_sent_at = now
        return entry

    def clear(self) -> None:
        """Drop every pending entry; last_sent_at is kept."""
        self._entries.clear()

    def estimated_seconds_remaining(self, now: float) -> int:
        """Whole seconds until the last queued entry is dispatched."""
        if not self._entries:
            return 0
        total = self.wait_time(now) + (len(self._entries) - 1) * self.rate_limit_seconds
        # Round away float noise before taking the ceiling
        return int(math.ceil(round(total, 6)))

    def status(self, now: float) -> Dict[str, Any]:
        return {
            "destination_id": self.destination_id,
            "destination_name": self.destination.name,
            "depth": len(self._entries),
            "rate_limit_seconds": self.rate_limit_seconds,
            "wait_seconds": round(self.wait_time(now), 3),
            "estimated_seconds_remaining": self.estimated_seconds_remaining(now),
            "timer_armed": self.timer.armed,
            "seconds_since_dispatch": (
                None if self.last_sent_at is None else round(now - self.last_sent_at, 3)
            ),
        }
