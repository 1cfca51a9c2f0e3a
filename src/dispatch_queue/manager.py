"""
Module: manager.py
Description: Per-destination rate-limited delivery queue manager.

Routes enqueued payloads to one FIFO queue per destination and
dispatches them no faster than each destination's rate limit allows.
Dispatch time, not completion time, drives the rate limit, so a slow
destination is never throttled below its configured cadence.

Key Components:
- QueueManager.configure(): Create or update destination queues
- QueueManager.enqueue(): Accept a payload for delivery
- Scheduling step: dispatch now or arm the single wake-up timer
- Progress notifications for deferred entries

All methods run on a single event loop; no locking is needed because
enqueue calls, timer callbacks and send completions are serialized by
the loop.

Dependencies: asyncio
Author: Webhook Relay Team
"""

import asyncio
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from dispatch_queue.destination_queue import DestinationQueue
from dispatch_queue.scheduling import Scheduler
from models.destination import Destination, normalize_endpoint_url, parse_destination
from models.entry import CapturePayload, QueueEntry
from models.errors import DestinationValidationError, UnknownDestinationError
from models.events import ProgressEvent
from notifications.hub import NotificationHub
from notifications.progress import ProgressTracker
from utils.logger import get_logger

logger = get_logger(__name__)

Sender = Callable[[Destination, QueueEntry], Awaitable[Any]]
DestinationInput = Union[Destination, Dict[str, Any]]


class QueueManager:
    """
    Owns every destination queue and drives dispatching.

    Queues are created on configure() or on the first enqueue for a
    destination and are kept for the lifetime of the manager, so the
    rate-limit memory of a destination persists across bursts and
    entries for a removed destination still drain.

    Attributes:
        scheduler: Clock, timers and background tasks
        hub: Channel receiving progress and completion events
        progress: Progress notification tracker
    """

    def __init__(
        self,
        scheduler: Scheduler,
        sender: Sender,
        hub: Optional[NotificationHub] = None,
        notification_interval: float = 5,
        notification_max_lifetime: float = 60
    ):
        self.scheduler = scheduler
        self.hub = hub if hub is not None else NotificationHub()
        self._send = sender
        self._queues: Dict[str, DestinationQueue] = {}
        self._in_flight: Set[Any] = set()
        self._stopped = False
        self.progress = ProgressTracker(
            scheduler,
            self.hub,
            self._estimate,
            interval=notification_interval,
            max_lifetime=notification_max_lifetime
        )

    # -- configuration -------------------------------------------------

    def configure(self, destinations: Iterable[DestinationInput]) -> List[DestinationValidationError]:
        """
        Create or update queues for the given destinations.

        Idempotent. Existing queues keep their pending entries and last
        dispatch time; only the cached configuration changes. Invalid
        destinations are skipped and returned.

        Args:
            destinations: Destination models or raw mappings

        Returns:
            Validation errors for the rejected destinations
        """
        rejected: List[DestinationValidationError] = []

        for item in destinations:
            try:
                destination = parse_destination(item)
            except DestinationValidationError as e:
                logger.warning(
                    "Destination rejected",
                    destination_id=e.destination_id,
                    error=str(e),
                    errors=e.errors
                )
                rejected.append(e)
                continue

            queue = self._queues.get(destination.id)
            if queue is None:
                self._queues[destination.id] = DestinationQueue(destination)
                logger.info(
                    "Destination queue created",
                    destination_id=destination.id,
                    rate_limit_seconds=destination.rate_limit_seconds
                )
                continue

            if queue.update_destination(destination):
                logger.info(
                    "Destination rate limit updated",
                    destination_id=destination.id,
                    rate_limit_seconds=destination.rate_limit_seconds,
                    pending=len(queue)
                )
                self._schedule(destination.id)

        return rejected

    # -- enqueue and scheduling ------------------------------------------

    def enqueue(
        self,
        destination_id: str,
        payload: Any,
        destination_name: Optional[str] = None
    ) -> Optional[str]:
        """
        Accept a payload for delivery to a destination.

        Never raises for delivery problems; outcomes are reported as
        completion events. An endpoint URL spelled differently from the
        registered one (case, trailing slash) resolves to the same queue.
        An unknown destination gets an ad-hoc queue without rate limit
        instead of losing the payload.

        Args:
            destination_id: Destination identity
            payload: JSON-serializable body or CapturePayload
            destination_name: Display name for notifications

        Returns:
            Identity of the queue holding the entry, None after shutdown
        """
        if self._stopped:
            logger.warning(
                "Enqueue after shutdown ignored",
                destination_id=destination_id
            )
            return None

        queue = self._lookup(destination_id)
        if queue is None:
            logger.warning(
                "Enqueue for unregistered destination",
                destination_id=destination_id,
                error=str(UnknownDestinationError(destination_id))
            )
            queue = DestinationQueue(Destination.ad_hoc(destination_id, destination_name))
            self._queues[queue.destination_id] = queue
        destination_id = queue.destination_id

        if isinstance(payload, CapturePayload):
            payload = payload.to_body()

        now = self.scheduler.now()
        name = destination_name or queue.destination.name
        deferred = queue.would_defer(now)
        queue.append(QueueEntry(payload=payload, enqueued_at=now, destination_name=name))

        logger.info(
            "Entry enqueued",
            destination_id=destination_id,
            depth=len(queue),
            deferred=deferred
        )

        if deferred:
            self.progress.start(destination_id, name)

        self._schedule(destination_id)
        return destination_id

    def _lookup(self, destination_id: str) -> Optional[DestinationQueue]:
        queue = self._queues.get(destination_id)
        if queue is not None:
            return queue
        try:
            return self._queues.get(normalize_endpoint_url(destination_id))
        except ValueError:
            return None

    def _schedule(self, destination_id: str) -> None:
        queue = self._queues.get(destination_id)
        if queue is None or self._stopped:
            return

        while len(queue):
            now = self.scheduler.now()
            wait = queue.wait_time(now)
            if wait > 0:
                queue.timer.arm(self.scheduler, wait, self._schedule, destination_id)
                logger.debug(
                    "Dispatch deferred",
                    destination_id=destination_id,
                    wait_seconds=round(wait, 3),
                    depth=len(queue)
                )
                return

            queue.timer.cancel()
            entry = queue.pop_for_dispatch(now)
            self.progress.clear(destination_id, "dispatched")
            self._dispatch(queue, entry)

    def _dispatch(self, queue: DestinationQueue, entry: QueueEntry) -> None:
        logger.info(
            "Entry dispatched",
            destination_id=queue.destination_id,
            remaining=len(queue),
            queued_seconds=round(self.scheduler.now() - entry.enqueued_at, 3)
        )
        task = self.scheduler.spawn(self._send(queue.destination, entry))
        self._in_flight.add(task)
        task.add_done_callback(partial(self._on_send_complete, queue.destination_id))

    def _on_send_complete(self, destination_id: str, task: Any) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            logger.error(
                "Send task crashed",
                destination_id=destination_id,
                error=str(error),
                error_type=type(error).__name__
            )

        self._schedule(destination_id)

    # -- inspection --------------------------------------------------------

    def get_queue(self, destination_id: str) -> Optional[DestinationQueue]:
        return self._lookup(destination_id)

    def destination_ids(self) -> List[str]:
        return list(self._queues)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def _estimate(self, destination_id: str) -> Optional[Tuple[int, int]]:
        queue = self._queues.get(destination_id)
        if queue is None or not len(queue):
            return None
        return len(queue), queue.estimated_seconds_remaining(self.scheduler.now())

    def estimate(self, destination_id: str) -> Optional[ProgressEvent]:
        """Current progress description for a destination, None when idle."""
        estimate = self._estimate(destination_id)
        if estimate is None:
            return None
        queue = self._queues[destination_id]
        return ProgressEvent(
            destination_id=destination_id,
            destination_name=queue.destination.name,
            position_count=estimate[0],
            estimated_seconds_remaining=estimate[1]
        )

    def status(self, destination_id: str) -> Optional[Dict[str, Any]]:
        queue = self._lookup(destination_id)
        if queue is None:
            return None
        return queue.status(self.scheduler.now())

    def snapshot(self) -> List[Dict[str, Any]]:
        now = self.scheduler.now()
        return [queue.status(now) for queue in self._queues.values()]

    # -- lifecycle ----------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait for in-flight asyncio sends to finish."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def shutdown(self) -> None:
        """
        Stop dispatching.

        Cancels wake-up timers and progress notifications and drops the
        queued entries. Sends already in flight run to completion but
        dispatch nothing further, and later enqueues are ignored.
        """
        self._stopped = True
        dropped = 0
        for queue in self._queues.values():
            queue.timer.cancel()
            dropped += len(queue)
            queue.clear()
        self.progress.clear_all("shutdown")
        logger.info(
            "Queue manager stopped",
            destinations=len(self._queues),
            dropped_entries=dropped,
            in_flight=len(self._in_flight)
        )
