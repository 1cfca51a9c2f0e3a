"""
Module: delivery/retry.py
Description: Retry policy for payload delivery.

Wraps single push attempts in a tenacity retry loop with a flat delay:
one delay after a non-2xx response, a longer one after a network error.
Every delivery ends in exactly one completion event, published on the
notification hub and returned to the caller. Failed entries are dropped
once retries run out; nothing is re-enqueued.
"""

import asyncio
from functools import partial
from typing import Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from delivery.push import PushDeliveryClient
from models.destination import Destination
from models.entry import QueueEntry
from models.errors import (
    NetworkDeliveryError,
    RetryableDeliveryError,
    TerminalDeliveryError,
)
from models.events import CompletionEvent
from notifications.hub import NotificationHub
from utils.logger import get_logger

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class DeliveryService:
    """
    Delivers queue entries with flat-backoff retries.

    Attributes:
        max_attempts: Delivery attempts per entry, the first one included
        http_retry_delay: Seconds before retrying a non-2xx response
        network_retry_delay: Seconds before retrying a network error
    """

    def __init__(
        self,
        transport: PushDeliveryClient,
        hub: Optional[NotificationHub] = None,
        max_attempts: int = 3,
        http_retry_delay: float = 1.0,
        network_retry_delay: float = 2.0,
        sleep: SleepFn = asyncio.sleep
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.transport = transport
        self.hub = hub
        self.max_attempts = max_attempts
        self.http_retry_delay = http_retry_delay
        self.network_retry_delay = network_retry_delay
        self._sleep = sleep

    def _flat_backoff(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception()
        if isinstance(error, NetworkDeliveryError):
            return self.network_retry_delay
        return self.http_retry_delay

    def _log_retry(self, destination_id: str, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        logger.info(
            "Retrying delivery",
            destination_id=destination_id,
            attempt=retry_state.attempt_number,
            delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(error)
        )

    async def send(
        self,
        destination: Destination,
        entry: QueueEntry,
        attempts_remaining: Optional[int] = None
    ) -> CompletionEvent:
        """
        Deliver one entry, retrying transient failures.

        Args:
            destination: Destination the entry was queued for
            entry: Entry to deliver
            attempts_remaining: Attempts left for this entry, the first one
                included (defaults to max_attempts)

        Returns:
            The completion event that was published
        """
        if attempts_remaining is None:
            attempts_remaining = self.max_attempts

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(attempts_remaining, 1)),
            wait=self._flat_backoff,
            retry=retry_if_exception_type(RetryableDeliveryError),
            before_sleep=partial(self._log_retry, destination.id),
            sleep=self._sleep,
            reraise=True
        )

        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    status_code = await self.transport.deliver(destination, entry.payload)

        except RetryableDeliveryError as e:
            failure = TerminalDeliveryError(e.outcome, e.detail, attempts, e.status_code)
            event = self._failure_event(destination, entry, failure)

        except TerminalDeliveryError as e:
            e.attempts = attempts
            event = self._failure_event(destination, entry, e)

        except Exception as e:
            failure = TerminalDeliveryError("networkError", str(e) or type(e).__name__, attempts)
            event = self._failure_event(destination, entry, failure)

        else:
            event = CompletionEvent(
                destination_id=destination.id,
                destination_name=entry.destination_name,
                outcome="success",
                detail=str(status_code),
                attempts=attempts,
                status_code=status_code
            )
            logger.info(
                "Delivery succeeded",
                destination_id=destination.id,
                attempts=attempts,
                status_code=status_code
            )

        if self.hub is not None:
            self.hub.publish(event)
        return event

    def _failure_event(
        self,
        destination: Destination,
        entry: QueueEntry,
        failure: TerminalDeliveryError
    ) -> CompletionEvent:
        logger.error(
            "Delivery failed",
            destination_id=destination.id,
            outcome=failure.outcome,
            detail=failure.detail,
            attempts=failure.attempts,
            status_code=failure.status_code
        )
        return CompletionEvent(
            destination_id=destination.id,
            destination_name=entry.destination_name,
            outcome=failure.outcome,
            detail=failure.detail,
            attempts=max(failure.attempts, 1),
            status_code=failure.status_code
        )
