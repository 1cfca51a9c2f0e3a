"""
Module: hub.py
Description: In-process publish/subscribe channel for relay events.

The queue manager, progress tracker and delivery wrapper publish
CompletionEvent, ProgressEvent and ProgressCleared instances here;
renderers and API consumers subscribe to them.
"""

from typing import Any, Callable, List, Optional, Tuple, Type

from utils.logger import get_logger

logger = get_logger(__name__)

Listener = Callable[[Any], None]


class NotificationHub:
    """
    Synchronous event fan-out.

    Listeners run in subscription order on the publishing thread. A
    failing listener is logged and skipped so one observer cannot break
    delivery or another observer.
    """

    def __init__(self):
        self._listeners: List[Tuple[Listener, Optional[Tuple[Type, ...]]]] = []

    def subscribe(self, listener: Listener, *event_types: Type) -> Callable[[], None]:
        """
        Register a listener, optionally restricted to some event types.

        Args:
            listener: Callable receiving each matching event
            event_types: Event classes to receive (all events when empty)

        Returns:
            Function that removes the subscription
        """
        subscription = (listener, event_types or None)
        self._listeners.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._listeners:
                self._listeners.remove(subscription)

        return unsubscribe

    def publish(self, event: Any) -> None:
        for listener, event_types in list(self._listeners):
            if event_types is not None and not isinstance(event, event_types):
                continue
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    "Notification listener failed",
                    event_type=type(event).__name__,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e)
                )
