"""
Module: dependencies.py
Description: Relay wiring and FastAPI dependency providers.

Key Components:
- Relay: The collaborating components of one running service
- build_relay(): Construct and connect them from settings
- get_relay() and friends: Dependency injection for route handlers

Dependencies: FastAPI
Author: Webhook Relay Team
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from config.settings import Settings
from delivery.push import PushDeliveryClient
from delivery.retry import DeliveryService
from dispatch_queue.manager import QueueManager
from dispatch_queue.scheduling import AsyncioScheduler, Scheduler
from notifications.hub import NotificationHub
from notifications.render import NotificationRenderer
from registry.destinations import DestinationRegistry
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Relay:
    """Components of a running relay, shared by all requests."""

    registry: DestinationRegistry
    manager: QueueManager
    delivery: DeliveryService
    transport: PushDeliveryClient
    hub: NotificationHub
    renderer: NotificationRenderer


def build_relay(
    app_settings: Settings,
    scheduler: Optional[Scheduler] = None,
    transport: Optional[PushDeliveryClient] = None
) -> Relay:
    """
    Build a relay from settings.

    The registry feeds the queue manager: every registry change is
    pushed through QueueManager.configure().

    Args:
        app_settings: Application settings
        scheduler: Scheduler to run on (asyncio by default)
        transport: Push client (built from settings by default)

    Returns:
        Wired Relay
    """
    scheduler = scheduler or AsyncioScheduler()
    hub = NotificationHub()
    renderer = NotificationRenderer(history_size=app_settings.notification_history_size)
    renderer.attach(hub)

    transport = transport or PushDeliveryClient(timeout_seconds=app_settings.delivery_timeout)
    delivery = DeliveryService(
        transport,
        hub=hub,
        max_attempts=app_settings.max_attempts,
        http_retry_delay=app_settings.http_retry_delay,
        network_retry_delay=app_settings.network_retry_delay,
        sleep=scheduler.sleep
    )
    manager = QueueManager(
        scheduler,
        delivery.send,
        hub=hub,
        notification_interval=app_settings.notification_interval,
        notification_max_lifetime=app_settings.notification_max_lifetime
    )

    registry = DestinationRegistry()
    registry.on_change(manager.configure)

    if app_settings.destinations_file:
        registry.load_file(app_settings.destinations_file)

    logger.info(
        "Relay built",
        destinations=len(registry.list()),
        max_attempts=app_settings.max_attempts,
        notification_interval=app_settings.notification_interval
    )
    return Relay(
        registry=registry,
        manager=manager,
        delivery=delivery,
        transport=transport,
        hub=hub,
        renderer=renderer
    )


def get_relay(request: Request) -> Relay:
    """Dependency returning the relay created at application startup."""
    return request.app.state.relay


def get_queue_manager(relay: Relay = Depends(get_relay)) -> QueueManager:
    return relay.manager


def get_registry(relay: Relay = Depends(get_relay)) -> DestinationRegistry:
    return relay.registry


def get_transport(relay: Relay = Depends(get_relay)) -> PushDeliveryClient:
    return relay.transport
