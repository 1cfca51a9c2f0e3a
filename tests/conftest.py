"""
Module: conftest.py
Description: Shared pytest fixtures for Webhook Relay tests.

Provides test settings, sample destinations, a virtual-time scheduler
and a recording sender so queue behaviour can be checked without real
waiting or network access.
"""

import pytest
from pydantic import Field
from pydantic_settings import SettingsConfigDict

from config.settings import Settings
from dispatch_queue.manager import QueueManager
from dispatch_queue.scheduling import VirtualScheduler
from models.destination import Destination
from models.events import CompletionEvent, ProgressCleared, ProgressEvent
from notifications.hub import NotificationHub


class TestSettings(Settings):
    """Test settings that don't read the environment or .env files."""

    __test__ = False

    model_config = SettingsConfigDict(
        env_file=None,  # Disable .env file loading for tests
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = Field(default="Webhook Relay Test", description="Application name")
    app_version: str = Field(default="0.1.0-test", description="Application version")
    log_level: str = Field(default="DEBUG", description="Logging level")


class RecordingSender:
    """
    Stand-in for DeliveryService.send that records dispatches.

    Each record is (scheduler time, destination id, payload).
    """

    def __init__(self, scheduler):
        self.scheduler = scheduler
        self.dispatches = []
        self.completed = []

    async def __call__(self, destination, entry):
        self.dispatches.append((self.scheduler.now(), destination.id, entry.payload))
        self.completed.append(entry)

    @property
    def payloads(self):
        return [payload for _, _, payload in self.dispatches]

    @property
    def times(self):
        return [when for when, _, _ in self.dispatches]


class EventRecorder:
    """Collects every event published on a hub."""

    def __init__(self, hub):
        self.events = []
        hub.subscribe(self.events.append)

    def of_type(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]

    @property
    def progress(self):
        return self.of_type(ProgressEvent)

    @property
    def cleared(self):
        return self.of_type(ProgressCleared)

    @property
    def completions(self):
        return self.of_type(CompletionEvent)


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables environment variable loading for predictable tests.
    """
    return TestSettings()


@pytest.fixture
def scheduler():
    """Virtual clock starting at t=1000s."""
    return VirtualScheduler(start=1000.0)


@pytest.fixture
def hub():
    return NotificationHub()


@pytest.fixture
def recorder(hub):
    return EventRecorder(hub)


@pytest.fixture
def sender(scheduler):
    return RecordingSender(scheduler)


@pytest.fixture
def manager(scheduler, sender, hub):
    """QueueManager on virtual time with a recording sender."""
    return QueueManager(scheduler, sender, hub=hub)


@pytest.fixture
def limited_destination():
    """Destination allowing one dispatch every 10 seconds."""
    return Destination(
        id="notes",
        name="Notes",
        endpoint_url="https://hooks.example.com/notes",
        rate_limit_seconds=10
    )


@pytest.fixture
def unlimited_destination():
    """Destination without rate limit."""
    return Destination(
        id="inbox",
        name="Inbox",
        endpoint_url="https://hooks.example.com/inbox",
        rate_limit_seconds=0
    )


@pytest.fixture
def sample_payload():
    """Typical page capture body."""
    return {
        "url": "https://example.com/article",
        "pageUrl": "https://example.com/article",
        "type": "page",
        "title": "An article",
        "note": None
    }
