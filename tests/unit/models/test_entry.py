"""
Module: test_entry.py
Description: Unit tests for queue entries and capture payloads.
"""

import pytest
from pydantic import ValidationError

from models.entry import CapturePayload, QueueEntry, sample_capture


class TestQueueEntry:
    """Tests for QueueEntry."""

    def test_entry_is_immutable(self, sample_payload):
        entry = QueueEntry(payload=sample_payload, enqueued_at=1000.0, destination_name="Notes")

        with pytest.raises(ValidationError):
            entry.destination_name = "Other"

    def test_default_destination_name(self):
        entry = QueueEntry(payload={}, enqueued_at=0.0)

        assert entry.destination_name == "Webhook"


class TestCapturePayload:
    """Tests for CapturePayload serialization."""

    def test_page_capture_body(self):
        capture = CapturePayload(
            url="https://example.com/article",
            pageUrl="https://example.com/article",
            type="page",
            title="An article",
            timestamp="2024-01-15T10:30:00.000Z"
        )

        body = capture.to_body()

        assert body["url"] == "https://example.com/article"
        assert body["pageUrl"] == "https://example.com/article"
        assert body["type"] == "page"
        assert body["timestamp"] == "2024-01-15T10:30:00.000Z"
        assert "selectedText" not in body
        assert "customFields" not in body

    def test_selection_includes_selected_text(self):
        capture = CapturePayload(url="https://example.com", type="selection", selectedText="quoted")

        assert capture.to_body()["selectedText"] == "quoted"

    def test_selected_text_dropped_for_other_types(self):
        capture = CapturePayload(url="https://example.com", type="link", selectedText="quoted")

        assert capture.selected_text is None
        assert "selectedText" not in capture.to_body()

    def test_blank_note_becomes_none(self):
        capture = CapturePayload(url="https://example.com", note="   ")

        assert capture.note is None

    def test_custom_fields_included_when_present(self):
        capture = CapturePayload(url="https://example.com", customFields={"project": "relay"})

        assert capture.to_body()["customFields"] == {"project": "relay"}

    def test_timestamp_defaults_to_utc_iso(self):
        capture = CapturePayload(url="https://example.com")

        assert capture.timestamp.endswith("Z")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            CapturePayload(url="https://example.com", type="video")

    def test_sample_capture(self):
        body = sample_capture().to_body()

        assert body["type"] == "test"
        assert body["altText"] == "Image alt text if it was a link type"
