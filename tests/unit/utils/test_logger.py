"""
Module: test_logger.py
Description: Unit tests for the structlog configuration.
"""

from structlog.testing import capture_logs

from utils.logger import MAX_FIELD_LENGTH, _truncate_long_fields, get_logger


def test_records_carry_module_name():
    with capture_logs() as captured:
        get_logger("dispatch_queue.manager").warning("Dispatch deferred", destination_id="notes")

    assert captured == [{
        "module": "dispatch_queue.manager",
        "destination_id": "notes",
        "event": "Dispatch deferred",
        "log_level": "warning",
    }]


class TestTruncateLongFields:
    """Field-length processor."""

    def test_long_response_body_is_cut(self):
        event_dict = {"event": "Delivery HTTP error", "response": "x" * (MAX_FIELD_LENGTH + 100)}

        result = _truncate_long_fields(None, "warning", event_dict)

        assert result["response"] == "x" * MAX_FIELD_LENGTH + "...[truncated]"

    def test_short_and_non_string_fields_untouched(self):
        event_dict = {"event": "Entry enqueued", "destination_id": "notes", "depth": 3}

        result = _truncate_long_fields(None, "info", dict(event_dict))

        assert result == event_dict

    def test_event_name_is_never_cut(self):
        message = "m" * (MAX_FIELD_LENGTH + 1)

        result = _truncate_long_fields(None, "info", {"event": message})

        assert result["event"] == message
