"""
Module: test_queue_manager.py
Description: Unit tests for the per-destination queue manager.

Runs the manager on a virtual clock with a recording sender to check
dispatch spacing, FIFO order, the single wake-up timer, progress
notifications and reconfiguration.
"""

import pytest

from dispatch_queue.manager import QueueManager
from models.entry import CapturePayload


class TestUnlimitedDestination:
    """Destinations with a rate limit of 0."""

    def test_entries_dispatch_immediately_in_order(self, manager, sender, scheduler, recorder, unlimited_destination):
        manager.configure([unlimited_destination])

        for i in range(5):
            manager.enqueue("inbox", {"n": i}, "Inbox")
        scheduler.advance(0)

        assert sender.payloads == [{"n": i} for i in range(5)]
        assert sender.times == [1000.0] * 5
        assert recorder.progress == []
        assert recorder.cleared == []
        assert len(manager.get_queue("inbox")) == 0

    def test_no_timer_is_armed(self, manager, scheduler, unlimited_destination):
        manager.configure([unlimited_destination])

        manager.enqueue("inbox", {"n": 1}, "Inbox")
        manager.enqueue("inbox", {"n": 2}, "Inbox")

        assert scheduler.pending_timers() == []
        assert manager.get_queue("inbox").timer.armed is False


class TestRateLimitedDestination:
    """Destinations with a positive rate limit."""

    def test_dispatches_are_spaced_by_rate_limit(self, manager, sender, scheduler, limited_destination):
        manager.configure([limited_destination])

        for i in range(4):
            manager.enqueue("notes", {"n": i}, "Notes")
        scheduler.advance(60)

        assert sender.payloads == [{"n": i} for i in range(4)]
        assert sender.times == [1000.0, 1010.0, 1020.0, 1030.0]
        gaps = [b - a for a, b in zip(sender.times, sender.times[1:])]
        assert all(gap >= 10 for gap in gaps)

    def test_draining_n_entries_takes_at_least_n_minus_one_intervals(self, manager, sender, scheduler, limited_destination):
        manager.configure([limited_destination])

        for i in range(25):
            manager.enqueue("notes", {"n": i}, "Notes")
        scheduler.advance(1000)

        assert len(sender.dispatches) == 25
        assert sender.times[-1] - sender.times[0] >= 24 * 10
        assert sender.payloads == [{"n": i} for i in range(25)]

    def test_first_entry_is_not_deferred(self, manager, sender, scheduler, recorder, limited_destination):
        manager.configure([limited_destination])

        manager.enqueue("notes", {"n": 1}, "Notes")
        scheduler.advance(0)

        assert sender.times == [1000.0]
        assert recorder.progress == []

    def test_second_entry_waits_for_interval(self, manager, sender, scheduler, recorder, limited_destination):
        manager.configure([limited_destination])

        manager.enqueue("notes", {"n": 1}, "Notes")
        manager.enqueue("notes", {"n": 2}, "Notes")
        scheduler.advance(9)

        assert sender.payloads == [{"n": 1}]
        assert recorder.progress[0].position_count == 1
        assert recorder.progress[0].estimated_seconds_remaining == 10

        scheduler.advance(1)

        assert sender.payloads == [{"n": 1}, {"n": 2}]
        assert sender.times[1] == 1010.0

    def test_rate_limit_memory_survives_idle_queue(self, manager, sender, scheduler, limited_destination):
        manager.configure([limited_destination])

        manager.enqueue("notes", {"n": 1}, "Notes")
        scheduler.advance(3)
        manager.enqueue("notes", {"n": 2}, "Notes")
        scheduler.advance(6)

        assert len(sender.dispatches) == 1

        scheduler.advance(1)

        assert sender.times == [1000.0, 1010.0]

    def test_at_most_one_wakeup_timer(self, manager, scheduler, limited_destination):
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 0}, "Notes")

        for i in range(1, 6):
            manager.enqueue("notes", {"n": i}, "Notes")
            # one queue wake-up + one progress update + one progress expiry
            assert len(scheduler.pending_timers()) == 3
            assert manager.get_queue("notes").timer.armed

    def test_arming_replaces_previous_timer(self, manager, scheduler, limited_destination):
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 0}, "Notes")
        manager.enqueue("notes", {"n": 1}, "Notes")

        queue = manager.get_queue("notes")
        first_handle = queue.timer._handle

        manager.enqueue("notes", {"n": 2}, "Notes")

        assert first_handle.cancelled()
        assert queue.timer._handle is not first_handle

    def test_rate_limit_measures_dispatch_not_completion(self, scheduler, hub, limited_destination):
        completions = []

        async def slow_sender(destination, entry):
            await scheduler.sleep(25)
            completions.append(scheduler.now())

        manager = QueueManager(scheduler, slow_sender, hub=hub)
        manager.configure([limited_destination])

        manager.enqueue("notes", {"n": 1}, "Notes")
        manager.enqueue("notes", {"n": 2}, "Notes")
        scheduler.advance(10)

        assert manager.get_queue("notes").last_sent_at == 1010.0
        assert len(manager.get_queue("notes")) == 0
        assert manager.in_flight == 2

        scheduler.advance(30)

        assert completions == [1025.0, 1035.0]
        assert manager.in_flight == 0


class TestProgressNotifications:
    """Progress events for deferred entries."""

    def test_deferred_by_cooldown_scenario(self, manager, sender, scheduler, recorder, limited_destination):
        manager.configure([limited_destination])
        manager.get_queue("notes").last_sent_at = scheduler.now() - 2

        manager.enqueue("notes", {"n": 1}, "Notes")

        assert len(recorder.progress) == 1
        event = recorder.progress[0]
        assert event.destination_id == "notes"
        assert event.destination_name == "Notes"
        assert event.position_count == 1
        assert event.estimated_seconds_remaining == 8

        scheduler.advance(7)
        assert sender.dispatches == []

        scheduler.advance(1)
        assert sender.times == [1008.0]
        assert [c.reason for c in recorder.cleared] == ["dispatched"]

    def test_progress_updates_at_interval(self, scheduler, sender, hub, recorder, limited_destination):
        manager = QueueManager(scheduler, sender, hub=hub, notification_interval=2)
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 1}, "Notes")
        manager.enqueue("notes", {"n": 2}, "Notes")

        scheduler.advance(5)

        assert [e.estimated_seconds_remaining for e in recorder.progress] == [10, 8, 6]

    def test_estimate_counts_queue_position(self, manager, recorder, limited_destination):
        manager.configure([limited_destination])

        manager.enqueue("notes", {"n": 1}, "Notes")
        manager.enqueue("notes", {"n": 2}, "Notes")
        manager.enqueue("notes", {"n": 3}, "Notes")

        last = recorder.progress[-1]
        assert last.position_count == 2
        assert last.estimated_seconds_remaining == 20

    def test_one_live_notification_per_destination(self, manager, limited_destination):
        manager.configure([limited_destination])

        for i in range(4):
            manager.enqueue("notes", {"n": i}, "Notes")

        assert manager.progress.is_active("notes")
        assert list(manager.progress._live) == ["notes"]

    def test_notification_expires_after_hard_ceiling(self, scheduler, sender, hub, recorder):
        manager = QueueManager(scheduler, sender, hub=hub)
        manager.configure([{
            "id": "slow",
            "name": "Slow",
            "endpoint_url": "https://hooks.example.com/slow",
            "rate_limit_seconds": 100
        }])
        manager.enqueue("slow", {"n": 1}, "Slow")
        manager.enqueue("slow", {"n": 2}, "Slow")

        scheduler.advance(60)

        assert [c.reason for c in recorder.cleared] == ["expired"]
        assert len(recorder.progress) == 12
        assert not manager.progress.is_active("slow")

        scheduler.advance(40)

        assert sender.times == [1000.0, 1100.0]
        assert [c.reason for c in recorder.cleared] == ["expired"]

    def test_notification_uses_name_captured_at_enqueue(self, manager, recorder, limited_destination):
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 1}, "Notes")
        manager.enqueue("notes", {"n": 2}, "Reading list")

        assert recorder.progress[-1].destination_name == "Reading list"


class TestConfigure:
    """QueueManager.configure() behaviour."""

    def test_configure_is_idempotent(self, manager, scheduler, limited_destination):
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 1}, "Notes")
        queue = manager.get_queue("notes")

        manager.configure([limited_destination])
        manager.configure([limited_destination])

        assert manager.get_queue("notes") is queue
        assert queue.last_sent_at == 1000.0
        assert manager.destination_ids() == ["notes"]

    def test_reconfigure_keeps_pending_entries(self, manager, sender, scheduler, limited_destination):
        manager.configure([limited_destination])
        for i in range(3):
            manager.enqueue("notes", {"n": i}, "Notes")
        scheduler.advance(0)

        manager.configure([limited_destination.model_copy(update={"rate_limit_seconds": 20})])
        manager.configure([limited_destination.model_copy(update={"rate_limit_seconds": 5})])

        queue = manager.get_queue("notes")
        assert len(queue) == 2
        assert queue.rate_limit_seconds == 5
        assert queue.last_sent_at == 1000.0

        scheduler.advance(20)

        assert sender.payloads == [{"n": 0}, {"n": 1}, {"n": 2}]
        assert sender.times == [1000.0, 1005.0, 1010.0]

    def test_longer_rate_limit_rearms_timer(self, manager, sender, scheduler, limited_destination):
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 0}, "Notes")
        manager.enqueue("notes", {"n": 1}, "Notes")

        manager.configure([limited_destination.model_copy(update={"rate_limit_seconds": 30})])
        scheduler.advance(29)

        assert sender.payloads == [{"n": 0}]

        scheduler.advance(1)

        assert sender.times == [1000.0, 1030.0]

    def test_removed_destination_still_drains(self, manager, sender, scheduler, limited_destination, unlimited_destination):
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 0}, "Notes")
        manager.enqueue("notes", {"n": 1}, "Notes")

        manager.configure([unlimited_destination])
        scheduler.advance(10)

        assert sender.times == [1000.0, 1010.0]
        assert set(manager.destination_ids()) == {"notes", "inbox"}

    def test_invalid_destinations_are_rejected(self, manager):
        rejected = manager.configure([
            {"name": "Bad", "endpoint_url": "https://bad.example.com/hook", "rate_limit_seconds": -1},
            {"name": "Good", "endpoint_url": "https://good.example.com/hook", "rate_limit_seconds": 3},
        ])

        assert len(rejected) == 1
        assert rejected[0].destination_id == "https://bad.example.com/hook"
        assert rejected[0].errors[0]["loc"] == ["rate_limit_seconds"]
        assert manager.get_queue("https://bad.example.com/hook") is None
        assert manager.get_queue("https://good.example.com/hook").rate_limit_seconds == 3

    def test_non_mapping_destination_is_rejected(self, manager):
        rejected = manager.configure(["https://example.com"])

        assert len(rejected) == 1
        assert manager.destination_ids() == []


class TestEnqueue:
    """QueueManager.enqueue() edge cases."""

    def test_unknown_destination_gets_ad_hoc_queue(self, manager, sender, scheduler):
        manager.enqueue("https://hooks.example.com/adhoc", {"n": 1}, "Adhoc")
        manager.enqueue("https://hooks.example.com/adhoc", {"n": 2}, "Adhoc")
        scheduler.advance(0)

        queue = manager.get_queue("https://hooks.example.com/adhoc")
        assert queue.rate_limit_seconds == 0
        assert queue.destination.name == "Adhoc"
        assert sender.payloads == [{"n": 1}, {"n": 2}]

    def test_url_spelling_resolves_to_registered_queue(self, manager, sender, scheduler):
        manager.configure([{
            "name": "Hooks",
            "endpoint_url": "https://Hooks.Example.com/",
            "rate_limit_seconds": 10
        }])

        manager.enqueue("https://Hooks.Example.com/", {"n": 1}, "Hooks")
        manager.enqueue("https://hooks.example.com", {"n": 2}, "Hooks")
        scheduler.advance(10)

        assert manager.destination_ids() == ["https://hooks.example.com"]
        assert sender.dispatches == [
            (1000.0, "https://hooks.example.com", {"n": 1}),
            (1010.0, "https://hooks.example.com", {"n": 2}),
        ]
        assert manager.get_queue("https://HOOKS.example.com/") is manager.get_queue("https://hooks.example.com")
        assert manager.status("https://Hooks.Example.com/")["destination_id"] == "https://hooks.example.com"

    def test_ad_hoc_queue_is_shared_across_url_spellings(self, manager, sender, scheduler):
        first = manager.enqueue("https://Adhoc.Example.com/", {"n": 1}, "Adhoc")
        second = manager.enqueue("https://adhoc.example.com", {"n": 2}, "Adhoc")
        scheduler.advance(0)

        assert first == second == "https://adhoc.example.com"
        assert manager.destination_ids() == ["https://adhoc.example.com"]
        assert sender.payloads == [{"n": 1}, {"n": 2}]

    def test_unknown_destination_that_is_not_a_url_is_not_lost(self, manager, sender, scheduler):
        manager.enqueue("not a url", {"n": 1}, "Broken")
        scheduler.advance(0)

        assert sender.dispatches == [(1000.0, "not a url", {"n": 1})]

    def test_capture_payload_is_serialized(self, manager, sender, scheduler, unlimited_destination):
        manager.configure([unlimited_destination])
        capture = CapturePayload(url="https://example.com/a", pageUrl="https://example.com", type="link", linkTitle="A")

        manager.enqueue("inbox", capture, "Inbox")
        scheduler.advance(0)

        body = sender.payloads[0]
        assert body["url"] == "https://example.com/a"
        assert body["linkTitle"] == "A"
        assert "selectedText" not in body

    def test_enqueue_uses_registered_name_by_default(self, manager, sender, scheduler, unlimited_destination):
        manager.configure([unlimited_destination])
        manager.enqueue("inbox", {"n": 1})
        scheduler.advance(0)

        assert sender.completed[0].destination_name == "Inbox"

    def test_failing_send_does_not_block_queue(self, scheduler, hub, limited_destination):
        dispatched = []

        async def flaky_sender(destination, entry):
            dispatched.append(entry.payload["n"])
            if entry.payload["n"] == 0:
                raise RuntimeError("boom")

        manager = QueueManager(scheduler, flaky_sender, hub=hub)
        manager.configure([limited_destination])
        for i in range(3):
            manager.enqueue("notes", {"n": i}, "Notes")

        scheduler.advance(20)

        assert dispatched == [0, 1, 2]
        assert manager.in_flight == 0

    def test_destinations_are_independent(self, manager, sender, scheduler, limited_destination, unlimited_destination):
        manager.configure([limited_destination, unlimited_destination])

        manager.enqueue("notes", {"n": 0}, "Notes")
        manager.enqueue("notes", {"n": 1}, "Notes")
        manager.enqueue("inbox", {"n": 2}, "Inbox")
        scheduler.advance(0)

        assert [(d, p) for _, d, p in sender.dispatches] == [
            ("notes", {"n": 0}),
            ("inbox", {"n": 2}),
        ]


class TestInspection:
    """Status, estimate and shutdown."""

    def test_status_reports_depth_and_eta(self, manager, scheduler, limited_destination):
        manager.configure([limited_destination])
        for i in range(3):
            manager.enqueue("notes", {"n": i}, "Notes")
        scheduler.advance(4)

        status = manager.status("notes")

        assert status["depth"] == 2
        assert status["wait_seconds"] == 6
        assert status["estimated_seconds_remaining"] == 16
        assert status["timer_armed"] is True
        assert status["seconds_since_dispatch"] == 4

    def test_status_for_unknown_destination(self, manager):
        assert manager.status("missing") is None
        assert manager.estimate("missing") is None

    def test_estimate_matches_progress_formula(self, manager, scheduler, limited_destination):
        manager.configure([limited_destination])
        for i in range(4):
            manager.enqueue("notes", {"n": i}, "Notes")
        scheduler.advance(2.5)

        event = manager.estimate("notes")

        assert event.position_count == 3
        # ceil(7.5 + 2 * 10)
        assert event.estimated_seconds_remaining == 28

    def test_snapshot_lists_every_queue(self, manager, limited_destination, unlimited_destination):
        manager.configure([limited_destination, unlimited_destination])

        ids = [status["destination_id"] for status in manager.snapshot()]

        assert ids == ["notes", "inbox"]

    def test_shutdown_cancels_timers_and_notifications(self, manager, scheduler, recorder, limited_destination):
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 0}, "Notes")
        manager.enqueue("notes", {"n": 1}, "Notes")

        manager.shutdown()

        assert scheduler.pending_timers() == []
        assert [c.reason for c in recorder.cleared] == ["shutdown"]
        assert len(manager.get_queue("notes")) == 0

    def test_nothing_dispatches_after_shutdown(self, scheduler, hub, limited_destination):
        sent = []

        async def slow_sender(destination, entry):
            sent.append((scheduler.now(), entry.payload))
            await scheduler.sleep(1)

        manager = QueueManager(scheduler, slow_sender, hub=hub)
        manager.configure([limited_destination])
        manager.enqueue("notes", {"n": 1}, "Notes")
        manager.enqueue("notes", {"n": 2}, "Notes")
        scheduler.advance(0)

        manager.shutdown()
        scheduler.advance(30)

        assert sent == [(1000.0, {"n": 1})]
        assert manager.in_flight == 0
        assert scheduler.pending_timers() == []

    def test_enqueue_after_shutdown_is_ignored(self, manager, sender, scheduler, unlimited_destination):
        manager.configure([unlimited_destination])
        manager.shutdown()

        assert manager.enqueue("inbox", {"n": 1}, "Inbox") is None
        scheduler.advance(0)

        assert sender.dispatches == []


@pytest.mark.asyncio
async def test_wait_idle_awaits_asyncio_sends(limited_destination):
    from dispatch_queue.scheduling import AsyncioScheduler

    delivered = []

    async def sender(destination, entry):
        delivered.append(entry.payload)

    manager = QueueManager(AsyncioScheduler(), sender)
    manager.configure([limited_destination])
    manager.enqueue("notes", {"n": 1}, "Notes")

    await manager.wait_idle()

    assert delivered == [{"n": 1}]
    manager.shutdown()
