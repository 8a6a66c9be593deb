"""
Unit tests for the EventBus.
"""

import asyncio

import pytest

from src.core.event.bus import EventBus, event_matches
from src.core.event.types import ListenerPriority


@pytest.mark.unit
class TestEventMatches:
    @pytest.mark.parametrize(
        "pattern,expected",
        [
            ("progression.leveled_up", True),
            ("progression.*", True),
            ("*.leveled_up", True),
            ("*", True),
            ("progression.**", True),
            ("pro*.*up", True),
            ("assessment.*", False),
            ("progression.session_recorded", False),
        ],
    )
    def test_patterns(self, pattern, expected):
        assert event_matches("progression.leveled_up", pattern) is expected


@pytest.mark.unit
class TestSubscription:
    def test_rejects_callback_without_payload_argument(self, event_bus):
        with pytest.raises(ValueError):
            event_bus.subscribe("progression.leveled_up", lambda: None)

    def test_duplicate_identifier_registered_once(self, event_bus):
        event_bus.subscribe("a", lambda p: None, identifier="listener")
        event_bus.subscribe("a", lambda p: None, identifier="listener")

        assert event_bus.get_listener_count("a") == 1

    def test_unsubscribe(self, event_bus):
        listener_id = event_bus.subscribe("a", lambda p: None)

        assert event_bus.unsubscribe("a", listener_id) is True
        assert event_bus.unsubscribe("a", listener_id) is False
        assert event_bus.get_listener_count() == 0

    def test_clear(self, event_bus):
        event_bus.subscribe("a", lambda p: None, identifier="one")
        event_bus.subscribe("b", lambda p: None, identifier="two")

        event_bus.clear()

        assert event_bus.get_listener_count() == 0


@pytest.mark.unit
class TestPublish:
    async def test_no_listeners_returns_empty(self, event_bus):
        assert await event_bus.publish("progression.leveled_up", {"user_id": "u"}) == []

    async def test_priority_order(self, event_bus):
        calls = []
        event_bus.subscribe(
            "evt", lambda p: calls.append("normal"), identifier="normal"
        )
        event_bus.subscribe(
            "evt",
            lambda p: calls.append("critical"),
            priority=ListenerPriority.CRITICAL,
            identifier="critical",
        )
        event_bus.subscribe(
            "evt",
            lambda p: calls.append("high"),
            priority=ListenerPriority.HIGH,
            identifier="high",
        )

        await event_bus.publish("evt", {})

        assert calls == ["critical", "high", "normal"]

    async def test_async_and_sync_results_collected(self, event_bus):
        async def doubled(payload):
            return payload["value"] * 2

        event_bus.subscribe("evt", doubled, identifier="async")
        event_bus.subscribe("evt", lambda p: p["value"] + 1, identifier="sync")

        results = await event_bus.publish("evt", {"value": 4})

        assert sorted(results) == [5, 8]

    async def test_wildcard_listener_receives_payload(self, event_bus):
        received = []
        event_bus.subscribe("progression.*", received.append)

        await event_bus.publish("progression.xp_awarded", {"user_id": "u", "amount": 5})

        assert received == [{"user_id": "u", "amount": 5}]

    async def test_once_listener_runs_one_time(self, event_bus):
        received = []
        event_bus.subscribe("evt", received.append, once=True)

        await event_bus.publish("evt", {"n": 1})
        await event_bus.publish("evt", {"n": 2})

        assert received == [{"n": 1}]

    async def test_failing_listener_is_isolated(self, event_bus):
        received = []

        def broken(payload):
            raise RuntimeError("listener crashed")

        event_bus.subscribe("evt", broken, identifier="broken")
        event_bus.subscribe("evt", received.append, identifier="ok")

        results = await event_bus.publish("evt", {"n": 1})

        assert received == [{"n": 1}]
        assert None in results
        assert event_bus.get_metrics_summary()["errors_by_event"] == {"evt": 1}

    async def test_slow_high_listener_times_out(self):
        bus = EventBus(high_timeout_seconds=0.01)

        async def slow(payload):
            await asyncio.sleep(1)

        bus.subscribe("evt", slow, priority=ListenerPriority.HIGH)

        assert await bus.publish("evt", {}) == [None]
        assert bus.get_metrics_summary()["total_errors"] == 1

    async def test_low_priority_runs_in_background_until_drained(self, event_bus):
        received = []

        async def telemetry(payload):
            await asyncio.sleep(0)
            received.append(payload)

        event_bus.subscribe("evt", telemetry, priority=ListenerPriority.LOW)

        results = await event_bus.publish("evt", {"n": 1})
        await event_bus.drain()

        assert results == []
        assert received == [{"n": 1}]

    async def test_metrics_count_published_events(self, event_bus):
        await event_bus.publish("a", {})
        await event_bus.publish("a", {})
        await event_bus.publish("b", {})

        metrics = event_bus.get_metrics_summary()

        assert metrics["total_events_published"] == 3
        assert metrics["events_by_type"] == {"a": 2, "b": 1}
