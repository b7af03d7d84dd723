"""
Unit Tests for EventBus
=======================

Test Coverage
-------------
- Exact and wildcard routing
- Priority ordering of awaited listeners
- Listener failure isolation and error metrics
- ``once`` listeners and duplicate identifiers
- LOW priority listeners run in the background until drained
- Listener signature validation
"""

import asyncio

import pytest

from questboard.core.event.bus import EventBus
from questboard.core.event.router import EventRouter
from questboard.core.event.types import ListenerPriority


@pytest.mark.unit
class TestEventRouter:
    @pytest.mark.parametrize(
        "event_name, pattern, expected",
        [
            ("boss.defeated", "boss.defeated", True),
            ("boss.defeated", "*", True),
            ("actor.leveled_up", "actor.*", True),
            ("boss.defeated", "actor.*", False),
            ("duel.resolved", "*.resolved", True),
            ("boss.phase.done", "boss.*.done", True),
            ("boss.done", "boss.*.done", False),
            ("Boss.defeated", "boss.*", False),
        ],
    )
    def test_matches(self, event_name, pattern, expected):
        assert EventRouter().matches(event_name, pattern) is expected


@pytest.mark.unit
class TestPublish:
    async def test_exact_and_wildcard_listeners_receive_payload(self, event_bus):
        # Arrange
        received = []

        async def exact(payload):
            received.append(("exact", payload["boss_id"]))

        async def wildcard(payload):
            received.append(("wildcard", payload["boss_id"]))

        event_bus.subscribe("boss.defeated", exact)
        event_bus.subscribe("boss.*", wildcard)

        # Act
        await event_bus.publish("boss.defeated", {"boss_id": 3})

        # Assert
        assert sorted(received) == [("exact", 3), ("wildcard", 3)]

    async def test_no_listeners_returns_empty(self, event_bus):
        assert await event_bus.publish("praise.given", {"actor_id": "a"}) == []

    async def test_priority_order(self, event_bus):
        order = []

        async def normal(payload):
            order.append("normal")

        async def critical(payload):
            order.append("critical")

        async def high(payload):
            order.append("high")

        event_bus.subscribe("duel.resolved", normal, priority=ListenerPriority.NORMAL)
        event_bus.subscribe("duel.resolved", high, priority=ListenerPriority.HIGH)
        event_bus.subscribe("duel.resolved", critical, priority=ListenerPriority.CRITICAL)

        await event_bus.publish("duel.resolved", {})

        assert order == ["critical", "high", "normal"]

    async def test_sync_listener_supported(self, event_bus):
        received = []
        event_bus.subscribe("praise.given", lambda payload: received.append(payload["actor_id"]))

        await event_bus.publish("praise.given", {"actor_id": "bob"})

        assert received == ["bob"]


@pytest.mark.unit
class TestIsolation:
    async def test_failing_listener_does_not_stop_others(self, event_bus):
        # Arrange
        received = []

        async def broken(payload):
            raise RuntimeError("listener bug")

        async def healthy(payload):
            received.append(payload)

        event_bus.subscribe("actor.leveled_up", broken, priority=ListenerPriority.HIGH)
        event_bus.subscribe("actor.leveled_up", healthy)

        # Act
        results = await event_bus.publish("actor.leveled_up", {"new_level": 2})

        # Assert
        assert received == [{"new_level": 2}]
        assert results[0] is None
        metrics = event_bus.get_metrics_summary()
        assert metrics["errors_by_event"] == {"actor.leveled_up": 1}
        assert metrics["events_by_type"] == {"actor.leveled_up": 1}

    async def test_slow_critical_listener_times_out(self, config_manager):
        # Arrange
        bus = EventBus(config_manager, critical_timeout_seconds=0.01)

        async def slow(payload):
            await asyncio.sleep(1)

        bus.subscribe("boss.spawned", slow, priority=ListenerPriority.CRITICAL)

        # Act
        results = await bus.publish("boss.spawned", {})

        # Assert
        assert results == [None]
        assert bus.get_metrics_summary()["total_errors"] == 1


@pytest.mark.unit
class TestRegistration:
    async def test_once_listener_runs_once(self, event_bus):
        calls = []

        async def listener(payload):
            calls.append(payload)

        event_bus.subscribe("boss.spawned", listener, once=True)

        await event_bus.publish("boss.spawned", {"n": 1})
        await event_bus.publish("boss.spawned", {"n": 2})

        assert calls == [{"n": 1}]
        assert event_bus.get_listener_count("boss.spawned") == 0

    async def test_duplicate_identifier_ignored(self, event_bus):
        async def listener(payload):
            return None

        event_bus.subscribe("boss.spawned", listener, identifier="badge")
        event_bus.subscribe("boss.spawned", listener, identifier="badge")

        assert event_bus.get_listener_count("boss.spawned") == 1

    async def test_unsubscribe(self, event_bus):
        async def listener(payload):
            return None

        event_bus.subscribe("boss.spawned", listener, identifier="badge")

        assert event_bus.unsubscribe("boss.spawned", "badge") is True
        assert event_bus.unsubscribe("boss.spawned", "badge") is False

    async def test_callback_must_take_one_argument(self, event_bus):
        async def wrong(payload, extra):
            return None

        with pytest.raises(ValueError):
            event_bus.subscribe("boss.spawned", wrong)

    async def test_low_priority_runs_in_background(self, event_bus):
        # Arrange
        done = []

        async def analytics(payload):
            await asyncio.sleep(0)
            done.append(payload["actor_id"])

        event_bus.subscribe("praise.given", analytics, priority=ListenerPriority.LOW)

        # Act
        results = await event_bus.publish("praise.given", {"actor_id": "amy"})
        await event_bus.drain()

        # Assert
        assert results == []
        assert done == ["amy"]
