"""
Questboard EventBus: async pub/sub with tiered listener execution.

Purpose
-------
Decouple economy services from their side effects. Services publish
`actor.leveled_up`, `boss.spawned`, `boss.damaged`, `boss.defeated`,
`duel.resolved` and `praise.given`; collaborators such as badge unlocking
subscribe without the services knowing about them.

Responsibilities
----------------
- Register/unregister listeners with priorities
- Publish events to all matching listeners (exact + wildcard)
- Execute listeners by tier:
  * CRITICAL / HIGH: sequential, awaited with timeout
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks
- Error isolation: a failing listener is logged and counted, never
  propagated to the publisher

Design Decisions
----------------
- Instance-based, so tests can build an isolated bus.
- Services publish after their transaction commits; listeners never see
  state that may still roll back.
- Listener timeouts come from ConfigManager (`core.event.*`) when one is
  supplied.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import Counter
from typing import Any, Optional

from questboard.core.config.manager import ConfigManager
from questboard.core.event.router import EventRouter
from questboard.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from questboard.core.logging.logger import get_logger

logger = get_logger(__name__)


class EventBus:
    """
    Async EventBus.

    >>> bus = EventBus()
    >>> bus.subscribe("actor.leveled_up", on_level_up)
    >>> await bus.publish("actor.leveled_up", {"actor_id": "u-1", "new_level": 3})
    """

    def __init__(
        self,
        config_manager: Optional[type[ConfigManager]] = None,
        *,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._config_manager = config_manager
        self._router = EventRouter()
        self._listeners: dict[str, list[EventListener]] = {}
        self._background_tasks: set[asyncio.Task[Any]] = set()

        self._events_published: Counter[str] = Counter()
        self._listener_errors: Counter[str] = Counter()

        self._critical_timeout = self._load_timeout(
            "core.event.listener_timeout.critical_seconds",
            critical_timeout_seconds,
            5.0,
        )
        self._high_timeout = self._load_timeout(
            "core.event.listener_timeout.high_seconds",
            high_timeout_seconds,
            5.0,
        )

    def _load_timeout(self, key: str, override: Optional[float], default: float) -> float:
        if override is not None:
            return float(override)
        if self._config_manager is None:
            return float(default)
        return float(self._config_manager.get(key, default))

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            callback_name = getattr(callback, "__qualname__", None) or repr(callback)
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{callback_name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Returns the listener identifier. Registering the same identifier
        twice for one event is a no-op.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )

        bucket = self._listeners.setdefault(event_name, [])
        if any(existing.identifier == listener.identifier for existing in bucket):
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        bucket.append(listener)
        bucket.sort(key=lambda lst: lst.priority.value)

        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        bucket = self._listeners.get(event_name, [])
        remaining = [lst for lst in bucket if lst.identifier != identifier]
        removed = len(remaining) != len(bucket)

        if remaining:
            self._listeners[event_name] = remaining
        else:
            self._listeners.pop(event_name, None)

        return removed

    def clear(self) -> None:
        self._listeners.clear()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return sum(len(bucket) for bucket in self._listeners.values())
        return sum(
            len(bucket)
            for key, bucket in self._listeners.items()
            if self._router.matches(event_name, key)
        )

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    def _extract_listeners(self, event_name: str) -> list[EventListener]:
        matched: list[EventListener] = []
        for key in list(self._listeners):
            if not self._router.matches(event_name, key):
                continue
            bucket = self._listeners[key]
            matched.extend(bucket)
            persistent = [lst for lst in bucket if not lst.once]
            if persistent:
                self._listeners[key] = persistent
            else:
                del self._listeners[key]

        matched.sort(key=lambda lst: lst.priority.value)
        return matched

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to every matching listener.

        Returns results from CRITICAL/HIGH/NORMAL listeners; LOW listeners
        run in the background and are not included.
        """
        self._events_published[event_name] += 1

        listeners = self._extract_listeners(event_name)
        logger.debug(
            "EventBus: publishing event",
            extra={
                "event_name": event_name,
                "payload_keys": list(data.keys()),
                "listener_count": len(listeners),
            },
        )
        if not listeners:
            return []

        results: list[Any] = []

        for listener in listeners:
            if listener.priority is ListenerPriority.CRITICAL:
                results.append(
                    await self._run_with_timeout(listener, event_name, data, self._critical_timeout)
                )
            elif listener.priority is ListenerPriority.HIGH:
                results.append(
                    await self._run_with_timeout(listener, event_name, data, self._high_timeout)
                )

        normal = [lst for lst in listeners if lst.priority is ListenerPriority.NORMAL]
        if normal:
            results.extend(
                await asyncio.gather(
                    *[self._run_listener(lst, event_name, data) for lst in normal]
                )
            )

        loop = asyncio.get_running_loop()
        for listener in listeners:
            if listener.priority is not ListenerPriority.LOW:
                continue
            task = loop.create_task(
                self._run_listener(listener, event_name, data),
                name=f"eventbus-low-{event_name}-{listener.identifier}",
            )
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return results

    async def drain(self) -> None:
        """Wait for outstanding LOW-priority listeners."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks))

    async def _run_with_timeout(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        timeout: float,
    ) -> Any:
        if timeout <= 0:
            return await self._run_listener(listener, event_name, payload)

        try:
            return await asyncio.wait_for(
                self._run_listener(listener, event_name, payload),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            self._listener_errors[event_name] += 1
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "timeout_seconds": timeout,
                },
            )
            return None

    async def _run_listener(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
    ) -> Any:
        try:
            if asyncio.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)

            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, listener.callback, payload)

        except Exception as exc:
            # Isolated: the publisher's operation already committed.
            self._listener_errors[event_name] += 1
            logger.error(
                "EventBus listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return None

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_metrics_summary(self) -> dict[str, Any]:
        published = sum(self._events_published.values())
        errors = sum(self._listener_errors.values())
        return {
            "total_events_published": published,
            "events_by_type": dict(self._events_published),
            "total_errors": errors,
            "errors_by_event": dict(self._listener_errors),
            "total_listeners": self.get_listener_count(),
        }
