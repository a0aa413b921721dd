"""
Pet Economy EventBus: in-process async publish/subscribe.

Purpose
-------
Decouple engines from whatever reacts to economy changes (UI refresh,
analytics, achievement tracking). Engines publish after the ledger has
confirmed a change; listeners never influence the outcome.

Responsibilities
----------------
- Register/unregister listeners for exact names or wildcard patterns
- Publish events to all matching listeners in subscription order
- Error isolation: one failing listener never blocks the others or the
  publishing engine
- Lightweight metrics (events published, listener errors)

Design Decisions
----------------
- **Instance-based**: one bus per session, trivially replaceable in tests
- **Wildcard support**: "fusion.*" or "*" patterns, matched per dot segment
- **Sync or async listeners**: coroutine results are awaited

Events Published by Engines
---------------------------
gacha.pulled, fusion.completed, fusion.quick_combine_completed,
pet.fed, pet.evolved, exchange.food_purchased
"""

from __future__ import annotations

import inspect
import uuid
from collections import Counter
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pet_economy.core.logging.logger import get_logger

logger = get_logger(__name__)

EventPayload = Dict[str, Any]
CallbackType = Callable[[EventPayload], Union[Any, Awaitable[Any]]]


@dataclass
class EventListener:
    identifier: str
    pattern: str
    callback: CallbackType
    once: bool = False


def matches(event_name: str, pattern: str) -> bool:
    """
    Check if an event name matches a wildcard pattern.

    Examples
    --------
    >>> matches("fusion.completed", "fusion.*")
    True
    >>> matches("fusion.completed", "*")
    True
    >>> matches("fusion.completed", "pet.*")
    False
    """
    if pattern == "*":
        return True
    if "*" not in pattern:
        return event_name == pattern

    name_parts = event_name.split(".")
    pattern_parts = pattern.split(".")
    # Trailing "*" swallows any remaining segments
    if pattern_parts[-1] == "*" and len(name_parts) >= len(pattern_parts):
        name_parts = name_parts[: len(pattern_parts) - 1] + ["*"]
    if len(name_parts) != len(pattern_parts):
        return False
    return all(p == "*" or p == n for n, p in zip(name_parts, pattern_parts))


class EventBus:
    """
    Async EventBus for economy domain events.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("pet.evolved", on_evolved)
    >>> await bus.publish("pet.evolved", {"unit_id": "u1", "new_tier": 2})
    """

    def __init__(self) -> None:
        self._listeners: List[EventListener] = []
        self._published: Counter = Counter()
        self._errors: Counter = Counter()

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """Ensure callback accepts exactly one parameter."""
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            # Built-ins may not expose a signature
            return

        if len(sig.parameters) != 1:
            callback_name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(sig.parameters)} parameters for '{callback_name}'"
            )

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Returns
        -------
        str:
            The listener identifier (for unsubscribing later).
        """
        if not event_name:
            raise ValueError("event_name cannot be empty")
        self._validate_callback_signature(callback)

        listener = EventListener(
            identifier=identifier or uuid.uuid4().hex[:12],
            pattern=event_name,
            callback=callback,
            once=once,
        )
        self._listeners.append(listener)

        logger.debug(
            "EventBus: subscribed listener",
            extra={"event_name": event_name, "listener_id": listener.identifier},
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        before = len(self._listeners)
        self._listeners = [
            listener
            for listener in self._listeners
            if not (listener.pattern == event_name and listener.identifier == identifier)
        ]
        return len(self._listeners) < before

    def clear(self) -> None:
        self._listeners.clear()

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Publish an event to every matching listener, in subscription order.

        Listener exceptions are logged and counted, never raised.

        Returns
        -------
        list[Any]:
            Results of the listeners that completed.
        """
        self._published[event_name] += 1

        targets = [l for l in self._listeners if matches(event_name, l.pattern)]
        once_ids = {id(l) for l in targets if l.once}
        if once_ids:
            self._listeners = [l for l in self._listeners if id(l) not in once_ids]

        results: List[Any] = []
        for listener in targets:
            try:
                result = listener.callback(data)
                if inspect.isawaitable(result):
                    result = await result
                results.append(result)
            except Exception as exc:
                self._errors[event_name] += 1
                logger.error(
                    "EventBus: listener failed",
                    extra={
                        "event_name": event_name,
                        "listener_id": listener.identifier,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=True,
                )

        return results

    # ------------------------------------------------------------------ #
    # Metrics & Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return sum(1 for l in self._listeners if matches(event_name, l.pattern))
        return len(self._listeners)

    def get_metrics_summary(self) -> Dict[str, Any]:
        total = sum(self._published.values())
        total_errors = sum(self._errors.values())
        return {
            "total_events_published": total,
            "events_by_type": dict(self._published),
            "total_errors": total_errors,
            "errors_by_event": dict(self._errors),
            "total_listeners": len(self._listeners),
        }
