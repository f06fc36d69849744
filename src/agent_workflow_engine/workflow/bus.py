"""In-process publish/subscribe for runtime events."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

from agent_workflow_engine.workflow.events import RuntimeEvent

Listener = Callable[[RuntimeEvent], Awaitable[None] | None]


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`. Usable as a context manager."""

    def __init__(self, bus: EventBus, listener: Listener) -> None:
        self._bus = bus
        self._listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._bus._remove(self._listener)
            self.active = False

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.unsubscribe()


class EventBus:
    """Deliver each published event to every subscriber, in subscription order.

    Delivery is sequential and awaited; a listener error propagates to the
    publisher. A bus is not tied to a run, but a workflow run assumes it is
    the only publisher while it executes.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    async def publish(self, event: RuntimeEvent) -> None:
        for listener in list(self._listeners):
            result = listener(event)
            if inspect.isawaitable(result):
                await result
