"""In-process publish/subscribe bus for gateway status events.

Each subscription owns a FIFO queue drained by its own daemon thread, so a
slow or stuck subscriber never stalls the publisher and events from a single
producer reach every subscriber in publish order.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from collections.abc import Callable

from standgateway.core.model import Event, EventLevel

LOGGER = logging.getLogger(__name__)

EventHandler = Callable[[Event], None]

_STOP = object()
_COUNTER = itertools.count(1)


class Subscription:
    def __init__(self, handler: EventHandler, name: str | None = None) -> None:
        self.name = name or f"subscriber-{next(_COUNTER)}"
        self._handler = handler
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._active = True
        self._thread = threading.Thread(
            target=self._pump,
            name=f"standgateway-events-{self.name}",
            daemon=True,
        )
        self._thread.start()

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, event: Event) -> None:
        with self._lock:
            if self._active:
                self._queue.put(event)

    def cancel(self) -> bool:
        """Stop accepting events; already queued ones are still delivered."""
        with self._lock:
            if not self._active:
                return False
            self._active = False
            self._queue.put(_STOP)
            return True

    def join(self, timeout: float | None = None) -> bool:
        if threading.current_thread() is self._thread:
            return False
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _pump(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            try:
                self._handler(item)  # type: ignore[arg-type]
            except Exception:
                LOGGER.exception("Event handler %s failed on %r", self.name, item)


class EventBus:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: tuple[Subscription, ...] = ()

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return self._subscriptions

    def subscribe(self, handler: EventHandler, *, name: str | None = None) -> Subscription:
        subscription = Subscription(handler, name=name)
        with self._lock:
            self._subscriptions = (*self._subscriptions, subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions = tuple(s for s in self._subscriptions if s is not subscription)
        subscription.cancel()

    def publish(
        self,
        event: Event | str,
        *,
        level: EventLevel = "info",
        final: bool = False,
    ) -> Event:
        if isinstance(event, str):
            event = Event(text=event, level=level, final=final)
        with self._lock:
            subscriptions = self._subscriptions
        LOGGER.debug("Publishing %r to %d subscriber(s)", event.text, len(subscriptions))
        for subscription in subscriptions:
            subscription.deliver(event)
        return event

    def close(self, timeout: float | None = None) -> None:
        """Unsubscribe everyone and wait for queued events to drain."""
        with self._lock:
            subscriptions = self._subscriptions
            self._subscriptions = ()
        for subscription in subscriptions:
            subscription.cancel()
        for subscription in subscriptions:
            subscription.join(timeout)
