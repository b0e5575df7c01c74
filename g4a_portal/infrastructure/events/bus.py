# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-process event bus for tenant lifecycle events.

Events are routed on their ``event_type`` discriminant (a TenantEventType
member). Publishing starts every handler subscribed to that kind in
subscription order, lets them run concurrently and waits for all of them.
A handler failure is logged and then surfaced to the publisher, so a
provisioning stage that publishes the next event sees failures raised
further down the chain.

The bus is single-process and in-memory: no retry, no persistence, no
dead-letter queue.

Example:
    from g4a_portal.infrastructure.events import get_event_bus, TenantEventType

    event_bus = get_event_bus()

    async def on_setup_completed(event):
        print(f"Tenant ready: {event.tenant_id}")

    event_bus.subscribe(TenantEventType.SETUP_COMPLETED, on_setup_completed)

    # Wait for every handler of the event
    await event_bus.publish(event)

    # Fire and forget from a request handler
    event_bus.publish_detached(event)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from g4a_portal.infrastructure.events.types import EventRegistry, TenantEventType

logger = logging.getLogger(__name__)

DEFAULT_MAX_LISTENERS = 10


class BusEvent(Protocol):
    """Minimal shape the bus needs from an event."""

    @property
    def event_type(self) -> TenantEventType: ...

    @property
    def tenant_id(self) -> str: ...


# Type alias for event handlers
EventHandler = Callable[[Any], Awaitable[None]]


class EventBus:
    """In-memory async event bus keyed by TenantEventType.

    Thread-safety: designed for use from a single asyncio event loop.

    Attributes:
        max_listeners: Handler count per event kind above which a possible
            leak is reported. Subscriptions beyond it are still accepted.
    """

    def __init__(self, max_listeners: int = DEFAULT_MAX_LISTENERS) -> None:
        """Initialize the event bus.

        Args:
            max_listeners: Per-kind handler count before a warning is logged.
        """
        self.max_listeners = max_listeners
        self._handlers: dict[TenantEventType, list[EventHandler]] = {}
        self._detached: set[asyncio.Task[Any]] = set()
        self._event_count = 0
        self._failure_count = 0
        logger.debug("EventBus initialized (max_listeners=%d)", max_listeners)

    def subscribe(
        self,
        event_type: TenantEventType | str,
        handler: EventHandler,
    ) -> None:
        """Subscribe an async handler to an event kind.

        Args:
            event_type: Event kind or its wire name.
            handler: Async function called with the event.

        Raises:
            ValueError: If event_type is not a known event kind.
        """
        kind = EventRegistry.coerce(event_type)
        handlers = self._handlers.setdefault(kind, [])
        handlers.append(handler)

        if self.max_listeners and len(handlers) > self.max_listeners:
            logger.warning(
                "Possible listener leak: %d handlers subscribed to %s (max %d)",
                len(handlers),
                kind,
                self.max_listeners,
            )
        logger.debug("Subscribed handler to: %s", kind)

    def unsubscribe(
        self,
        event_type: TenantEventType | str,
        handler: EventHandler,
    ) -> bool:
        """Unsubscribe a handler from an event kind.

        Args:
            event_type: Event kind or its wire name.
            handler: The handler function to remove.

        Returns:
            True if handler was found and removed, False otherwise.
        """
        kind = EventRegistry.coerce(event_type)
        handlers = self._handlers.get(kind)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        if not handlers:
            del self._handlers[kind]
        return True

    async def publish(self, event: BusEvent) -> BusEvent:
        """Publish an event to every handler subscribed to its kind.

        Handlers are started in subscription order and run concurrently.
        All of them are awaited even when one fails. Each failure is logged
        and the first one is re-raised once every handler has finished.

        Args:
            event: Event carrying an event_type discriminant.

        Returns:
            The published event.

        Raises:
            Exception: The first exception raised by a handler.
        """
        kind = EventRegistry.coerce(event.event_type)
        self._event_count += 1

        handlers = list(self._handlers.get(kind, ()))
        if not handlers:
            logger.debug("No handlers for event: %s (tenant: %s)", kind, event.tenant_id)
            return event

        logger.debug(
            "Publishing event %s to %d handlers (tenant: %s)",
            kind,
            len(handlers),
            event.tenant_id,
        )

        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True,
        )

        first_error: BaseException | None = None
        for handler, result in zip(handlers, results):
            if not isinstance(result, BaseException):
                continue
            self._failure_count += 1
            logger.error(
                "Handler %s failed for event %s (tenant: %s): %s",
                getattr(handler, "__qualname__", repr(handler)),
                kind,
                event.tenant_id,
                result,
            )
            if first_error is None:
                first_error = result

        if first_error is not None:
            raise first_error
        return event

    def publish_detached(self, event: BusEvent) -> "asyncio.Task[BusEvent]":
        """Publish an event in a background task detached from the caller.

        A failure of the task is logged when it finishes. Must be called
        from a running event loop.

        Args:
            event: Event to publish.

        Returns:
            The scheduled task.
        """
        kind = EventRegistry.coerce(event.event_type)
        task = asyncio.get_running_loop().create_task(
            self.publish(event),
            name=f"publish:{kind}:{event.tenant_id}",
        )
        self._detached.add(task)
        task.add_done_callback(self._on_detached_done)
        return task

    def _on_detached_done(self, task: "asyncio.Task[Any]") -> None:
        self._detached.discard(task)
        if task.cancelled():
            logger.warning("Detached publish cancelled: %s", task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Unhandled error in detached publish %s: %s",
                task.get_name(),
                error,
                exc_info=error,
            )

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for every detached publish to finish.

        Tasks scheduled while draining are awaited as well.

        Args:
            timeout: Seconds to wait per round, None to wait indefinitely.

        Returns:
            True if nothing is left in flight, False on timeout.
        """
        while True:
            pending = {task for task in self._detached if not task.done()}
            if not pending:
                return True
            _, not_done = await asyncio.wait(pending, timeout=timeout)
            if not_done:
                logger.warning("%d detached publishes still running after drain", len(not_done))
                return False

    @property
    def in_flight(self) -> int:
        """Number of detached publishes not yet finished."""
        return sum(1 for task in self._detached if not task.done())

    def listener_count(self, event_type: TenantEventType | str) -> int:
        """Number of handlers subscribed to an event kind."""
        return len(self._handlers.get(EventRegistry.coerce(event_type), ()))

    def event_types(self) -> list[TenantEventType]:
        """Event kinds with at least one handler."""
        return list(self._handlers.keys())

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()
        logger.debug("EventBus cleared all subscriptions")

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics.

        Returns:
            Dictionary with subscription and event counts.
        """
        return {
            "subscriptions": len(self._handlers),
            "total_handlers": sum(len(h) for h in self._handlers.values()),
            "events_published": self._event_count,
            "handler_failures": self._failure_count,
            "in_flight": self.in_flight,
            "event_types": [kind.value for kind in self._handlers],
        }


# Singleton instance
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the singleton event bus instance.

    Returns:
        EventBus instance.
    """
    global _event_bus
    if _event_bus is None:
        from g4a_portal.core.config import get_settings

        _event_bus = EventBus(max_listeners=get_settings().provisioning.max_listeners)
    return _event_bus


def reset_event_bus() -> None:
    """Reset the event bus singleton.

    Useful for testing to ensure clean state between tests.
    """
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear()
    _event_bus = None
