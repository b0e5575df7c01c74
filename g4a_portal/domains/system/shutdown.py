# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Graceful shutdown coordination.

On shutdown the service marks the health service as shutting down, waits
for in-flight provisioning chains, closes every tenant database pool and
then runs the registered shutdown handlers. Handlers run concurrently and
a failing handler never prevents the others from running.

Signal handling:
    SIGTERM, SIGINT and SIGUSR2 trigger a graceful shutdown followed by
    exit code 0 (1 if the shutdown itself failed). An exception nobody
    retrieved from an asyncio task triggers the same shutdown with exit
    code 1.

Example:
    shutdown = GracefulShutdownService(health, manager, bus)
    shutdown.register_shutdown_handler(close_master_database)
    shutdown.install_signal_handlers(asyncio.get_running_loop(), ["SIGUSR2"])
"""

import asyncio
import logging
import os
import signal
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable

if TYPE_CHECKING:
    from g4a_portal.domains.system.health import HealthCheckService
    from g4a_portal.infrastructure.database.tenant_manager import TenantDatabaseManager
    from g4a_portal.infrastructure.events.bus import EventBus

logger = logging.getLogger(__name__)

ShutdownHandler = Callable[[], Awaitable[None]]


class GracefulShutdownService:
    """Coordinates an idempotent graceful shutdown."""

    def __init__(
        self,
        health: "HealthCheckService",
        manager: "TenantDatabaseManager",
        bus: "EventBus | None" = None,
        drain_timeout: float | None = 30.0,
        exit_func: Callable[[int], Any] = os._exit,
    ) -> None:
        """Initialize the shutdown service.

        Args:
            health: Health service to mark as shutting down.
            manager: Tenant database manager whose pools are closed.
            bus: Event bus whose detached publishes are awaited.
            drain_timeout: Seconds to wait for in-flight publishes.
            exit_func: Called with the exit code after a signal triggered shutdown.
        """
        self._health = health
        self._manager = manager
        self._bus = bus
        self._drain_timeout = drain_timeout
        self._exit_func = exit_func
        self._handlers: list[ShutdownHandler] = []
        self._shutting_down = False
        self._installed_signals: list[signal.Signals] = []
        # Strong references to scheduled shutdown tasks
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_shutting_down(self) -> bool:
        """Whether graceful_shutdown() has been called."""
        return self._shutting_down

    def register_shutdown_handler(self, handler: ShutdownHandler) -> None:
        """Register an async handler to run during shutdown."""
        self._handlers.append(handler)

    async def execute_shutdown_handlers(self) -> None:
        """Run every registered handler.

        Failures are logged and never stop the other handlers.
        """
        total = len(self._handlers)
        logger.info("Running %d shutdown handlers", total)

        async def run(index: int, handler: ShutdownHandler) -> None:
            logger.info("Executing shutdown handler %d/%d", index, total)
            await handler()
            logger.info("Shutdown handler %d completed", index)

        results = await asyncio.gather(
            *[run(i, handler) for i, handler in enumerate(self._handlers, start=1)],
            return_exceptions=True,
        )
        for index, result in enumerate(results, start=1):
            if isinstance(result, BaseException):
                logger.error("Shutdown handler %d failed: %s", index, result, exc_info=result)

        logger.info("All shutdown handlers completed")

    async def graceful_shutdown(self) -> None:
        """Shut down once. Later calls return immediately.

        Raises:
            Exception: If closing tenant databases fails.
        """
        if self._shutting_down:
            logger.warning("Graceful shutdown already in progress, skipping")
            return

        self._shutting_down = True
        logger.info("Graceful shutdown initiated")

        try:
            self._health.set_shutting_down()

            if self._bus is not None:
                await self._bus.drain(timeout=self._drain_timeout)

            await self._manager.close_all()
            logger.info("All tenant databases closed")

            await self.execute_shutdown_handlers()
        except Exception as e:
            logger.error("Error during graceful shutdown: %s", e, exc_info=True)
            raise

        logger.info("Graceful shutdown completed")

    async def shutdown_and_exit(self, reason: str, exit_code: int = 0) -> None:
        """Run graceful shutdown, then exit the process.

        Args:
            reason: What triggered the shutdown, for logging.
            exit_code: Exit code when shutdown succeeds.
        """
        logger.info("Received %s, starting graceful shutdown", reason)
        try:
            await self.graceful_shutdown()
        except Exception:
            logger.error("Graceful shutdown failed for %s", reason)
            exit_code = 1
        self._exit_func(exit_code)

    def install_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop,
        signals: Iterable[str] = ("SIGTERM", "SIGINT", "SIGUSR2"),
        handle_loop_exceptions: bool = True,
    ) -> list[signal.Signals]:
        """Install shutdown handlers for process signals.

        Signals unknown on this platform are skipped.

        Args:
            loop: Running event loop.
            signals: Signal names.
            handle_loop_exceptions: Also shut down on unretrieved task errors.

        Returns:
            The signals that were installed.
        """
        for name in signals:
            sig = getattr(signal, name, None)
            if sig is None:
                logger.warning("Signal %s not available on this platform", name)
                continue
            loop.add_signal_handler(sig, self._on_signal, loop, sig)
            self._installed_signals.append(sig)

        if handle_loop_exceptions:
            loop.set_exception_handler(self._on_loop_exception)

        logger.info(
            "Installed shutdown signal handlers: %s",
            ", ".join(sig.name for sig in self._installed_signals),
        )
        return list(self._installed_signals)

    def remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Remove the installed signal handlers."""
        for sig in self._installed_signals:
            loop.remove_signal_handler(sig)
        self._installed_signals.clear()
        loop.set_exception_handler(None)

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Awaitable[None]) -> None:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_signal(self, loop: asyncio.AbstractEventLoop, sig: signal.Signals) -> None:
        self._spawn(loop, self.shutdown_and_exit(sig.name, exit_code=0))

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        loop.default_exception_handler(context)
        error = context.get("exception")
        # Message-only contexts are warnings, e.g. a destroyed pending task
        if error is None or self._shutting_down:
            return
        logger.critical("Uncaught exception: %s", error)
        self._spawn(loop, self.shutdown_and_exit("uncaught exception", exit_code=1))
