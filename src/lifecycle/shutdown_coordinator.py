"""
Shutdown coordinator that orchestrates graceful shutdown of all components.

Manages signal handlers, shutdown requests from other threads (the
keyboard tracker completing), critical task monitoring and shutdown
sequencing across handlers in priority order.
"""

import asyncio
import signal
from typing import List, Optional, Set

from lifecycle.shutdown_protocol import IShutdownHandler
from lifecycle.task_registry import TaskRegistry
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class ShutdownCoordinator:
    """
    Coordinates graceful shutdown of multiple components.

    Example:
        coordinator = ShutdownCoordinator()
        coordinator.register(TrackerShutdownHandler(tracker))
        coordinator.register(LogWriterShutdownHandler(sink, sink_task))

        coordinator.setup_signal_handlers(loop)
        tracker.subscribe(on_complete=lambda: coordinator.request_shutdown("Termination key"))
        await coordinator.wait_for_shutdown()
        await coordinator.shutdown_all()
    """

    CRITICAL_CATEGORIES: Set[str] = {
        "INPUT",        # Keyboard hook must stay registered
        "PERSISTENCE",  # Log writer sink must keep draining
    }

    def __init__(self, timeout_per_handler: float = 5.0, total_timeout: float = 15.0):
        """
        Args:
            timeout_per_handler: Timeout for each individual handler (seconds)
            total_timeout: Total timeout for entire shutdown sequence (seconds)
        """
        self._handlers: List[IShutdownHandler] = []
        self._shutdown_event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timeout_per_handler = timeout_per_handler
        self._total_timeout = total_timeout
        self._reason: Optional[str] = None
        self._failed = False

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def failed(self) -> bool:
        """True when shutdown was triggered by a critical task failure"""
        return self._failed

    def register(self, handler: IShutdownHandler) -> None:
        """
        Register a shutdown handler.

        Handler must have:
        - shutdown_priority property (int)
        - async shutdown() method
        """
        if not hasattr(handler, "shutdown_priority"):
            raise ValueError(f"Handler {handler} missing shutdown_priority property")
        if not hasattr(handler, "shutdown"):
            raise ValueError(f"Handler {handler} missing shutdown() method")

        self._handlers.append(handler)
        log.debug(f"Registered shutdown handler: {handler.__class__.__name__}")

    def setup_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Install OS signal handlers for graceful shutdown (SIGINT, SIGTERM).

        Platforms without loop signal support (Windows) keep the default
        KeyboardInterrupt behaviour.
        """
        self._loop = loop
        self._shutdown_event = asyncio.Event()

        def signal_handler(sig: signal.Signals) -> None:
            log.info(f"Signal {sig.name} received → triggering shutdown")
            self._trigger(sig.name)

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
            except (NotImplementedError, RuntimeError):
                log.debug(f"Signal handler for {sig.name} not supported on this platform")

        log.debug("Signal handlers installed (SIGINT, SIGTERM)")

    def request_shutdown(self, reason: str) -> None:
        """
        Trigger shutdown from any thread.

        Keyboard hook callbacks run on the hook's thread, so the event is
        set through the loop.
        """
        if self._loop is None or self._shutdown_event is None:
            raise RuntimeError("Call setup_signal_handlers() first")
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._trigger, reason)

    def _trigger(self, reason: str, failed: bool = False) -> None:
        if self._shutdown_event.is_set():
            return
        self._reason = reason
        self._failed = failed
        self._shutdown_event.set()

    def _check_critical_task_failures(self) -> bool:
        """Trigger shutdown if a critical task has failed."""
        for record in TaskRegistry.instance().failed():
            if record.info.category.name in self.CRITICAL_CATEGORIES:
                log.error(
                    f"❌ Critical task failed: {record.info.description} "
                    f"(category: {record.info.category.name})"
                )
                self._trigger(f"Task failure: {record.info.description}", failed=True)
                return True
        return False

    def _critical_tasks(self) -> List[asyncio.Task]:
        return [
            r.task for r in TaskRegistry.instance().active()
            if r.info.category.name in self.CRITICAL_CATEGORIES
        ]

    async def wait_for_shutdown(self) -> None:
        """
        Wait for a shutdown request, OS signal or critical task failure.

        Raises:
            RuntimeError: If signal handlers weren't setup
        """
        if self._shutdown_event is None:
            raise RuntimeError("Call setup_signal_handlers() first")

        while not self._shutdown_event.is_set():
            if self._check_critical_task_failures():
                return

            waiter = asyncio.ensure_future(self._shutdown_event.wait())
            wait_set = {waiter, *self._critical_tasks()}
            try:
                # Timeout picks up tasks registered after this iteration started
                await asyncio.wait(wait_set, timeout=0.5, return_when=asyncio.FIRST_COMPLETED)
            finally:
                if not waiter.done():
                    waiter.cancel()

        log.debug("Shutdown triggered", reason=self._reason)

    async def shutdown_all(self) -> None:
        """
        Execute graceful shutdown of all handlers in priority order.

        Handlers are called in descending priority order (highest first),
        each bounded by timeout_per_handler. A failing handler is logged
        and the sequence continues.
        """
        log.info("🛑 Initiating graceful shutdown sequence...")
        log.info(f"   Reason: {self._reason or 'UNKNOWN'}")

        sorted_handlers = sorted(
            self._handlers, key=lambda h: h.shutdown_priority, reverse=True
        )

        loop = asyncio.get_running_loop()
        start_time = loop.time()

        for handler in sorted_handlers:
            handler_name = handler.__class__.__name__

            elapsed = loop.time() - start_time
            if elapsed > self._total_timeout:
                log.error(
                    f"⚠️  Total shutdown timeout exceeded ({elapsed:.1f}s > {self._total_timeout}s)"
                )
                break

            try:
                log.debug(f"Shutting down {handler_name} (priority={handler.shutdown_priority})...")
                await asyncio.wait_for(handler.shutdown(), timeout=self._timeout_per_handler)
                log.debug(f"✓ {handler_name} shutdown complete")

            except asyncio.TimeoutError:
                log.error(f"⚠️  {handler_name} shutdown timeout ({self._timeout_per_handler}s)")

            except asyncio.CancelledError:
                log.warn("Shutdown sequence was cancelled")
                raise

            except Exception as e:
                log.error(f"❌ Error shutting down {handler_name}: {e}")

        log.info("✓ Shutdown sequence complete", tasks=TaskRegistry.instance().summary())

    def get_handler(self, handler_type: type):
        """Get a registered handler by type."""
        for handler in self._handlers:
            if isinstance(handler, handler_type):
                return handler
        return None
