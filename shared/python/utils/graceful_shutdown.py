"""
Graceful shutdown for the bot process.

SIGTERM/SIGINT set an asyncio.Event; cleanup callbacks registered during
startup then run in reverse order (last started, first stopped), each one
bounded by a timeout so a hung client cannot block process exit.

Usage:
    shutdown = GracefulShutdown()
    shutdown.setup_handlers()
    shutdown.add_cleanup("auto-fetch", manager.close)
    shutdown.add_cleanup("metrics", metrics_server.stop)

    await shutdown.wait_for_shutdown()
    await shutdown.run_cleanup()
"""

import asyncio
import inspect
import logging
import signal
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

CleanupCallback = Callable[[], Union[None, Awaitable[None]]]


class GracefulShutdown:
    """
    Signal-driven shutdown coordinator.

    Attributes:
        shutdown_event: The underlying asyncio.Event for shutdown signaling.
    """

    def __init__(self, event: Optional[asyncio.Event] = None, cleanup_timeout: float = 10.0) -> None:
        """
        Args:
            event: Optional existing asyncio.Event to use. If None, creates a new one.
            cleanup_timeout: Seconds allowed for each cleanup callback.
        """
        self.shutdown_event = event or asyncio.Event()
        self.cleanup_timeout = cleanup_timeout
        self._cleanups: list[tuple[str, CleanupCallback]] = []
        self._handlers_installed = False

    def setup_handlers(self) -> None:
        """
        Register signal handlers for SIGTERM and SIGINT.

        Safe to call multiple times; subsequent calls are ignored.
        """
        if self._handlers_installed:
            logger.debug("Signal handlers already installed, skipping")
            return

        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_signal, sig)

        self._handlers_installed = True
        logger.debug("Graceful shutdown handlers installed for SIGTERM and SIGINT")

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, initiating graceful shutdown")
        self.shutdown_event.set()

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()

    def request_shutdown(self) -> None:
        """Programmatically request shutdown (e.g. on a fatal startup error)."""
        logger.info("Shutdown requested programmatically")
        self.shutdown_event.set()

    async def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Async wait until shutdown is requested.

        Returns:
            True if shutdown was requested, False if timeout occurred.
        """
        try:
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def add_cleanup(self, name: str, callback: CleanupCallback) -> None:
        """Register a sync or async callback to run on shutdown."""
        self._cleanups.append((name, callback))

    async def run_cleanup(self) -> None:
        """
        Run registered callbacks in reverse registration order.

        A failing or slow callback is logged and skipped; the remaining
        callbacks still run.
        """
        while self._cleanups:
            name, callback = self._cleanups.pop()
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await asyncio.wait_for(result, timeout=self.cleanup_timeout)
                logger.info(f"Stopped {name}")
            except asyncio.TimeoutError:
                logger.error(f"Timed out stopping {name} after {self.cleanup_timeout}s")
            except Exception as e:
                logger.error(f"Error stopping {name}: {e}", exc_info=True)
