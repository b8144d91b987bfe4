"""Signal-driven shutdown for the bridge process.

SIGINT or SIGTERM asks the bridge to stop: ``wait()`` returns, the caller
stops consuming events, and on leaving the ``async with`` block every
registered teardown coroutine (closing the platform adapters) runs in
order. A second signal exits immediately.

Usage:
    ```python
    async with GracefulShutdown(timeout=10.0) as shutdown:
        shutdown.on_shutdown(discord.close)
        shutdown.on_shutdown(fluxer.close)
        await shutdown.wait()
    ```
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_TIMEOUT = 10.0  # seconds, per teardown step

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)

Teardown = Callable[[], Awaitable[Any]]


class GracefulShutdown:
    """Turns process signals into an awaitable stop request.

    Attributes:
        timeout: Seconds each teardown step may take before it's abandoned.
    """

    def __init__(self, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        self.timeout = timeout
        self._stop = asyncio.Event()
        self._signals_received = 0
        self._teardown: list[Teardown] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._trapped: list[signal.Signals] = []
        self._fallback_handlers: dict[signal.Signals, Any] = {}

    def on_shutdown(self, teardown: Teardown) -> None:
        """Register a coroutine function to await when the block exits."""
        self._teardown.append(teardown)

    def trigger(self, reason: str = "requested") -> None:
        """Ask the bridge to stop without a signal."""
        if not self._stop.is_set():
            logger.info("Shutdown %s", reason)
            self._stop.set()

    async def wait(self) -> None:
        """Return once a stop has been requested."""
        await self._stop.wait()

    def _on_signal(self, sig: signal.Signals) -> None:
        self._signals_received += 1
        if self._signals_received > 1:
            logger.warning("Second %s received, exiting now", sig.name)
            sys.exit(128 + sig.value)
        self.trigger(f"on {sig.name}, stopping bridge...")

    def _install(self) -> None:
        self._loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self._on_signal, sig)
                self._trapped.append(sig)
            except NotImplementedError:
                # No loop signal support on Windows
                self._fallback_handlers[sig] = signal.signal(
                    sig, lambda signum, _frame: self._on_signal(signal.Signals(signum))
                )
            except (ValueError, RuntimeError) as e:
                logger.warning("Could not trap %s: %s", sig.name, e)

    def _uninstall(self) -> None:
        for sig, previous in self._fallback_handlers.items():
            signal.signal(sig, previous)
        self._fallback_handlers.clear()
        if self._loop is not None and not self._loop.is_closed():
            for sig in self._trapped:
                self._loop.remove_signal_handler(sig)
        self._trapped.clear()
        self._loop = None

    async def run_teardown(self) -> None:
        """Await every teardown step in registration order.

        A step that fails or overruns the timeout is logged and skipped.
        """
        for teardown in self._teardown:
            name = getattr(teardown, "__qualname__", repr(teardown))
            try:
                await asyncio.wait_for(teardown(), timeout=self.timeout)
            except TimeoutError:
                logger.error("Teardown %s timed out after %.1fs", name, self.timeout)
            except Exception as e:
                logger.error("Teardown %s failed: %s", name, e)

    async def __aenter__(self) -> GracefulShutdown:
        self._install()
        return self

    async def __aexit__(self, *_exc: object) -> None:
        self._uninstall()
        await self.run_teardown()
