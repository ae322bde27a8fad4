# core/concurrency/gate.py

import asyncio
from collections.abc import Awaitable
from contextlib import asynccontextmanager
from typing import AsyncIterator, TypeVar

from netkit.core.errors import GateClosedError, GateTimeoutError, OperationCancelledError
from netkit.core.logging.logger import setup_logger

logger = setup_logger(__name__)

T = TypeVar("T")


class ShutdownSignal:
    """
    Process-wide cancellation broadcast.

    Once triggered it stays triggered. Waiters on the gate are woken and
    refused, and anything run through run_cancellable() is cancelled.
    trigger() may be called from any thread.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._triggered = False
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_set(self) -> bool:
        return self._triggered

    def trigger(self) -> None:
        if self._triggered:
            return
        self._triggered = True
        logger.info("Shutdown requested, cancelling pending probes")

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        loop = self._loop
        if loop is not None and loop is not running and not loop.is_closed():
            loop.call_soon_threadsafe(self._event.set)
        else:
            self._event.set()

    def _bind(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

    async def wait(self) -> None:
        self._bind()
        await self._event.wait()

    async def run_cancellable(self, aw: Awaitable[T]) -> T:
        """
        Await `aw` unless shutdown fires first, in which case it is
        cancelled and OperationCancelledError is raised.
        """
        if self.is_set:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise OperationCancelledError("Operation cancelled - shutting down")

        self._bind()
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if not task.done():
            # Let the cancelled operation unwind before reporting it.
            await asyncio.wait({task})
        if task.cancelled():
            raise OperationCancelledError("Operation cancelled - shutting down")
        return task.result()


class ConcurrencyGate:
    """
    Bounded permit pool. Capacity is fixed at construction; every
    acquire races the wait timeout and the shutdown signal.
    """

    def __init__(self, capacity: int = 5, shutdown: ShutdownSignal | None = None):
        if capacity < 1:
            raise ValueError("Gate capacity must be at least 1")
        self._capacity = capacity
        self._semaphore = asyncio.BoundedSemaphore(capacity)
        self._shutdown = shutdown or ShutdownSignal()
        self._in_use = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def shutdown_signal(self) -> ShutdownSignal:
        return self._shutdown

    async def acquire(self, timeout: float | None = 5.0) -> None:
        """
        Wait for a permit.

        Raises:
            GateClosedError: shutdown was triggered before or during the wait
            GateTimeoutError: no permit within `timeout` seconds
        """
        if self._shutdown.is_set:
            raise GateClosedError("Service is shutting down")

        acquire_task = asyncio.ensure_future(self._semaphore.acquire())
        shutdown_task = asyncio.ensure_future(self._shutdown.wait())
        granted = False
        try:
            await asyncio.wait(
                {acquire_task, shutdown_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            granted = acquire_task.done() and not acquire_task.cancelled()
        finally:
            shutdown_task.cancel()
            if not acquire_task.done():
                acquire_task.cancel()
            elif not granted and not acquire_task.cancelled():
                # Caller was cancelled after the permit was granted.
                self._semaphore.release()

        if granted and self._shutdown.is_set:
            self._semaphore.release()
            granted = False

        if not granted:
            if self._shutdown.is_set:
                raise GateClosedError("Service is shutting down")
            logger.warning(
                f"Gate wait timed out after {timeout}s "
                f"({self._in_use}/{self._capacity} permits in use)"
            )
            raise GateTimeoutError(f"No free slot within {timeout} seconds")

        self._in_use += 1
        logger.debug(f"Gate permit acquired ({self._in_use}/{self._capacity})")

    def release(self) -> None:
        self._semaphore.release()
        self._in_use -= 1
        logger.debug(f"Gate permit released ({self._in_use}/{self._capacity})")

    @asynccontextmanager
    async def slot(self, timeout: float | None = 5.0) -> AsyncIterator[None]:
        """Hold one permit for the duration of the block."""
        await self.acquire(timeout)
        try:
            yield
        finally:
            self.release()
