"""In-process worker pool draining the delivery queue."""

from __future__ import annotations

import asyncio
import logging
import signal
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from taskiq.receiver import Receiver

from notify_service.core.settings import get_task_settings

if TYPE_CHECKING:
    from taskiq import AsyncBroker

logger = logging.getLogger(__name__)

_SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class NotificationWorkerPool:
    """Runs up to ``concurrency`` delivery jobs at once from ``broker``.

    On SIGTERM/SIGINT the pool stops taking new messages; deliveries already
    running are allowed to finish (each bounded by its channel timeout)
    before the broker is shut down.

    Example:
        pool = NotificationWorkerPool(broker, concurrency=5)
        await pool.run()
    """

    def __init__(self, broker: AsyncBroker, concurrency: int | None = None) -> None:
        self.broker = broker
        self.concurrency = concurrency or get_task_settings().worker_concurrency
        self._finish_event = asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._finish_event.is_set()

    def request_shutdown(self) -> None:
        """Stop fetching new jobs; in-flight ones keep running."""
        if not self._finish_event.is_set():
            logger.info("Worker shutdown requested, draining in-flight deliveries")
            self._finish_event.set()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in _SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.request_shutdown))

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in _SHUTDOWN_SIGNALS:
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)

    async def run(self) -> None:
        """Consume until a shutdown signal arrives, then drain and close."""
        loop = asyncio.get_running_loop()
        self._install_signal_handlers(loop)
        self.broker.is_worker_process = True

        logger.info("Notification worker started", extra={"concurrency": self.concurrency})
        try:
            with ThreadPoolExecutor() as executor:
                receiver = Receiver(
                    self.broker,
                    executor=executor,
                    max_async_tasks=self.concurrency,
                    run_startup=True,
                )
                await receiver.listen(self._finish_event)
        finally:
            self._remove_signal_handlers(loop)
            await self.broker.shutdown()
            logger.info("Notification worker stopped")


__all__ = ["NotificationWorkerPool"]
