"""Base worker class for periodic background tasks."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional

from ..core.observability import get_logger

logger = get_logger(__name__)


class BaseWorker(ABC):
    """
    Abstract base class for background workers.

    Runs ``process`` every ``interval_seconds`` on the event loop until
    stopped. An iteration that raises is logged and retried on the next tick.
    """

    def __init__(self, name: str, interval_seconds: int = 60):
        self.name = name
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @abstractmethod
    async def process(self) -> None:
        """Process one iteration of the background task."""

    async def start(self) -> None:
        """Start the worker."""
        if self._running:
            logger.warning("worker_already_running", worker=self.name)
            return

        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"worker-{self.name}")
        logger.info("worker_started", worker=self.name, interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the worker and wait for the loop to exit."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("worker_stopped", worker=self.name)

    async def _run(self) -> None:
        while self._running:
            started = time.perf_counter()
            try:
                await self.process()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("worker_iteration_failed", worker=self.name, error=str(e), exc_info=True)

            duration = time.perf_counter() - started
            logger.debug("worker_iteration_completed", worker=self.name, duration_seconds=round(duration, 3))

            try:
                await asyncio.sleep(max(0.0, self.interval_seconds - duration))
            except asyncio.CancelledError:
                break
