"""Worker manager for coordinating background tasks."""

import asyncio
from typing import Dict

from ..core.config import settings
from ..core.observability import get_logger
from .auto_completion_worker import AutoCompletionWorker
from .base import BaseWorker

logger = get_logger(__name__)


class WorkerManager:
    """Starts, stops and reports on the application's background workers."""

    def __init__(self):
        self.workers: Dict[str, BaseWorker] = {}
        self._setup_workers()

    def _setup_workers(self) -> None:
        if settings.auto_complete_enabled:
            self.workers["auto_completion"] = AutoCompletionWorker(
                interval_seconds=settings.auto_complete_interval_seconds
            )

        logger.info("workers_initialized", count=len(self.workers))

    async def start_all(self) -> None:
        """Start all workers."""
        for name, worker in self.workers.items():
            try:
                await worker.start()
            except Exception as e:
                logger.error("worker_start_failed", worker=name, error=str(e), exc_info=True)

    async def stop_all(self) -> None:
        """Stop all workers gracefully."""
        results = await asyncio.gather(
            *(worker.stop() for worker in self.workers.values()),
            return_exceptions=True,
        )

        for name, result in zip(self.workers.keys(), results):
            if isinstance(result, Exception):
                logger.error("worker_stop_failed", worker=name, error=str(result))

    def get_worker(self, name: str) -> BaseWorker:
        """
        Get a specific worker by name.

        Raises:
            KeyError: If worker not found
        """
        return self.workers[name]

    def get_worker_status(self) -> Dict[str, bool]:
        """Map worker names to their running status."""
        return {name: worker.is_running for name, worker in self.workers.items()}


# Global worker manager instance
worker_manager = WorkerManager()
