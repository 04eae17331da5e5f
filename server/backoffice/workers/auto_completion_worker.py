"""Background worker that auto-completes bookings past their travel window."""

from ..core.database import async_session_factory
from ..core.observability import get_logger
from ..services.reconciliation_service import ReconciliationService
from .base import BaseWorker

logger = get_logger(__name__)


class AutoCompletionWorker(BaseWorker):
    """
    Periodically runs the booking reconciliation job.

    Each iteration opens its own session; the job commits or raises.
    """

    def __init__(self, interval_seconds: int = 3600, session_factory=async_session_factory):
        super().__init__(name="AutoCompletion", interval_seconds=interval_seconds)
        self.session_factory = session_factory

    async def process(self) -> None:
        async with self.session_factory() as db:
            result = await ReconciliationService(db).run_auto_completion(trigger="worker")

        if result.total_checked:
            logger.info(
                "auto_completion_iteration",
                worker=self.name,
                total_checked=result.total_checked,
                completed_count=result.completed_count,
                failed_count=result.failed_count,
            )
