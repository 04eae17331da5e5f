"""Background workers for the back office."""

from .auto_completion_worker import AutoCompletionWorker

__all__ = ["AutoCompletionWorker"]
