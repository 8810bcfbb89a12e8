# blastmsa/progress.py
from __future__ import annotations

from typing import Optional

from .errors import CanceledError

__all__ = ["ProgressListener"]


class ProgressListener:
    """
    Progress reporting and cooperative cancellation.

    The default implementation only keeps counters; a UI can subclass it and
    override the hooks. Long loops call `check_for_cancel()` (directly or via
    `increment_progress()`), which raises CanceledError once `cancel()` was
    called.
    """

    def __init__(self) -> None:
        self.task: str = ""
        self.subtask: str = ""
        self.maximum: int = 0
        self.progress: int = 0
        self._canceled = False

    def set_tasks(self, task: str, subtask: str) -> None:
        self.task = task
        self.subtask = subtask

    def set_subtask(self, subtask: str) -> None:
        self.subtask = subtask

    def set_maximum(self, maximum: Optional[int]) -> None:
        self.maximum = maximum or 0

    def set_progress(self, progress: int) -> None:
        self.progress = progress
        self.check_for_cancel()

    def increment_progress(self) -> None:
        self.set_progress(self.progress + 1)

    def cancel(self) -> None:
        self._canceled = True

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    def check_for_cancel(self) -> None:
        if self._canceled:
            raise CanceledError("canceled by user")
