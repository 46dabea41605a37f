"""Task ledger: lifecycle operations over a TaskStore.

The ledger is the only channel through which background work reports
progress. Transitions only move forward: pending -> processing ->
completed | failed. Terminal tasks are left untouched.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any

from posegen.jobs.models import TERMINAL_STATUSES, Task, TaskKind, TaskStatus
from posegen.jobs.store import TaskStore, _new_task_id

logger = logging.getLogger(__name__)


class TaskLedger:
    def __init__(self, store: TaskStore):
        self._store = store
        self._lock = threading.Lock()

    def create(self, kind: TaskKind, subject_ref: str) -> Task:
        task = Task(task_id=_new_task_id(), kind=kind, subject_ref=str(subject_ref))
        return self._store.create(task)

    def get(self, task_id: str) -> Task | None:
        return self._store.get(task_id)

    def update_status(
        self,
        task_id: str,
        status: TaskStatus,
        progress: int,
        message: str = "",
    ) -> bool:
        """Partial update of a running task. Terminal statuses go through
        update_result / update_error."""
        if status in TERMINAL_STATUSES:
            raise ValueError(f"update_status cannot set terminal status {status.value!r}")
        progress = max(0, min(100, int(progress)))

        def apply(task: Task) -> None:
            # pending is never re-entered once processing started
            if not (task.status == TaskStatus.PROCESSING and status == TaskStatus.PENDING):
                task.status = status
            task.progress = progress
            task.message = message

        return self._mutate(task_id, apply)

    def update_result(self, task_id: str, result: Any, message: str | None = None) -> bool:
        def apply(task: Task) -> None:
            task.status = TaskStatus.COMPLETED
            task.progress = 100
            task.result = result
            if message is not None:
                task.message = message

        return self._mutate(task_id, apply)

    def update_error(self, task_id: str, error: BaseException | str) -> bool:
        def apply(task: Task) -> None:
            task.status = TaskStatus.FAILED
            task.error = str(error)

        return self._mutate(task_id, apply)

    def _mutate(self, task_id: str, apply) -> bool:
        with self._lock:
            task = self._store.get(task_id)
            if task is None:
                logger.warning("Task %s not found; update ignored", task_id)
                return False
            if task.is_terminal:
                logger.warning(
                    "Task %s already %s; update ignored", task_id, task.status.value
                )
                return False
            apply(task)
            task.updated_at = datetime.utcnow()
            return self._store.update(task)
