"""Task storage, lifecycle and retrieval."""

from posegen.jobs.ledger import TaskLedger
from posegen.jobs.models import Task, TaskKind, TaskStatus
from posegen.jobs.store import get_task_store, _new_task_id

__all__ = ["Task", "TaskKind", "TaskLedger", "TaskStatus", "get_task_store", "_new_task_id"]
