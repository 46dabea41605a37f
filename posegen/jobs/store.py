"""Task storage: Postgres (preferred) or file-based fallback.

Every mutation is a single conditional write: a task that is already
completed or failed is never overwritten.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Protocol

from posegen.config import get_settings
from posegen.jobs.models import Task, TaskKind, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore(Protocol):
    def create(self, task: Task) -> Task: ...
    def get(self, task_id: str) -> Task | None: ...
    def update(self, task: Task) -> bool: ...


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

class PostgresTaskStore:
    """Persist tasks in Postgres. Row-level updates keep readers consistent."""

    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        try:
            import psycopg
        except ImportError:
            raise ImportError(
                "psycopg required for Postgres task store. pip install 'psycopg[binary]'"
            )
        conn = psycopg.connect(self._url, autocommit=True)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS posegen_tasks (
                task_id TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                subject_ref TEXT NOT NULL,
                status TEXT NOT NULL,
                progress INT NOT NULL DEFAULT 0,
                message TEXT NOT NULL DEFAULT '',
                result JSONB,
                error TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        return conn

    def create(self, task: Task) -> Task:
        self._conn.execute(
            """
            INSERT INTO posegen_tasks
            (task_id, kind, subject_ref, status, progress, message, result, error,
             created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s::jsonb, %s, NOW(), NOW())
            """,
            (
                task.task_id,
                task.kind.value,
                task.subject_ref,
                task.status.value,
                task.progress,
                task.message,
                json.dumps(task.result, default=str) if task.result is not None else None,
                task.error,
            ),
        )
        return task

    def get(self, task_id: str) -> Task | None:
        row = self._conn.execute(
            """
            SELECT task_id, kind, subject_ref, status, progress, message, result, error,
                   created_at, updated_at
            FROM posegen_tasks WHERE task_id = %s
            """,
            (task_id,),
        ).fetchone()
        if not row:
            return None
        return self._row_to_task(row)

    def update(self, task: Task) -> bool:
        cur = self._conn.execute(
            """
            UPDATE posegen_tasks SET
                status = %s, progress = %s, message = %s,
                result = %s::jsonb, error = %s, updated_at = NOW()
            WHERE task_id = %s AND status NOT IN ('completed', 'failed')
            """,
            (
                task.status.value,
                task.progress,
                task.message,
                json.dumps(task.result, default=str) if task.result is not None else None,
                task.error,
                task.task_id,
            ),
        )
        return cur.rowcount == 1

    def _row_to_task(self, row) -> Task:
        result = row[6]
        if isinstance(result, str):
            result = json.loads(result)
        return Task(
            task_id=row[0],
            kind=TaskKind(row[1]),
            subject_ref=row[2],
            status=TaskStatus(row[3]),
            progress=row[4],
            message=row[5] or "",
            result=result,
            error=row[7],
            created_at=row[8],
            updated_at=row[9],
        )


# ---------------------------------------------------------------------------
# File-based implementation (fallback when no Postgres)
# ---------------------------------------------------------------------------

class FileTaskStore:
    """Persist tasks as JSON files, one per task.

    Files are replaced atomically so a polling reader never sees a partial
    write; the lock makes the terminal check and the write one step.
    """

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir) / "tasks"
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _task_path(self, task_id: str) -> Path:
        return self._dir / f"{task_id}.json"

    def create(self, task: Task) -> Task:
        with self._lock:
            self._write_task(task)
        return task

    def get(self, task_id: str) -> Task | None:
        path = self._task_path(task_id)
        if not path.exists():
            return None
        return self._read_task(path)

    def update(self, task: Task) -> bool:
        path = self._task_path(task.task_id)
        with self._lock:
            if not path.exists():
                return False
            if self._read_task(path).is_terminal:
                return False
            self._write_task(task)
        return True

    def _write_task(self, task: Task) -> None:
        data = task.model_dump(mode="json")
        fd, tmp = tempfile.mkstemp(dir=self._dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str)
            os.replace(tmp, self._task_path(task.task_id))
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _read_task(self, path: Path) -> Task:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Task.model_validate(data)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: TaskStore | None = None


def get_task_store() -> TaskStore:
    """Return singleton task store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.posegen_database_url:
        try:
            _store = PostgresTaskStore(settings.posegen_database_url)
            logger.info("Using Postgres task store")
        except Exception as e:
            logger.warning("Postgres task store failed (%s), falling back to file store", e)
            _store = FileTaskStore(settings.data_dir)
    else:
        _store = FileTaskStore(settings.data_dir)
        logger.info("Using file-based task store (POSEGEN_DATA_DIR/tasks)")
    return _store


def _new_task_id() -> str:
    return f"task_{uuid.uuid4().hex[:16]}"
