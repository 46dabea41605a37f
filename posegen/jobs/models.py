"""Task schema and status."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (TaskStatus.COMPLETED, TaskStatus.FAILED)


class TaskKind(str, Enum):
    POSE_EXTRACTION = "pose_extraction"
    POSE_IMAGE_GENERATION = "pose_image_generation"


class Task(BaseModel):
    """Background task record, persisted for async polling."""

    task_id: str = ""
    kind: TaskKind
    subject_ref: str = ""
    status: TaskStatus = TaskStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    message: str = ""
    result: Any = None
    error: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
