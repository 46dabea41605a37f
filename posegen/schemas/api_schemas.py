"""Request and response models for the HTTP layer."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CreatePoseRequest(BaseModel):
    """Body for POST /api/poses."""

    drama_id: int
    name: str
    type: str | None = None
    description: str | None = None
    image_url: str | None = None


class UpdatePoseRequest(BaseModel):
    """Body for PUT /api/poses/{pose_id}. Only fields that are set are applied."""

    name: str | None = None
    type: str | None = None
    description: str | None = None
    image_url: str | None = None


class AssociatePosesRequest(BaseModel):
    pose_ids: list[int] = Field(default_factory=list)


class TaskStartedResponse(BaseModel):
    """Immediate response for endpoints that start background work."""

    task_id: str
    message: str = ""


class TaskStatusResponse(BaseModel):
    """Response for GET /api/tasks/{task_id}."""

    task_id: str
    kind: str
    subject_ref: str
    status: str
    progress: int = 0
    message: str = ""
    result: Any = None
    error: str | None = None
    created_at: str = ""
    updated_at: str = ""


class GenerateStyleRequest(BaseModel):
    description: str = Field(..., min_length=1)


class GenerateStyleResponse(BaseModel):
    success: bool = True
    data: dict[str, Any] = Field(default_factory=dict)
