"""Pydantic models: dramas, episodes, poses and image generation records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Drama(BaseModel):
    """Parent record; carries the style and size defaults for its assets."""

    id: int = 0
    title: str = ""
    default_style: str | None = None
    default_prop_style: str | None = None
    default_prop_ratio: str | None = None
    default_image_ratio: str | None = None
    default_image_size: str | None = None


class Episode(BaseModel):
    id: int = 0
    drama_id: int
    title: str = ""
    script_content: str | None = None


class Pose(BaseModel):
    """A generatable entity. ``description`` doubles as the image prompt."""

    id: int = 0
    drama_id: int
    name: str
    type: str | None = None
    description: str | None = None
    image_url: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def has_description(self) -> bool:
        return bool(self.description and self.description.strip())


class Storyboard(BaseModel):
    id: int = 0
    episode_id: int
    pose_ids: list[int] = Field(default_factory=list)


class ImageGenerationStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ImageGeneration(BaseModel):
    """Downstream record for one image generation request."""

    id: int = 0
    drama_id: str = ""
    image_type: str = ""
    prompt: str = ""
    size: str = ""
    provider: str = ""
    status: ImageGenerationStatus = ImageGenerationStatus.PENDING
    image_url: str | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class GenerateImageRequest(BaseModel):
    """Submission payload for the image generation collaborator."""

    drama_id: str
    image_type: str
    prompt: str
    size: str
    provider: str


class PoseCandidate(BaseModel):
    """One pose as returned by the extraction model."""

    name: str
    type: str = ""
    description: str = ""
    image_prompt: str = ""

    @field_validator("type", "description", "image_prompt", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        if v is None:
            return ""
        return str(v)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return str(v).strip() if v is not None else v
