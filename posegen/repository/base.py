"""Repository protocol for dramas, episodes, poses, storyboards and image generation records."""

from __future__ import annotations

from typing import Any, Protocol

from posegen.schemas.models import (
    Drama,
    Episode,
    ImageGeneration,
    Pose,
    Storyboard,
)

# Columns callers may change through update_pose
POSE_UPDATABLE_FIELDS = ("name", "type", "description", "image_url")
IMAGE_GENERATION_UPDATABLE_FIELDS = ("status", "image_url", "error_message")


class Repository(Protocol):
    """Point lookups, owner-filtered lists, creates and partial updates.

    Each method is a single atomic write or read; callers never hold a
    transaction across calls. ``create_pose`` raises DuplicatePoseError when
    a pose with the same (drama_id, name) already exists.
    """

    def create_drama(self, drama: Drama) -> Drama: ...
    def get_drama(self, drama_id: int) -> Drama | None: ...

    def create_episode(self, episode: Episode) -> Episode: ...
    def get_episode(self, episode_id: int) -> Episode | None: ...

    def create_pose(self, pose: Pose) -> Pose: ...
    def get_pose(self, pose_id: int) -> Pose | None: ...
    def list_poses(self, drama_id: int) -> list[Pose]: ...
    def find_pose_by_name(self, drama_id: int, name: str) -> Pose | None: ...
    def update_pose(self, pose_id: int, updates: dict[str, Any]) -> Pose | None: ...
    def delete_pose(self, pose_id: int) -> bool: ...

    def create_storyboard(self, storyboard: Storyboard) -> Storyboard: ...
    def get_storyboard(self, storyboard_id: int) -> Storyboard | None: ...
    def set_storyboard_poses(self, storyboard_id: int, pose_ids: list[int]) -> bool: ...

    def create_image_generation(self, record: ImageGeneration) -> ImageGeneration: ...
    def get_image_generation(self, generation_id: int) -> ImageGeneration | None: ...
    def update_image_generation(self, generation_id: int, updates: dict[str, Any]) -> bool: ...


def filter_updates(updates: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    """Drop keys that are not updatable columns."""
    return {k: v for k, v in updates.items() if k in allowed}
