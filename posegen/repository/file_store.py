"""File-based repository: one JSON document holding every collection.

Used when no Postgres URL is configured. All reads and writes go through a
single lock and the document is replaced atomically after each write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from posegen.errors import DuplicatePoseError
from posegen.repository.base import (
    IMAGE_GENERATION_UPDATABLE_FIELDS,
    POSE_UPDATABLE_FIELDS,
    filter_updates,
)
from posegen.schemas.models import (
    Drama,
    Episode,
    ImageGeneration,
    Pose,
    Storyboard,
)

logger = logging.getLogger(__name__)

_COLLECTIONS = ("dramas", "episodes", "poses", "storyboards", "image_generations")


class FileRepository:
    """Persist records in ``<data_dir>/db/repository.json``."""

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir) / "db"
        self._dir.mkdir(parents=True, exist_ok=True)
        self._path = self._dir / "repository.json"
        self._lock = threading.RLock()
        self._data = self._load()

    def _load(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self._path.exists():
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Could not read %s (%s); starting empty", self._path, e)
                data = {}
        for name in _COLLECTIONS:
            data.setdefault(name, {})
        data.setdefault("sequences", {name: 0 for name in _COLLECTIONS})
        return data

    def _save(self) -> None:
        fd, tmp = tempfile.mkstemp(dir=self._dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, default=str, ensure_ascii=False)
            os.replace(tmp, self._path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _next_id(self, collection: str) -> int:
        seq = self._data["sequences"].get(collection, 0) + 1
        self._data["sequences"][collection] = seq
        return seq

    def _insert(self, collection: str, record) -> Any:
        with self._lock:
            if not record.id:
                record.id = self._next_id(collection)
            else:
                seq = self._data["sequences"].get(collection, 0)
                self._data["sequences"][collection] = max(seq, record.id)
            self._data[collection][str(record.id)] = record.model_dump(mode="json")
            self._save()
        return record

    def _fetch(self, collection: str, record_id: int, model):
        # Validate under the lock; updates mutate the stored dicts in place
        with self._lock:
            raw = self._data[collection].get(str(record_id))
            return model.model_validate(raw) if raw is not None else None

    # -- dramas / episodes ------------------------------------------------

    def create_drama(self, drama: Drama) -> Drama:
        return self._insert("dramas", drama)

    def get_drama(self, drama_id: int) -> Drama | None:
        return self._fetch("dramas", drama_id, Drama)

    def create_episode(self, episode: Episode) -> Episode:
        return self._insert("episodes", episode)

    def get_episode(self, episode_id: int) -> Episode | None:
        return self._fetch("episodes", episode_id, Episode)

    # -- poses ------------------------------------------------------------

    def create_pose(self, pose: Pose) -> Pose:
        with self._lock:
            if self.find_pose_by_name(pose.drama_id, pose.name) is not None:
                raise DuplicatePoseError(
                    f"Pose {pose.name!r} already exists for drama {pose.drama_id}"
                )
            return self._insert("poses", pose)

    def get_pose(self, pose_id: int) -> Pose | None:
        return self._fetch("poses", pose_id, Pose)

    def list_poses(self, drama_id: int) -> list[Pose]:
        with self._lock:
            poses = [
                Pose.model_validate(r)
                for r in self._data["poses"].values()
                if r["drama_id"] == drama_id
            ]
        return sorted(poses, key=lambda p: p.id)

    def find_pose_by_name(self, drama_id: int, name: str) -> Pose | None:
        with self._lock:
            for r in self._data["poses"].values():
                if r["drama_id"] == drama_id and r["name"] == name:
                    return Pose.model_validate(r)
        return None

    def update_pose(self, pose_id: int, updates: dict[str, Any]) -> Pose | None:
        updates = filter_updates(updates, POSE_UPDATABLE_FIELDS)
        with self._lock:
            raw = self._data["poses"].get(str(pose_id))
            if raw is None:
                return None
            new_name = updates.get("name")
            if new_name and new_name != raw["name"]:
                other = self.find_pose_by_name(raw["drama_id"], new_name)
                if other is not None and other.id != pose_id:
                    raise DuplicatePoseError(
                        f"Pose {new_name!r} already exists for drama {raw['drama_id']}"
                    )
            raw.update(updates)
            raw["updated_at"] = datetime.utcnow().isoformat()
            self._save()
            return Pose.model_validate(raw)

    def delete_pose(self, pose_id: int) -> bool:
        with self._lock:
            if self._data["poses"].pop(str(pose_id), None) is None:
                return False
            for sb in self._data["storyboards"].values():
                if pose_id in sb.get("pose_ids", []):
                    sb["pose_ids"] = [p for p in sb["pose_ids"] if p != pose_id]
            self._save()
        return True

    # -- storyboards ------------------------------------------------------

    def create_storyboard(self, storyboard: Storyboard) -> Storyboard:
        return self._insert("storyboards", storyboard)

    def get_storyboard(self, storyboard_id: int) -> Storyboard | None:
        return self._fetch("storyboards", storyboard_id, Storyboard)

    def set_storyboard_poses(self, storyboard_id: int, pose_ids: list[int]) -> bool:
        with self._lock:
            raw = self._data["storyboards"].get(str(storyboard_id))
            if raw is None:
                return False
            raw["pose_ids"] = list(dict.fromkeys(pose_ids))
            self._save()
        return True

    # -- image generation records ----------------------------------------

    def create_image_generation(self, record: ImageGeneration) -> ImageGeneration:
        return self._insert("image_generations", record)

    def get_image_generation(self, generation_id: int) -> ImageGeneration | None:
        return self._fetch("image_generations", generation_id, ImageGeneration)

    def update_image_generation(self, generation_id: int, updates: dict[str, Any]) -> bool:
        updates = filter_updates(updates, IMAGE_GENERATION_UPDATABLE_FIELDS)
        if "status" in updates and hasattr(updates["status"], "value"):
            updates["status"] = updates["status"].value
        with self._lock:
            raw = self._data["image_generations"].get(str(generation_id))
            if raw is None:
                return False
            raw.update(updates)
            raw["updated_at"] = datetime.utcnow().isoformat()
            self._save()
        return True
