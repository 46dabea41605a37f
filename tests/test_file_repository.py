"""Tests for the file-backed repository."""

import threading

import pytest

from posegen.errors import DuplicatePoseError
from posegen.repository import FileRepository, file_store
from posegen.schemas.models import (
    Drama,
    ImageGeneration,
    ImageGenerationStatus,
    Pose,
    Storyboard,
)


def test_ids_assigned_and_persisted(tmp_path):
    repo = FileRepository(tmp_path)
    drama = repo.create_drama(Drama(title="Night Shift", default_image_size="1536x1024"))
    pose = repo.create_pose(Pose(drama_id=drama.id, name="Wave"))
    assert drama.id == 1
    assert pose.id == 1

    reopened = FileRepository(tmp_path)
    assert reopened.get_drama(drama.id).default_image_size == "1536x1024"
    assert reopened.get_pose(pose.id).name == "Wave"
    assert reopened.create_pose(Pose(drama_id=drama.id, name="Sit")).id == 2


def test_pose_name_unique_per_drama(repository):
    repository.create_pose(Pose(drama_id=1, name="Wave"))
    with pytest.raises(DuplicatePoseError):
        repository.create_pose(Pose(drama_id=1, name="Wave"))
    # Same name under another drama is fine
    repository.create_pose(Pose(drama_id=2, name="Wave"))
    assert len(repository.list_poses(1)) == 1
    assert len(repository.list_poses(2)) == 1


def test_find_pose_by_name(repository):
    repository.create_pose(Pose(drama_id=1, name="Wave", description="waving"))
    assert repository.find_pose_by_name(1, "Wave").description == "waving"
    assert repository.find_pose_by_name(1, "wave") is None
    assert repository.find_pose_by_name(2, "Wave") is None


def test_update_pose_ignores_unknown_fields(repository):
    pose = repository.create_pose(Pose(drama_id=1, name="Wave"))
    updated = repository.update_pose(pose.id, {"image_url": "http://img", "drama_id": 99})
    assert updated.image_url == "http://img"
    assert updated.drama_id == 1
    assert repository.update_pose(404, {"name": "x"}) is None


def test_rename_into_existing_name_rejected(repository):
    repository.create_pose(Pose(drama_id=1, name="Wave"))
    sit = repository.create_pose(Pose(drama_id=1, name="Sit"))
    with pytest.raises(DuplicatePoseError):
        repository.update_pose(sit.id, {"name": "Wave"})
    assert repository.get_pose(sit.id).name == "Sit"


def test_delete_pose_detaches_from_storyboards(repository):
    a = repository.create_pose(Pose(drama_id=1, name="A"))
    b = repository.create_pose(Pose(drama_id=1, name="B"))
    sb = repository.create_storyboard(Storyboard(episode_id=1))
    repository.set_storyboard_poses(sb.id, [a.id, b.id, a.id])
    assert repository.get_storyboard(sb.id).pose_ids == [a.id, b.id]

    assert repository.delete_pose(a.id)
    assert repository.get_storyboard(sb.id).pose_ids == [b.id]
    assert not repository.delete_pose(a.id)


def test_set_poses_on_unknown_storyboard(repository):
    assert repository.set_storyboard_poses(5, [1]) is False


def test_image_generation_record_lifecycle(repository):
    record = repository.create_image_generation(
        ImageGeneration(drama_id="1", image_type="pose", prompt="p", size="1024x1024", provider="openai")
    )
    assert repository.get_image_generation(record.id).status == ImageGenerationStatus.PENDING

    assert repository.update_image_generation(
        record.id, {"status": ImageGenerationStatus.COMPLETED, "image_url": "http://img"}
    )
    stored = repository.get_image_generation(record.id)
    assert stored.status == ImageGenerationStatus.COMPLETED
    assert stored.image_url == "http://img"
    assert repository.update_image_generation(404, {"status": ImageGenerationStatus.FAILED}) is False


def test_corrupt_file_starts_empty(tmp_path):
    (tmp_path / "db").mkdir()
    (tmp_path / "db" / "repository.json").write_text("{not json", encoding="utf-8")
    repo = FileRepository(tmp_path)
    assert repo.list_poses(1) == []


class TrackingLock:
    """Re-entrant lock that reports whether the current holder is inside it."""

    def __init__(self):
        self._lock = threading.RLock()
        self.depth = 0

    def __enter__(self):
        self._lock.acquire()
        self.depth += 1
        return self

    def __exit__(self, *exc):
        self.depth -= 1
        self._lock.release()
        return False


def test_records_are_read_under_the_lock(repository, monkeypatch):
    pose = repository.create_pose(Pose(drama_id=1, name="Wave"))
    lock = TrackingLock()
    repository._lock = lock
    reads: list[int] = []

    class CheckedPose(Pose):
        @classmethod
        def model_validate(cls, obj, *args, **kwargs):
            reads.append(lock.depth)
            return super().model_validate(obj, *args, **kwargs)

    monkeypatch.setattr(file_store, "Pose", CheckedPose)

    repository.get_pose(pose.id)
    repository.list_poses(1)
    repository.find_pose_by_name(1, "Wave")

    assert reads and all(depth > 0 for depth in reads)


def test_reads_during_concurrent_updates(repository):
    pose = repository.create_pose(Pose(drama_id=1, name="Wave"))
    errors: list[Exception] = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            try:
                assert repository.get_pose(pose.id).name == "Wave"
                repository.list_poses(1)
            except Exception as e:
                errors.append(e)
                return

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for i in range(50):
        repository.update_pose(pose.id, {"image_url": f"http://img/{i}.png"})
    done.set()
    for t in threads:
        t.join()

    assert errors == []
    assert repository.get_pose(pose.id).image_url == "http://img/49.png"
