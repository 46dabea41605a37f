"""Tests for pose image generation: submission, bounded polling and outcomes."""

import pytest

from conftest import ScriptedImageService
from posegen.errors import InvalidStateError, NotFoundError
from posegen.jobs import TaskStatus
from posegen.pipelines import PollPolicy
from posegen.schemas.models import Drama, ImageGenerationStatus, Pose

PROCESSING = ImageGenerationStatus.PROCESSING
PENDING = ImageGenerationStatus.PENDING
COMPLETED = ImageGenerationStatus.COMPLETED
FAILED = ImageGenerationStatus.FAILED


@pytest.fixture
def pose(repository, drama):
    return repository.create_pose(
        Pose(drama_id=drama.id, name="RaiseHand", description="arm raised, palm open")
    )


class TestPollPolicy:

    def test_fixed_interval(self):
        assert list(PollPolicy(interval=2.0, max_attempts=3).delays()) == [2.0, 2.0, 2.0]

    def test_backoff_capped(self):
        policy = PollPolicy(interval=1.0, max_attempts=5, backoff_factor=2.0, max_interval=5.0)
        assert list(policy.delays()) == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_zero_attempts(self):
        assert list(PollPolicy(max_attempts=0).delays()) == []


class TestImageTask:

    def test_completes_on_third_poll(self, make_service, repository, pose):
        images = ScriptedImageService([PENDING, PROCESSING, (COMPLETED, "http://img/1.png", None)])
        service = make_service(image_service=images)

        task = service.get_task(service.generate_image(pose.id))

        assert task.status == TaskStatus.COMPLETED
        assert task.progress == 100
        assert task.result == {"image_url": "http://img/1.png"}
        assert images.reads == 3
        assert repository.get_pose(pose.id).image_url == "http://img/1.png"

    def test_request_fields(self, make_service, pose, drama):
        images = ScriptedImageService([(COMPLETED, "http://img/1.png", None)])
        make_service(image_service=images, image_provider="openai").generate_image(pose.id)

        request = images.requests[0]
        assert request.drama_id == str(drama.id)
        assert request.image_type == "pose"
        assert request.provider == "openai"
        assert request.prompt == "arm raised, palm open, standard motion capture skeleton diagram"

    def test_drama_size_overrides_configured(self, make_service, pose):
        images = ScriptedImageService([(COMPLETED, "http://img/1.png", None)])
        make_service(image_service=images, configured_image_size="512x512").generate_image(pose.id)
        assert images.requests[0].size == "1536x1024"

    def test_configured_size_used_without_drama_size(self, make_service, repository):
        drama = repository.create_drama(Drama(title="Plain"))
        pose = repository.create_pose(Pose(drama_id=drama.id, name="Sit", description="sitting"))
        images = ScriptedImageService([(COMPLETED, "http://img/1.png", None)])
        make_service(image_service=images, configured_image_size="512x512").generate_image(pose.id)
        assert images.requests[0].size == "512x512"

    def test_default_size(self, make_service, repository):
        drama = repository.create_drama(Drama(title="Plain"))
        pose = repository.create_pose(Pose(drama_id=drama.id, name="Sit", description="sitting"))
        images = ScriptedImageService([(COMPLETED, "http://img/1.png", None)])
        make_service(image_service=images).generate_image(pose.id)
        assert images.requests[0].size == "1024x1024"

    def test_failed_generation_uses_error_message(self, make_service, repository, pose):
        images = ScriptedImageService([PROCESSING, (FAILED, None, "content policy violation")])
        service = make_service(image_service=images)

        task = service.get_task(service.generate_image(pose.id))

        assert task.status == TaskStatus.FAILED
        assert task.error == "content policy violation"
        assert images.reads == 2
        assert repository.get_pose(pose.id).image_url is None

    def test_failed_generation_without_message_uses_fallback(self, make_service, pose):
        images = ScriptedImageService([FAILED])
        service = make_service(image_service=images)
        task = service.get_task(service.generate_image(pose.id))
        assert task.status == TaskStatus.FAILED
        assert task.error == "image generation failed"

    def test_times_out_after_max_attempts(self, make_service, repository, pose):
        images = ScriptedImageService([PROCESSING])
        sleeps: list[float] = []
        service = make_service(
            image_service=images,
            poll_policy=PollPolicy(interval=0.5, max_attempts=4),
            sleep=sleeps.append,
        )

        task = service.get_task(service.generate_image(pose.id))

        assert task.status == TaskStatus.FAILED
        assert "timed out" in task.error
        assert images.reads == 4
        assert sleeps == [0.5, 0.5, 0.5, 0.5]
        assert repository.get_pose(pose.id).image_url is None

    def test_completed_without_url_keeps_polling(self, make_service, pose):
        images = ScriptedImageService([(COMPLETED, None, None), (COMPLETED, "http://img/2.png", None)])
        service = make_service(image_service=images)
        task = service.get_task(service.generate_image(pose.id))
        assert task.status == TaskStatus.COMPLETED
        assert images.reads == 2

    def test_read_errors_are_retried(self, make_service, pose):
        images = ScriptedImageService(
            [RuntimeError("db hiccup"), PROCESSING, (COMPLETED, "http://img/3.png", None)]
        )
        service = make_service(image_service=images)
        task = service.get_task(service.generate_image(pose.id))
        assert task.status == TaskStatus.COMPLETED
        assert task.result["image_url"] == "http://img/3.png"

    def test_submission_failure_fails_task(self, make_service, pose):
        images = ScriptedImageService(submit_error=RuntimeError("provider unavailable"))
        service = make_service(image_service=images)

        task = service.get_task(service.generate_image(pose.id))

        assert task.status == TaskStatus.FAILED
        assert "provider unavailable" in task.error
        assert images.reads == 0

    def test_progress_advances_while_polling(self, make_service, ledger, pose):
        progress: list[int] = []
        original = ledger.update_status

        def record(task_id, status, value, message=""):
            progress.append(value)
            return original(task_id, status, value, message)

        ledger.update_status = record
        images = ScriptedImageService([PROCESSING, PROCESSING, (COMPLETED, "http://img/4.png", None)])
        make_service(image_service=images).generate_image(pose.id)

        assert progress == [0, 10, 11]


class TestValidation:

    def test_unknown_pose_creates_no_task(self, make_service, ledger, tmp_path):
        service = make_service()
        with pytest.raises(NotFoundError):
            service.generate_image(12345)
        assert not list((tmp_path / "tasks").glob("*.json"))

    def test_pose_without_description_rejected(self, make_service, repository, drama, tmp_path):
        pose = repository.create_pose(Pose(drama_id=drama.id, name="Blank", description="   "))
        images = ScriptedImageService()
        service = make_service(image_service=images)
        with pytest.raises(InvalidStateError):
            service.generate_image(pose.id)
        assert images.requests == []
        assert not list((tmp_path / "tasks").glob("*.json"))
