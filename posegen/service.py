"""PoseService: entry points that validate, create a task and hand off to a pipeline.

``extract_from_script`` and ``generate_image`` return a task id as soon as
the task exists; the caller polls ``get_task`` for the outcome. Anything
that fails after that point is visible only in the task record.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from posegen.config import Settings, get_settings
from posegen.errors import AIParseError, InvalidStateError, NotFoundError, UpstreamError
from posegen.images import LocalImageGenerationService, get_image_provider
from posegen.images.service import ImageGenerationService
from posegen.jobs import Task, TaskKind, TaskLedger, get_task_store
from posegen.llm import LLMProvider, resolve_llm
from posegen.llm.errors import describe_upstream_error
from posegen.parsing import parse_ai_json
from posegen.pipelines import ExtractionPipeline, ImageGenerationPipeline, PollPolicy
from posegen.prompts import PromptLibrary
from posegen.repository import Repository, get_repository
from posegen.schemas.models import Pose
from posegen.worker import TaskRunner

logger = logging.getLogger(__name__)


class PoseService:
    def __init__(
        self,
        repository: Repository,
        ledger: TaskLedger,
        llm: LLMProvider,
        image_service: ImageGenerationService,
        runner: TaskRunner,
        prompts: PromptLibrary | None = None,
        image_provider: str = "openai",
        configured_image_size: str | None = None,
        poll_policy: PollPolicy = PollPolicy(),
        extraction_max_tokens: int = 2000,
        sleep: Callable[[float], None] | None = None,
    ):
        self.repository = repository
        self.ledger = ledger
        self.runner = runner
        self.image_service = image_service
        self._llm = llm
        self._prompts = prompts or PromptLibrary()
        self._extraction = ExtractionPipeline(
            repository, ledger, llm, self._prompts, max_tokens=extraction_max_tokens
        )
        image_kwargs: dict[str, Any] = {}
        if sleep is not None:
            image_kwargs["sleep"] = sleep
        self._image_generation = ImageGenerationPipeline(
            repository,
            ledger,
            image_service,
            self._prompts,
            provider=image_provider,
            configured_size=configured_image_size,
            poll_policy=poll_policy,
            **image_kwargs,
        )

    # -- async entry points -------------------------------------------

    def extract_from_script(self, episode_id: int) -> str:
        """Start pose extraction for an episode. Returns the task id."""
        episode = self.repository.get_episode(episode_id)
        if episode is None:
            raise NotFoundError(f"Episode not found: {episode_id}")

        task = self.ledger.create(TaskKind.POSE_EXTRACTION, str(episode_id))
        self.runner.submit(self._extraction.run, task.task_id, episode)
        logger.info("Queued pose extraction task %s for episode %s", task.task_id, episode_id)
        return task.task_id

    def generate_image(self, pose_id: int) -> str:
        """Start image generation for a pose. Returns the task id."""
        pose = self.repository.get_pose(pose_id)
        if pose is None:
            raise NotFoundError(f"Pose not found: {pose_id}")
        if not pose.has_description:
            raise InvalidStateError(f"Pose {pose_id} has no description to generate from")

        task = self.ledger.create(TaskKind.POSE_IMAGE_GENERATION, str(pose_id))
        self.runner.submit(self._image_generation.run, task.task_id, pose)
        logger.info("Queued pose image task %s for pose %s", task.task_id, pose_id)
        return task.task_id

    def get_task(self, task_id: str) -> Task:
        task = self.ledger.get(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return task

    # -- direct accessors ---------------------------------------------

    def list_poses(self, drama_id: int) -> list[Pose]:
        return self.repository.list_poses(drama_id)

    def create_pose(self, pose: Pose) -> Pose:
        return self.repository.create_pose(pose)

    def update_pose(self, pose_id: int, updates: dict[str, Any]) -> Pose:
        pose = self.repository.update_pose(pose_id, updates)
        if pose is None:
            raise NotFoundError(f"Pose not found: {pose_id}")
        return pose

    def delete_pose(self, pose_id: int) -> None:
        if not self.repository.delete_pose(pose_id):
            raise NotFoundError(f"Pose not found: {pose_id}")

    def associate_poses_with_storyboard(self, storyboard_id: int, pose_ids: list[int]) -> None:
        if self.repository.get_storyboard(storyboard_id) is None:
            raise NotFoundError(f"Storyboard not found: {storyboard_id}")
        missing = [pid for pid in pose_ids if self.repository.get_pose(pid) is None]
        if missing:
            raise NotFoundError(f"Poses not found: {', '.join(str(m) for m in missing)}")
        self.repository.set_storyboard_poses(storyboard_id, pose_ids)

    # -- synchronous generation ---------------------------------------

    def generate_style(self, description: str) -> dict[str, Any]:
        """Ask the text model for a visual style configuration."""
        prompt = self._prompts.style_generation_prompt(description)
        try:
            raw = self._llm.complete(
                prompt,
                system_prompt=self._prompts.style_system_prompt,
                temperature=0.7,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise UpstreamError(describe_upstream_error(e)) from e
        data = parse_ai_json(raw)
        if not isinstance(data, dict):
            raise AIParseError("Style output is not a JSON object", raw=raw)
        return data


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_service: PoseService | None = None


def build_pose_service(settings: Settings) -> PoseService:
    repository = get_repository()
    ledger = TaskLedger(get_task_store())
    image_runner = TaskRunner(max_workers=settings.posegen_image_workers, name="posegen-image")
    image_service = LocalImageGenerationService(
        repository,
        lambda name: get_image_provider(
            name, api_key=settings.openai_api_key, model=settings.posegen_image_model
        ),
        image_runner,
    )
    return PoseService(
        repository=repository,
        ledger=ledger,
        llm=resolve_llm(settings),
        image_service=image_service,
        runner=TaskRunner(max_workers=settings.posegen_max_workers, name="posegen-pipeline"),
        prompts=PromptLibrary(settings.posegen_language),
        image_provider=settings.posegen_default_image_provider,
        configured_image_size=settings.posegen_default_image_size,
        poll_policy=PollPolicy(
            interval=settings.posegen_poll_interval_seconds,
            max_attempts=settings.posegen_poll_max_attempts,
            backoff_factor=settings.posegen_poll_backoff_factor,
            max_interval=settings.posegen_poll_max_interval_seconds,
        ),
        extraction_max_tokens=settings.posegen_extraction_max_tokens,
    )


def get_pose_service() -> PoseService:
    """Return singleton PoseService wired from settings."""
    global _service
    if _service is None:
        _service = build_pose_service(get_settings())
    return _service


def shutdown_pose_service(wait: bool = False) -> None:
    global _service
    if _service is None:
        return
    _service.runner.shutdown(wait=wait)
    if isinstance(_service.image_service, LocalImageGenerationService):
        _service.image_service.shutdown(wait=wait)
    _service = None
