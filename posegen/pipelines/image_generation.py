"""Pose image generation: submit a request, then poll the generation record.

The downstream service is asynchronous and may never finish, so polling is
bounded by PollPolicy; exhausting it fails the task with a timeout.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterator

from posegen.config import DEFAULT_IMAGE_SIZE, resolve_image_size
from posegen.errors import GenerationTimeoutError
from posegen.images.service import ImageGenerationService
from posegen.jobs import TaskLedger, TaskStatus
from posegen.llm.errors import describe_upstream_error
from posegen.prompts import PromptLibrary
from posegen.repository.base import Repository
from posegen.schemas.models import (
    GenerateImageRequest,
    ImageGenerationStatus,
    Pose,
)

logger = logging.getLogger(__name__)

POSE_IMAGE_TYPE = "pose"
BASE_PROGRESS = 10
GENERATION_FAILED_FALLBACK = "image generation failed"


@dataclass(frozen=True)
class PollPolicy:
    """Sleep schedule for polling. backoff_factor 1.0 gives a fixed interval."""

    interval: float = 2.0
    max_attempts: int = 60
    backoff_factor: float = 1.0
    max_interval: float = 10.0

    def delays(self) -> Iterator[float]:
        delay = self.interval
        for _ in range(self.max_attempts):
            yield delay
            delay = min(delay * self.backoff_factor, max(self.max_interval, self.interval))


class ImageGenerationPipeline:
    def __init__(
        self,
        repository: Repository,
        ledger: TaskLedger,
        image_service: ImageGenerationService,
        prompts: PromptLibrary,
        provider: str = "openai",
        configured_size: str | None = None,
        poll_policy: PollPolicy = PollPolicy(),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._repository = repository
        self._ledger = ledger
        self._image_service = image_service
        self._prompts = prompts
        self._provider = provider
        self._configured_size = configured_size
        self._poll_policy = poll_policy
        self._sleep = sleep

    def run(self, task_id: str, pose: Pose) -> None:
        try:
            self._run(task_id, pose)
        except Exception as e:
            logger.exception("Pose image task %s crashed", task_id)
            self._ledger.update_error(task_id, f"Image generation failed: {str(e)[:300]}")

    def _resolve_size(self, pose: Pose) -> str:
        drama_size = None
        try:
            drama = self._repository.get_drama(pose.drama_id)
            if drama is not None:
                drama_size = drama.default_image_size
        except Exception as e:
            logger.warning("Could not load drama %s for size override: %s", pose.drama_id, e)
        return resolve_image_size(DEFAULT_IMAGE_SIZE, self._configured_size, drama_size)

    def _run(self, task_id: str, pose: Pose) -> None:
        self._ledger.update_status(task_id, TaskStatus.PROCESSING, 0, "generating image")

        request = GenerateImageRequest(
            drama_id=str(pose.drama_id),
            image_type=POSE_IMAGE_TYPE,
            prompt=(pose.description or "") + self._prompts.image_style_suffix,
            size=self._resolve_size(pose),
            provider=self._provider,
        )
        try:
            generation = self._image_service.submit(request)
        except Exception as e:
            logger.warning("Pose image task %s: submission failed: %s", task_id, e)
            self._ledger.update_error(task_id, describe_upstream_error(e))
            return

        for attempt, delay in enumerate(self._poll_policy.delays()):
            self._sleep(delay)
            try:
                current = self._image_service.get(generation.id)
            except Exception as e:
                logger.warning("Failed to poll image generation %s: %s", generation.id, e)
                continue
            if current is None:
                logger.warning("Image generation %s not found while polling", generation.id)
                continue

            if current.status == ImageGenerationStatus.COMPLETED and current.image_url:
                self._repository.update_pose(pose.id, {"image_url": current.image_url})
                self._ledger.update_result(task_id, {"image_url": current.image_url})
                logger.info("Pose image task %s completed after %d polls", task_id, attempt + 1)
                return
            if current.status == ImageGenerationStatus.FAILED:
                self._ledger.update_error(task_id, current.error_message or GENERATION_FAILED_FALLBACK)
                return

            self._ledger.update_status(
                task_id, TaskStatus.PROCESSING, BASE_PROGRESS + attempt, "generating image"
            )

        timeout = GenerationTimeoutError(
            f"image generation timed out after {self._poll_policy.max_attempts} polls"
        )
        self._ledger.update_error(task_id, timeout)
