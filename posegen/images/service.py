"""Image generation collaborator.

``submit`` records a pending ImageGeneration and hands the provider call to
its own runner; ``get`` reads the record back. Callers observe completion
only by polling ``get``.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from posegen.errors import UpstreamError
from posegen.images.provider import ImageProvider
from posegen.repository.base import Repository
from posegen.schemas.models import (
    GenerateImageRequest,
    ImageGeneration,
    ImageGenerationStatus,
)
from posegen.worker import TaskRunner

logger = logging.getLogger(__name__)


class ImageGenerationService(Protocol):
    def submit(self, request: GenerateImageRequest) -> ImageGeneration: ...
    def get(self, generation_id: int) -> ImageGeneration | None: ...


class LocalImageGenerationService:
    """Runs provider calls on a dedicated runner, separate from the pipeline
    pool, so pollers waiting on a record cannot starve its generation."""

    def __init__(
        self,
        repository: Repository,
        provider_factory: Callable[[str], ImageProvider],
        runner: TaskRunner,
    ):
        self._repository = repository
        self._provider_factory = provider_factory
        self._runner = runner

    def submit(self, request: GenerateImageRequest) -> ImageGeneration:
        try:
            provider = self._provider_factory(request.provider)
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(f"Image provider init failed: {str(e)[:200]}") from e

        record = self._repository.create_image_generation(
            ImageGeneration(
                drama_id=request.drama_id,
                image_type=request.image_type,
                prompt=request.prompt,
                size=request.size,
                provider=request.provider,
                status=ImageGenerationStatus.PENDING,
            )
        )
        self._runner.submit(self._generate, record.id, provider, request.prompt, request.size)
        logger.info("Submitted image generation %s (provider=%s, size=%s)", record.id, request.provider, request.size)
        return record

    def get(self, generation_id: int) -> ImageGeneration | None:
        return self._repository.get_image_generation(generation_id)

    def shutdown(self, wait: bool = True) -> None:
        self._runner.shutdown(wait=wait)

    def _generate(self, generation_id: int, provider: ImageProvider, prompt: str, size: str) -> None:
        self._repository.update_image_generation(
            generation_id, {"status": ImageGenerationStatus.PROCESSING}
        )
        try:
            url = provider.generate(prompt, size)
        except Exception as e:
            logger.warning("Image generation %s failed: %s", generation_id, e)
            self._repository.update_image_generation(
                generation_id,
                {"status": ImageGenerationStatus.FAILED, "error_message": str(e)[:300]},
            )
            return
        self._repository.update_image_generation(
            generation_id,
            {"status": ImageGenerationStatus.COMPLETED, "image_url": url},
        )
