"""Domain models shared by the repository, pipelines and HTTP layer."""

from posegen.schemas.models import (
    Drama,
    Episode,
    GenerateImageRequest,
    ImageGeneration,
    ImageGenerationStatus,
    Pose,
    PoseCandidate,
    Storyboard,
)

__all__ = [
    "Drama",
    "Episode",
    "GenerateImageRequest",
    "ImageGeneration",
    "ImageGenerationStatus",
    "Pose",
    "PoseCandidate",
    "Storyboard",
]
