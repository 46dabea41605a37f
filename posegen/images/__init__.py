"""Image generation: providers and the generation record service."""

from posegen.images.provider import ImageProvider, OpenAIImageProvider, get_image_provider
from posegen.images.service import ImageGenerationService, LocalImageGenerationService

__all__ = [
    "ImageGenerationService",
    "ImageProvider",
    "LocalImageGenerationService",
    "OpenAIImageProvider",
    "get_image_provider",
]
