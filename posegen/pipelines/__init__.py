"""Background pipelines: pose extraction and pose image generation."""

from posegen.pipelines.extraction import ExtractionPipeline
from posegen.pipelines.image_generation import ImageGenerationPipeline, PollPolicy

__all__ = ["ExtractionPipeline", "ImageGenerationPipeline", "PollPolicy"]
