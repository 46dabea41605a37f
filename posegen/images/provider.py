"""Image providers: turn a prompt into an image URL."""

from __future__ import annotations

from typing import Protocol

from openai import OpenAI

from posegen.errors import UpstreamError


class ImageProvider(Protocol):
    def generate(self, prompt: str, size: str) -> str:
        """Return the URL of the generated image."""
        ...


class OpenAIImageProvider:
    """OpenAI Images API. Base64-only responses come back as data URLs."""

    def __init__(self, api_key: str | None = None, model: str = "dall-e-3"):
        self._api_key = api_key
        self._model = model
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    def generate(self, prompt: str, size: str) -> str:
        response = self._get_client().images.generate(
            model=self._model,
            prompt=prompt,
            size=size,
            n=1,
        )
        if not response.data:
            raise UpstreamError("Image provider returned no images")
        image = response.data[0]
        if image.url:
            return image.url
        if getattr(image, "b64_json", None):
            return f"data:image/png;base64,{image.b64_json}"
        raise UpstreamError("Image provider returned neither a URL nor image data")


def get_image_provider(provider_name: str, **kwargs: object) -> ImageProvider:
    """Return the image provider for ``provider_name``. Only 'openai' is built in."""
    if provider_name.lower() != "openai":
        raise UpstreamError(f"Unsupported image provider: {provider_name}")
    return OpenAIImageProvider(**kwargs)
