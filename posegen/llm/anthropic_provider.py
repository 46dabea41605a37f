"""Anthropic text generation."""

from typing import Any

from anthropic import Anthropic

_JSON_INSTRUCTION = "Respond with JSON only. No markdown, no code fence, no explanation."


class AnthropicProvider:
    """Anthropic messages API. JSON response format is requested through the
    prompt since the API has no json_object mode."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-sonnet-20241022",
    ):
        self._api_key = api_key
        self._model = model
        self._client: Anthropic | None = None

    def _get_client(self) -> Anthropic:
        if self._client is None:
            self._client = Anthropic(api_key=self._api_key)
        return self._client

    def complete(self, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> str:
        response_format = kwargs.get("response_format") or {}
        if response_format.get("type") == "json_object":
            prompt = f"{prompt}\n\n{_JSON_INSTRUCTION}"
        params: dict[str, Any] = {
            "model": kwargs.get("model") or self._model,
            "max_tokens": kwargs.get("max_tokens") or 4096,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            params["system"] = system_prompt
        if kwargs.get("temperature") is not None:
            params["temperature"] = kwargs["temperature"]
        response = self._get_client().messages.create(**params)
        return response.content[0].text if response.content else ""
