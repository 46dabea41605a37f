"""OpenAI text generation."""

from typing import Any

from openai import APIError, APIStatusError, OpenAI, RateLimitError


class OpenAIProvider:
    """OpenAI chat completion. The client is built on first use so a missing
    key surfaces as a failed task rather than a startup error."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
    ):
        self._api_key = api_key
        self._model = model
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    def complete(self, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        try:
            response = self._get_client().chat.completions.create(
                model=kwargs.get("model") or self._model,
                messages=messages,
                **{k: v for k, v in kwargs.items() if k != "model" and v is not None},
            )
            msg = response.choices[0].message
            return msg.content or ""
        except (RateLimitError, APIStatusError, APIError):
            # Re-raised as-is; pipelines classify them when recording the failure
            raise
