"""Abstract LLM provider protocol."""

from typing import Any, Protocol


class LLMProvider(Protocol):
    """Protocol for text generation backends (OpenAI, Anthropic).

    Recognised kwargs: ``max_tokens``, ``temperature``, ``response_format``
    (``{"type": "json_object"}``), ``model``. No streaming.
    """

    def complete(self, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> str:
        """Return raw text completion."""
        ...
