"""LLM adapter layer: OpenAI and Anthropic behind a common protocol."""

from posegen.llm.anthropic_provider import AnthropicProvider
from posegen.llm.base import LLMProvider
from posegen.llm.openai_provider import OpenAIProvider


def get_provider(provider_name: str, **kwargs: object) -> LLMProvider:
    """Return the configured LLM provider. provider_name: 'openai' | 'anthropic'."""
    if provider_name.lower() == "anthropic":
        return AnthropicProvider(**kwargs)
    return OpenAIProvider(**kwargs)


def resolve_llm(settings, provider_name: str | None = None, model: str | None = None) -> LLMProvider:
    """Build a provider from settings, honouring optional overrides."""
    name = (provider_name or settings.posegen_llm_provider).lower()
    if name == "anthropic":
        api_key = settings.anthropic_api_key
        default_model = settings.posegen_anthropic_model
    else:
        api_key = settings.openai_api_key
        default_model = settings.posegen_openai_model
    return get_provider(name, api_key=api_key, model=model or default_model)


__all__ = ["LLMProvider", "OpenAIProvider", "AnthropicProvider", "get_provider", "resolve_llm"]
