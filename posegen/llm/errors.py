"""Human-readable messages for provider failures recorded into tasks."""

import anthropic
import openai


def describe_upstream_error(e: Exception) -> str:
    if isinstance(e, (openai.RateLimitError, openai.APIStatusError)):
        return f"API quota/error: {str(e)[:200]}"
    if isinstance(e, (anthropic.RateLimitError, anthropic.APIStatusError)):
        return f"API quota/error: {str(e)[:200]}"
    if isinstance(e, (openai.APIError, anthropic.APIError)):
        return f"LLM API error: {str(e)[:200]}"
    return str(e)[:300] or e.__class__.__name__
