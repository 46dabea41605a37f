"""Tests for prompt rendering, style resolution, size precedence and provider helpers."""

import pytest

from posegen.config import DEFAULT_IMAGE_SIZE, Settings, resolve_image_size
from posegen.errors import UpstreamError
from posegen.images import get_image_provider
from posegen.images.provider import OpenAIImageProvider
from posegen.llm import AnthropicProvider, OpenAIProvider, get_provider, resolve_llm
from posegen.llm.errors import describe_upstream_error
from posegen.prompts import PromptLibrary, resolve_prompt_style
from posegen.schemas.models import Drama


# --- Image size precedence ---


@pytest.mark.parametrize(
    "configured, drama_size, expected",
    [
        (None, None, "1024x1024"),
        ("512x512", None, "512x512"),
        (None, "1536x1024", "1536x1024"),
        ("512x512", "1536x1024", "1536x1024"),
        ("", "", "1024x1024"),
    ],
)
def test_resolve_image_size(configured, drama_size, expected):
    assert resolve_image_size(DEFAULT_IMAGE_SIZE, configured, drama_size) == expected


# --- Drama style overrides ---


def test_prompt_style_combines_general_and_prop_style():
    drama = Drama(default_style="anime", default_prop_style="line art", default_image_ratio="16:9")
    assert resolve_prompt_style(drama) == ("anime, line art", "16:9")


def test_prop_ratio_wins():
    drama = Drama(default_image_ratio="16:9", default_prop_ratio="1:1")
    assert resolve_prompt_style(drama) == ("", "1:1")


def test_prop_style_alone():
    assert resolve_prompt_style(Drama(default_prop_style="line art")) == ("line art", "")


def test_no_drama():
    assert resolve_prompt_style(None) == ("", "")


# --- Templates ---


class TestPromptLibrary:

    def test_english_extraction_prompt(self):
        text = PromptLibrary("en").pose_extraction_prompt("She bows.", style="noir", ratio="9:16")
        assert "She bows." in text
        assert "noir" in text
        assert "9:16" in text
        assert "image_prompt" in text

    def test_style_lines_omitted_when_empty(self):
        text = PromptLibrary("en").pose_extraction_prompt("She bows.")
        assert "Visual style" not in text
        assert "aspect ratio" not in text

    def test_chinese_templates(self):
        lib = PromptLibrary("zh")
        assert "剧本" in lib.pose_extraction_prompt("他举起手。")
        assert lib.image_style_suffix == "标准动捕骨架图"
        assert "JSON" in lib.style_system_prompt

    def test_unknown_language_falls_back_to_english(self):
        lib = PromptLibrary("fr")
        assert lib.language == "en"
        assert lib.image_style_suffix == ", standard motion capture skeleton diagram"

    def test_style_prompt(self):
        text = PromptLibrary("en").style_generation_prompt("rainy cyberpunk city")
        assert "rainy cyberpunk city" in text
        assert "default_style" in text


# --- Settings and provider selection ---


def test_settings_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("POSEGEN_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")
    settings = Settings(_env_file=None)
    assert settings.data_dir == tmp_path.resolve()
    assert settings.cors_origin_list == ["http://a.test", "http://b.test"]
    assert settings.posegen_poll_max_attempts == 60
    assert settings.posegen_extraction_max_tokens == 2000


def test_resolve_llm_picks_provider(monkeypatch):
    monkeypatch.setenv("POSEGEN_LLM_PROVIDER", "anthropic")
    settings = Settings(_env_file=None)
    assert isinstance(resolve_llm(settings), AnthropicProvider)
    assert isinstance(resolve_llm(settings, provider_name="openai"), OpenAIProvider)
    assert isinstance(get_provider("OpenAI"), OpenAIProvider)


def test_image_provider_selection():
    assert isinstance(get_image_provider("openai"), OpenAIImageProvider)
    with pytest.raises(UpstreamError):
        get_image_provider("midjourney")


def test_describe_plain_error():
    assert describe_upstream_error(RuntimeError("socket closed")) == "socket closed"
    assert describe_upstream_error(RuntimeError()) == "RuntimeError"
