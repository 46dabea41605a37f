"""Localized prompt templates (Jinja2) for pose extraction and style generation."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from posegen.schemas.models import Drama

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

SUPPORTED_LANGUAGES = ("en", "zh")

# Appended to a pose description to form the image prompt
IMAGE_STYLE_SUFFIXES = {
    "en": ", standard motion capture skeleton diagram",
    "zh": "标准动捕骨架图",
}

STYLE_SYSTEM_PROMPTS = {
    "en": "You are a helpful AI assistant that generates JSON configuration for visual styles.",
    "zh": "你是一个为视觉风格生成 JSON 配置的 AI 助手。",
}


def resolve_prompt_style(drama: Drama | None) -> tuple[str, str]:
    """Return (style, ratio) for pose prompts from the drama's defaults.

    The prop style is appended to the general style; the prop ratio wins
    over the general image ratio.
    """
    if drama is None:
        return "", ""
    style = drama.default_style or ""
    if drama.default_prop_style:
        style = f"{style}, {drama.default_prop_style}" if style else drama.default_prop_style
    ratio = drama.default_prop_ratio or drama.default_image_ratio or ""
    return style, ratio


class PromptLibrary:
    def __init__(self, language: str = "en", prompts_dir: Path = PROMPTS_DIR):
        self.language = language if language in SUPPORTED_LANGUAGES else "en"
        self._env = Environment(
            loader=FileSystemLoader(str(prompts_dir)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def pose_extraction_prompt(self, script: str, style: str = "", ratio: str = "") -> str:
        tpl = self._env.get_template(f"pose_extract.{self.language}.j2")
        return tpl.render(script=script, style=style, ratio=ratio)

    def style_generation_prompt(self, description: str) -> str:
        tpl = self._env.get_template(f"style_generate.{self.language}.j2")
        return tpl.render(description=description)

    @property
    def style_system_prompt(self) -> str:
        return STYLE_SYSTEM_PROMPTS[self.language]

    @property
    def image_style_suffix(self) -> str:
        return IMAGE_STYLE_SUFFIXES[self.language]
