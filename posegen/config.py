"""Configuration loaded from environment (.env) and defaults."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the project root .env file regardless of CWD
_THIS_DIR = Path(__file__).resolve().parent          # posegen/
_PROJECT_ROOT = _THIS_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"

DEFAULT_IMAGE_SIZE = "1024x1024"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM provider: openai | anthropic
    posegen_llm_provider: str = "openai"

    # OpenAI
    openai_api_key: str | None = None
    posegen_openai_model: str = "gpt-4o-mini"

    # Anthropic
    anthropic_api_key: str | None = None
    posegen_anthropic_model: str = "claude-3-5-sonnet-20241022"

    # Prompt language: en | zh
    posegen_language: str = "en"

    # Data directory for file-backed stores
    posegen_data_dir: str = "./data"

    # Postgres URL; file stores are used when unset
    posegen_database_url: str | None = None

    # Image generation
    posegen_default_image_size: str | None = None
    posegen_default_image_provider: str = "openai"
    posegen_image_model: str = "dall-e-3"

    # Extraction output budget
    posegen_extraction_max_tokens: int = 2000

    # Image generation polling. backoff_factor 1.0 keeps a fixed interval.
    posegen_poll_interval_seconds: float = 2.0
    posegen_poll_max_attempts: int = 60
    posegen_poll_backoff_factor: float = 1.0
    posegen_poll_max_interval_seconds: float = 10.0

    # Background worker pools
    posegen_max_workers: int = 8
    posegen_image_workers: int = 4

    # CORS origins (comma-separated). Defaults to localhost dev.
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_origin_regex: str | None = None

    # Server port
    port: int = 8000

    @property
    def data_dir(self) -> Path:
        """Data directory as Path; relative paths resolve against the project root."""
        p = Path(self.posegen_data_dir)
        if not p.is_absolute():
            return (_PROJECT_ROOT / p).resolve()
        return p.resolve()

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)


def resolve_image_size(
    default: str,
    configured: str | None = None,
    drama_size: str | None = None,
) -> str:
    """Return the image size to request.

    Precedence, lowest to highest: built-in default, global configuration,
    drama-level setting. Empty values do not override.
    """
    size = default
    if configured:
        size = configured
    if drama_size:
        size = drama_size
    return size


def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_dirs()
    return settings
