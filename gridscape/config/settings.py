"""Runtime settings."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_DEFAULT_MODEL_CASCADE = ",".join(
    (
        "arcee-ai/trinity-large-preview:free",
        "google/gemma-3-12b-it:free",
        "tngtech/deepseek-r1t2-chimera:free",
        "google/gemini-2.0-flash-exp:free",
        "openai/gpt-4o-mini",
    )
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GRIDSCAPE_", extra="ignore")

    app_name: str = "Gridscape"
    env: str = "dev"
    log_level: str = "info"
    host: str = "127.0.0.1"
    port: int = 8888

    # never logged; see util.masking
    openrouter_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("OPENROUTER_API_KEY", "GRIDSCAPE_OPENROUTER_API_KEY"),
    )
    upstream_base_url: str = "https://openrouter.ai/api/v1"
    upstream_referer: str = "https://gridscape.netlify.app"
    upstream_title: str = "Gridscape"
    # ordered, comma separated; tried first to last
    model_cascade: str = _DEFAULT_MODEL_CASCADE
    attempt_timeout_seconds: float = Field(default=10.0, gt=0.0)
    rewrite_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    creative_temperature: float = Field(default=0.9, ge=0.0, le=2.0)

    max_request_body_bytes: int = 64_000
    max_text_length: int = 4_000
    # optional YAML override for the prompt ladder; missing file means built-in tables
    style_ladder_path: str = "config/style_ladder.yaml"


def parse_model_cascade(raw: str) -> list[str]:
    models: list[str] = []
    for item in (raw or "").split(","):
        candidate = item.strip()
        if candidate and candidate not in models:
            models.append(candidate)
    return models


settings = Settings()
