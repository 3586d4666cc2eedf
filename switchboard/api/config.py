"""Configuration via pydantic-settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded once from the environment at process start."""

    model_config = SettingsConfigDict(
        env_prefix="SWITCHBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # === BUDGET ===
    budget_ceiling_usd: float = Field(default=10.0, gt=0)
    warning_ratio: float = Field(default=0.5, gt=0, lt=1)
    critical_ratio: float = Field(default=0.9, gt=0, le=1)

    # === ROUTING ===
    # Inline policy, e.g. '{"light": {"normal": ["groq"], ...}, ...}'
    routing_policy: dict[str, dict[str, list[str]]] | None = None
    # YAML policy file, used when no inline policy is given
    routing_policy_path: str | None = None

    # Provider name -> environment variable holding its API key
    provider_credentials: dict[str, str] = Field(
        default_factory=lambda: {
            "groq": "GROQ_API_KEY",
            "openai-mini": "OPENAI_API_KEY",
            "openai": "OPENAI_API_KEY",
            "anthropic": "ANTHROPIC_API_KEY",
        }
    )
    provider_timeout_seconds: float = Field(default=60.0, gt=0)
    max_tokens: int = Field(default=4000, gt=0)

    # === ORCHESTRATION ===
    synthesis_provider: str = "anthropic"
    validation_threshold: float = Field(default=0.7, ge=0, le=1)
    fan_out_deadline_ms: int = Field(default=30000, gt=0)
