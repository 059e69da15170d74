"""
StudyBuddy Backend — Application Configuration
================================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py at startup; everything below the HTTP layer
       receives the Settings instance as a constructor argument instead.
When:  Loaded once at module import time; validated before app starts.

Generation constants:
    AUTO mode produces long, structured slide walkthroughs (higher token
    ceiling, moderate temperature). CHAT mode answers targeted questions
    (lower token ceiling, higher temperature). The model validator below
    keeps that relationship intact when operators override the defaults.
"""

from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_PROVIDERS = {"openai", "gemini"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Production deployments MUST set the API key for the selected provider
    (OPENAI_API_KEY or GEMINI_API_KEY) and restrict CORS_ORIGINS.
    """

    # ── Model Provider ────────────────────────────────────────────────────
    # What: Which backend serves the one outbound call per request
    # Options: openai (default), gemini
    llm_provider: str = Field(default="openai")

    # ── OpenAI ────────────────────────────────────────────────────────────
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Override for OpenAI-compatible gateways (None = api.openai.com)",
    )

    # What: The two model variants the handlers choose between
    # vision_model: used whenever an image has to be interpreted
    # text_model: strongest text-only model, used for image-less CHAT requests
    vision_model: str = Field(default="gpt-4o")
    text_model: str = Field(default="gpt-4-turbo")

    # What: Processing detail for slide images (OpenAI image_url.detail)
    # Valid: low, high, auto
    image_detail: str = Field(default="high")

    # ── Google Gemini ─────────────────────────────────────────────────────
    # How to obtain: https://aistudio.google.com/app/apikey
    gemini_api_key: str = Field(default="", description="Google Gemini API key")
    gemini_vision_model: str = Field(default="gemini-1.5-pro")
    gemini_text_model: str = Field(default="gemini-1.5-pro")

    # ── Slide Image Loading (Gemini only) ─────────────────────────────────
    # Gemini takes image bytes, so http(s) imageUrls are fetched server-side.
    # Ceiling matches Gemini's 20 MB inline request limit.
    image_max_bytes: int = Field(default=20 * 1024 * 1024, ge=1024)
    image_fetch_timeout: float = Field(default=10.0, gt=0, le=60)
    # Only for local development (slides served from localhost / LAN)
    image_fetch_allow_private: bool = Field(default=False)

    # ── Generation Parameters ─────────────────────────────────────────────
    auto_max_tokens: int = Field(default=1500, ge=64, le=16384)
    auto_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    chat_max_tokens: int = Field(default=1200, ge=64, le=16384)
    chat_temperature: float = Field(default=0.8, ge=0.0, le=2.0)

    # ── Retry Configuration ───────────────────────────────────────────────
    # What: Tenacity attempt budget for one model call
    # Default 1: the orchestrator makes exactly one outbound call and surfaces
    # failures unchanged; raise this only when a gateway in front of the
    # provider is known to fail transiently.
    retry_max_attempts: int = Field(default=1, ge=1, le=10)
    retry_min_wait: int = Field(default=2, ge=1, le=30)
    retry_max_wait: int = Field(default=10, ge=5, le=120)

    # ── Circuit Breaker ───────────────────────────────────────────────────
    # How: After N consecutive failures, reject calls for M seconds
    # Off by default: an open breaker makes one request's failure visible to
    # the next, so deployments opt in explicitly.
    cb_enabled: bool = Field(default=False)
    cb_failure_threshold: int = Field(default=5, ge=2, le=20)
    cb_recovery_timeout: int = Field(default=60, ge=10, le=300)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=5000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        lower = v.strip().lower()
        if lower not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Invalid llm_provider '{v}'. Must be one of: {sorted(SUPPORTED_PROVIDERS)}"
            )
        return lower

    @field_validator("image_detail")
    @classmethod
    def validate_image_detail(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"low", "high", "auto"}:
            raise ValueError(f"Invalid image_detail '{v}'. Must be one of: low, high, auto")
        return lower

    @model_validator(mode="after")
    def validate_mode_tuning(self) -> "Settings":
        """
        What:  Keeps CHAT answers more exploratory and shorter than AUTO walkthroughs.
        How:   Rejects overrides where chat temperature <= auto temperature or
               chat token ceiling >= auto token ceiling.
        """
        if self.chat_temperature <= self.auto_temperature:
            raise ValueError(
                "chat_temperature must be higher than auto_temperature "
                f"(got chat={self.chat_temperature}, auto={self.auto_temperature})"
            )
        if self.chat_max_tokens >= self.auto_max_tokens:
            raise ValueError(
                "chat_max_tokens must be lower than auto_max_tokens "
                f"(got chat={self.chat_max_tokens}, auto={self.auto_max_tokens})"
            )
        return self

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that the selected provider has credentials.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises one ValueError with guidance.
        """
        errors = []
        if self.llm_provider == "openai" and not self.openai_api_key:
            errors.append(
                "OPENAI_API_KEY is not set. "
                "Create a key at https://platform.openai.com/api-keys"
            )
        if self.llm_provider == "gemini" and (
            not self.gemini_api_key or self.gemini_api_key == "your_gemini_api_key_here"
        ):
            errors.append(
                "GEMINI_API_KEY is not set. "
                "Get a free key at https://aistudio.google.com/app/apikey"
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance — read by main.py and injected from there
settings = Settings()
