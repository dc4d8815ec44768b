# settings.py
import os
from typing import List

from pydantic import BaseModel, Field

PROVIDERS = ("gemini", "openai")

DEFAULT_MODELS = {
    "gemini": "gemini-1.5-flash",
    "openai": "gpt-3.5-turbo-instruct",
}


class ConfigurationError(RuntimeError):
    """Raised when required start-up configuration is missing or invalid."""


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


class Settings(BaseModel):
    AI_PROVIDER: str = Field(default_factory=lambda: _env("AI_PROVIDER", "gemini").lower())
    GEMINI_API_KEY: str = Field(default_factory=lambda: _env("GEMINI_API_KEY"))
    OPENAI_API_KEY: str = Field(default_factory=lambda: _env("OPENAI_API_KEY"))
    MODEL_NAME: str = Field(default_factory=lambda: _env("MODEL_NAME"))
    MAX_OUTPUT_TOKENS: int = Field(default_factory=lambda: int(_env("MAX_OUTPUT_TOKENS", "150")))
    DATABASE_URL: str = Field(default_factory=lambda: _env("DATABASE_URL"))
    PORT: int = Field(default_factory=lambda: int(_env("PORT", "5000")))
    CORS_ALLOW_ORIGINS: str = Field(default_factory=lambda: _env("CORS_ALLOW_ORIGINS", "http://localhost:3000"))
    # inbound rate limit: fixed window per client address
    RATE_LIMIT_MAX: int = Field(default_factory=lambda: int(_env("RATE_LIMIT_MAX", "100")))
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default_factory=lambda: int(_env("RATE_LIMIT_WINDOW_SECONDS", "900")))
    STATIC_DIR: str = Field(default_factory=lambda: _env("STATIC_DIR", os.path.join("frontend", "dist")))
    LOG_LEVEL: str = Field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())

    @property
    def api_key(self) -> str:
        if self.AI_PROVIDER == "openai":
            return self.OPENAI_API_KEY
        return self.GEMINI_API_KEY

    @property
    def model_name(self) -> str:
        return self.MODEL_NAME or DEFAULT_MODELS.get(self.AI_PROVIDER, "")

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]


def load_settings() -> Settings:
    """Read settings from the environment and check the required values.

    Missing configuration is fatal for the service, so this raises instead of
    falling back to a degraded mode.
    """
    try:
        settings = Settings()
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if settings.AI_PROVIDER not in PROVIDERS:
        raise ConfigurationError(
            f"AI_PROVIDER must be one of {', '.join(PROVIDERS)}, got {settings.AI_PROVIDER!r}"
        )

    missing = []
    if not settings.api_key:
        missing.append(f"{settings.AI_PROVIDER.upper()}_API_KEY")
    if not settings.DATABASE_URL:
        missing.append("DATABASE_URL")
    if missing:
        raise ConfigurationError(f"Missing required environment variables ({', '.join(missing)})")

    return settings
