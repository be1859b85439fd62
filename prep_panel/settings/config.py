# prep_panel/settings/config.py  (Pydantic v2)
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prep_panel.errors import ConfigurationError

REQUIRED_SETTINGS = ("DATABASE_URL", "SECRET", "OPENAI_API_KEY")


class Settings(BaseSettings):
    # ---------- Relational store ----------
    DATABASE_URL: Optional[str] = Field(default=None)
    # dev only; production schema is managed by Alembic
    RUN_DB_CREATE_ALL: bool = Field(default=False)

    # ---------- Auth ----------
    SECRET: Optional[str] = Field(default=None)
    JWT_LIFETIME_SECONDS: int = Field(default=3600 * 24)

    # ---------- LLM endpoint ----------
    OPENAI_API_KEY: Optional[str] = Field(default=None)
    OPENAI_API_URL: str = Field(default="https://api.openai.com/v1/chat/completions")
    POWERFUL_MODEL: str = Field(default="gpt-5-2025-08-07")      # topic proposals, custom topics
    EFFICIENT_MODEL: str = Field(default="gpt-5-mini-2025-08-07")  # per-topic regeneration
    LLM_TIMEOUT_SECONDS: float = Field(default=120.0)
    LLM_MAX_RETRIES: int = Field(default=2)
    LLM_RETRY_BACKOFF_SECONDS: float = Field(default=1.0)

    # ---------- Prompting ----------
    CANDIDATE_ROLE: str = Field(default="senior data engineer")

    # ---------- HTTP / logging ----------
    CORS_ALLOW_ORIGINS: str = Field(default="*")
    LOG_LEVEL: str = Field(default="INFO")

    # ---------- pydantic-settings config ----------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # allow lower/upper env names
        extra="ignore",
    )

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in (self.CORS_ALLOW_ORIGINS or "*").split(",") if o.strip()] or ["*"]

    def check_required(self) -> None:
        """Raise ConfigurationError if any credential/URL needed to serve requests is missing."""
        missing = [name for name in REQUIRED_SETTINGS if not (getattr(self, name) or "").strip()]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


settings = Settings()
