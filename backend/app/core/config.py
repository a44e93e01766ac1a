import json

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Resolve backend root (…/backend/) regardless of current working directory
BASE_DIR = Path(__file__).resolve().parents[2]
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Quiz Assessment API"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    # One origin or several, comma separated
    # e.g. "http://localhost:5173,https://example.com"
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'quiz.db'}"
    DB_ECHO: bool = False

    # ===== Async Queue (RQ/Redis) =====
    # Disabled by default: jobs run inline right after the request commits.
    ASYNC_QUEUE_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"
    RQ_DEFAULT_TIMEOUT_SEC: int = 1800
    NOTIFICATION_QUEUE_NAME: str = "notifications"

    # ===== Optional Auth (default: disabled) =====
    # When AUTH_ENABLED=false, clients identify themselves via demo headers:
    #   X-User-Id, X-User-Role
    # When true, a Bearer JWT is required (sub = user id, role claim).
    AUTH_ENABLED: bool = False
    JWT_SECRET_KEY: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # ===== Quiz authoring defaults =====
    QUIZ_DEFAULT_MAX_ATTEMPTS: int = 1
    QUIZ_DEFAULT_PASSING_SCORE: int = 70

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if v is None or v == "":
            return []

        if isinstance(v, list):
            return v

        # String: JSON list first, comma separated otherwise
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                try:
                    return json.loads(s)
                except ValueError:
                    pass
            return [item.strip() for item in s.split(",") if item.strip()]

        return v


settings = Settings()
