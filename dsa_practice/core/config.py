"""
Service configuration
Everything is read from the environment (a local .env is honoured).
"""

import os
from functools import lru_cache

from dotenv import load_dotenv, find_dotenv

_env_path = find_dotenv(".env") or ".env"
load_dotenv(_env_path)

DEFAULT_JWT_SECRET = "default-secret-key"
OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_MODEL = "arcee-ai/trinity-large-preview:free"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """Central configuration (env driven)."""

    def __init__(self, **overrides) -> None:
        # MongoDB
        self.mongodb_uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
        self.database_name: str = os.getenv("MONGODB_DATABASE", "woohoodsa")
        self.db_timeout_seconds: int = _env_int("DB_TIMEOUT_SECONDS", 10)

        # Tokens
        self.jwt_secret: str = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        self.jwt_expire_hours: int = _env_int("JWT_EXPIRE_HOURS", 24 * 7)

        # OpenRouter judge
        self.openrouter_api_key: str = os.getenv("OPENROUTER_API_KEY", "")
        self.openrouter_url: str = os.getenv("OPENROUTER_URL", OPENROUTER_URL)
        self.openrouter_model: str = os.getenv("OPENROUTER_MODEL", OPENROUTER_MODEL)
        self.openrouter_referer: str = os.getenv("OPENROUTER_REFERER", "http://localhost:3000")
        self.openrouter_title: str = os.getenv("OPENROUTER_TITLE", "Woohoo DSA")
        self.judge_timeout_seconds: int = _env_int("JUDGE_TIMEOUT_SECONDS", 30)

        # Submissions judged on the system key before a personal key is required
        self.trial_limit: int = _env_int("TRIAL_LIMIT", 3)

        # App meta
        self.app_name: str = "Woohoo DSA API"
        self.port: int = _env_int("PORT", 8080)
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET


@lru_cache()
def get_settings() -> Settings:
    return Settings()
