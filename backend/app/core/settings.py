"""Application settings loaded from environment / .env file.

Config precedence (highest to lowest):
    1. Environment variables
    2. ``.env`` file in project root
    3. Defaults defined in this module

Secrets (bot secret, classifier key, bot token, webhook URL) are never
exposed in ``safe_dump()`` or logs.
"""

import re
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root is three levels up from this file (backend/app/core/settings.py)
_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_DEFAULT_DB_PATH = str(_PROJECT_ROOT / "data" / "presets.db")

# Discord snowflakes are 17-19 digit numbers
_SNOWFLAKE = re.compile(r"^\d{17,19}$")
_ID_SEPARATORS = re.compile(r"[,\s]+")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
    )

    api_host: str = "127.0.0.1"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Database, override via APP_DB_PATH env var
    app_db_path: str = _DEFAULT_DB_PATH

    @property
    def database_url(self) -> str:
        """SQLite connection URL derived from ``app_db_path``."""
        return f"sqlite:///{self.app_db_path}"

    # Bot authentication and moderator roster
    bot_api_secret: str | None = None
    moderator_ids: str = ""

    # External toxicity classifier (Perspective API)
    perspective_api_key: str | None = None
    perspective_timeout_seconds: float = 5.0

    # Moderator notification channels
    moderation_webhook_url: str | None = None
    owner_discord_id: str | None = None
    discord_bot_token: str | None = None
    notification_timeout_seconds: float = 5.0

    daily_submission_limit: int = 10

    @property
    def moderator_id_set(self) -> frozenset[str]:
        """Parsed moderator snowflakes."""
        return frozenset(i for i in _ID_SEPARATORS.split(self.moderator_ids) if i)

    @property
    def is_classifier_configured(self) -> bool:
        return bool(self.perspective_api_key)

    @model_validator(mode="after")
    def _validate_db_path(self) -> "Settings":
        """Ensure the DB path parent directory exists or can be created."""
        parent = Path(self.app_db_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = (
                f"Cannot create database directory '{parent}': {exc}. "
                f"Set APP_DB_PATH to a writable location."
            )
            raise ValueError(msg) from exc
        return self

    @model_validator(mode="after")
    def _validate_moderator_ids(self) -> "Settings":
        bad = [i for i in self.moderator_id_set if not _SNOWFLAKE.match(i)]
        if bad:
            raise ValueError(
                f"Invalid Discord ID in MODERATOR_IDS: {', '.join(sorted(bad))}"
            )
        return self

    def safe_dump(self) -> dict[str, object]:
        """Return settings dict with secrets masked, safe for logging."""
        return {
            "api_host": self.api_host,
            "api_port": self.api_port,
            "debug": self.debug,
            "log_level": self.log_level,
            "app_db_path": self.app_db_path,
            "moderator_count": len(self.moderator_id_set),
            "is_bot_auth_configured": bool(self.bot_api_secret),
            "is_classifier_configured": self.is_classifier_configured,
            "perspective_timeout_seconds": self.perspective_timeout_seconds,
            "is_webhook_configured": bool(self.moderation_webhook_url),
            "is_owner_dm_configured": bool(
                self.owner_discord_id and self.discord_bot_token
            ),
            "daily_submission_limit": self.daily_submission_limit,
        }


settings = Settings()
