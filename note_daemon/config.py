"""
Configuration module for the note daemon.

Uses pydantic-settings for configuration management with environment variable support.
Environment variables use the NOTE_ prefix (e.g., NOTE_VAULT_PATH). Command-line
flags override whatever the environment provides.
"""

from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Severity threshold for the daemon's stderr logging."""

    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Environment variables:
    - NOTE_VAULT_PATH: Root directory of the Markdown vault
    - NOTE_DAEMON_LOG (or NOTE_LOG_LEVEL): error, warn, info or debug
    - NOTE_DAILY_NOTES_FOLDER: Vault-relative folder for new daily notes
    - NOTE_MAX_CONTENT_SIZE: Maximum note size accepted by write_note, in bytes
    """

    vault_path: Path = Path(".")
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        validation_alias=AliasChoices("NOTE_DAEMON_LOG", "NOTE_LOG_LEVEL"),
    )
    daily_notes_folder: str = ""
    max_content_size: int = 1 * 1024 * 1024  # 1MB in bytes

    model_config = SettingsConfigDict(env_prefix="NOTE_", populate_by_name=True)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "warning":
                return LogLevel.WARN
        return value

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        update = {key: value for key, value in overrides.items() if value is not None}
        return self.model_copy(update=update)


# Global settings instance
settings = Settings()

# Daily notes are seeded with a title and the two recognized sections.
DAILY_NOTE_TEMPLATE = "# {date}\n\n## Tasks\n\n## Log\n"
DATE_FORMAT = "%Y-%m-%d"

USAGE = "note-daemon [--vault PATH] [--log-level error|warn|info|debug]"
