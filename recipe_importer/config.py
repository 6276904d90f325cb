"""
Configuration for the Drive recipe importer.

Settings are read from environment variables (the CLI loads a ``.env`` file
first). Every field has a default so the settings object can always be built;
values that a command really needs are checked where they are used.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(extra="ignore")

    # Google Drive
    google_drive_folder_id: Optional[str] = None
    include_root_folder_as_tag: bool = False
    drive_credentials_path: Path = Path("googleDriveCredentials.json")
    drive_token_path: Path = Path("googleDriveToken.json")
    oauth_port: int = Field(3000, ge=0, le=65535)
    drive_page_size: int = Field(1000, ge=1, le=1000)

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    openai_temperature: float = Field(0.3, ge=0.0, le=2.0)
    recipe_output_dir: Optional[Path] = Path("output")

    # Mealie
    mealie_api_url: Optional[str] = None
    mealie_api_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file_path: Optional[Path] = Path("combined.log")
    error_log_file_path: Optional[Path] = Path("error.log")
    dev_mode: bool = False

    # Retry
    max_retries: int = Field(3, ge=1)
    retry_base_delay: float = Field(1.0, ge=0.0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")
        return level

    @field_validator("mealie_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Drop the trailing slash so API paths can be appended."""
        if v:
            return v.rstrip("/")
        return v

    def get_log_file_path(self) -> Optional[Path]:
        """Return the combined log path, creating its directory."""
        return self._ensure_parent(self.log_file_path)

    def get_error_log_file_path(self) -> Optional[Path]:
        """Return the error log path, creating its directory."""
        return self._ensure_parent(self.error_log_file_path)

    @staticmethod
    def _ensure_parent(path: Optional[Path]) -> Optional[Path]:
        if path is None:
            return None
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
