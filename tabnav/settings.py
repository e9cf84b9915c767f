from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the tab history engine + API.

    Values are loaded from environment variables and `.env`.

    Notes:
    - The store holds only two keys (history + current tab), so a single SQLite
      file outside the browser profile is enough.
    - TABNAV_DOUBLE_PRESS_MS is the window inside which a second trigger counts
      as a double press.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Store
    TABNAV_STORE_PATH: Path = Field(default=Path("data/tabnav.db"))

    # Navigation
    TABNAV_HISTORY_CAPACITY: int = Field(default=20, ge=1)
    TABNAV_DOUBLE_PRESS_MS: int = Field(default=300, ge=1)
    TABNAV_SWITCH_COMMAND: str = Field(default="switch-to-last-tab")

    # API
    TABNAV_API_HOST: str = Field(default="127.0.0.1")
    TABNAV_API_PORT: int = Field(default=8765)
    TABNAV_API_CORS_ALLOW_ALL: bool = Field(default=True)

    # Logging (diagnostic; rotated daily)
    TABNAV_LOG_DIR: Path = Field(default=Path("_logs"))
    TABNAV_LOG_LEVEL: str = Field(default="INFO")
    # If enabled, logs every request (the extension posts on every tab switch).
    TABNAV_LOG_ACCESS: bool = Field(default=False)
    # Timed rotation retention count (days). Old log files are auto-deleted.
    TABNAV_LOG_BACKUP_COUNT: int = Field(default=14)

    @property
    def double_press_window(self) -> float:
        """Double press window in seconds."""
        return self.TABNAV_DOUBLE_PRESS_MS / 1000.0


def load_settings() -> Settings:
    s = Settings()
    # Ensure parent dir exists
    s.TABNAV_STORE_PATH.parent.mkdir(parents=True, exist_ok=True)
    return s
