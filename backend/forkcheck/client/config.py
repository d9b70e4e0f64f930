"""
Client Configuration
Where the data-access layer talks to, and whether it talks at all
"""

from enum import Enum
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class DataSource(str, Enum):
    """Backing store used by the client"""
    ONLINE = "online"    # REST API, with a local copy of master data
    OFFLINE = "offline"  # local JSON cache only, reports queued for upload


class ClientSettings(BaseSettings):
    """Settings read from FORKCHECK_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="FORKCHECK_",
        env_file=".env",
        extra="ignore",
    )

    API_BASE_URL: str = "http://localhost:8000/api"
    DATA_SOURCE: DataSource = DataSource.ONLINE
    CACHE_DIR: Path = Path.home() / ".forkcheck"
    TIMEOUT_SECONDS: float = 30.0
