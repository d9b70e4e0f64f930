"""
Application Configuration
Centralized settings for the API, the store and the safety-analysis LLMs
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Forklift Check API settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # ==================== Application ====================

    APP_NAME: str = "Forklift Check API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:9003"]

    # ==================== Database ====================

    DATABASE_URL: str = "sqlite:///./forkcheck.db"
    SQL_ECHO: bool = False

    # ==================== Authentication ====================

    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 12
    MIN_PASSWORD_LENGTH: int = 6

    # ==================== Inspection Workflow ====================

    # Open a downtime log automatically when a report comes back Unsafe
    AUTO_LOG_DOWNTIME: bool = True

    # ==================== LLM Provider Configuration ====================

    # Groq (primary provider, vision-capable model for photo review)
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    GROQ_TIMEOUT: int = 30

    # Ollama (fallback provider)
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "qwen2.5vl:3b"
    OLLAMA_TIMEOUT: int = 120

    PRIMARY_LLM_PROVIDER: str = "groq"  # groq or ollama
    ENABLE_FALLBACK: bool = True

    LLM_TEMPERATURE: float = 0.1
    LLM_MAX_TOKENS: int = 1024
    # Vision backends reject requests with too many images
    LLM_MAX_PHOTOS: int = 5
    # Connect to the providers at startup instead of on the first analysis
    LLM_WARMUP_ON_STARTUP: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
