"""
Base LLM Provider Interface
Defines abstract interface for all LLM providers (Groq, Ollama)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ProviderStatus(Enum):
    """LLM Provider health status"""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"
    INITIALIZING = "initializing"


@dataclass
class LLMConfig:
    """Configuration for LLM provider"""
    model_name: str
    temperature: float = 0.1
    max_tokens: int = 1024
    timeout_seconds: int = 60
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0


@dataclass
class LLMMessage:
    """Chat message format"""
    role: str  # "system", "user", "assistant"
    content: str
    # Photos as base64 data URIs (data:<mime>;base64,<data>)
    images: List[str] = field(default_factory=list)


@dataclass
class LLMResponse:
    """Standardized response from any LLM provider"""
    content: str
    model_name: str
    provider_name: str
    tokens_used: Optional[int] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    latency_ms: float = 0.0
    finish_reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        if self.tokens_used:
            return self.tokens_used
        if self.prompt_tokens and self.completion_tokens:
            return self.prompt_tokens + self.completion_tokens
        return 0


@dataclass
class ProviderHealthInfo:
    """Health information for a provider"""
    status: ProviderStatus
    last_check: datetime
    latency_ms: Optional[float] = None
    error_message: Optional[str] = None


def split_data_uri(data_uri: str) -> tuple[str, str]:
    """Return (mime_type, base64_payload) of a data URI."""
    header, _, payload = data_uri.partition(",")
    mime_type = header[len("data:"):].split(";")[0] if header.startswith("data:") else ""
    return mime_type, payload


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    All providers must implement this interface to ensure
    consistent behavior across different backends.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._initialized = False
        self._last_health_check: Optional[ProviderHealthInfo] = None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of this provider (e.g., 'groq', 'ollama')"""
        pass

    @abstractmethod
    async def initialize(self) -> bool:
        """
        Initialize the provider connection.
        Returns True if successful, False otherwise.
        """
        pass

    @abstractmethod
    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Generate a response from the LLM.

        Args:
            messages: List of chat messages (system, user, assistant)
            temperature: Override default temperature
            max_tokens: Override default max tokens
            json_mode: Ask the backend to constrain output to a JSON object

        Returns:
            LLMResponse with generated content and metadata
        """
        pass

    @abstractmethod
    async def check_health(self) -> ProviderHealthInfo:
        """
        Check if the provider is available and healthy.

        Returns:
            ProviderHealthInfo with current status
        """
        pass

    def get_model_name(self) -> str:
        """Get the current model name"""
        return self.config.model_name

    def _log_request(
        self,
        messages: List[LLMMessage],
        response: Optional[LLMResponse] = None,
        error: Optional[Exception] = None
    ):
        """Log request for observability"""
        log_data = {
            "provider": self.provider_name,
            "model": self.config.model_name,
            "message_count": len(messages),
            "image_count": sum(len(m.images) for m in messages),
        }

        if response:
            log_data.update({
                "latency_ms": response.latency_ms,
                "tokens": response.total_tokens,
            })
            logger.info("LLM request completed", extra=log_data)
        elif error:
            log_data["error"] = str(error)
            logger.error("LLM request failed", extra=log_data)
