"""
LLM Provider Package
Provides unified interface for multiple LLM backends with fallback support
"""

from forkcheck.services.llm.base import (
    BaseLLMProvider,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    ProviderStatus,
)
from forkcheck.services.llm.provider_factory import (
    LLMProviderFactory,
    NoProviderAvailableError,
    get_llm_factory,
)

__all__ = [
    "BaseLLMProvider",
    "LLMConfig",
    "LLMMessage",
    "LLMResponse",
    "ProviderStatus",
    "LLMProviderFactory",
    "NoProviderAvailableError",
    "get_llm_factory",
]
