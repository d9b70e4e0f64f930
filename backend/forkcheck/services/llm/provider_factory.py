"""
LLM Provider Factory
Manages provider selection and automatic fallback
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from forkcheck.services.llm.base import (
    BaseLLMProvider,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    ProviderHealthInfo,
    ProviderStatus
)
from forkcheck.services.llm.groq_provider import GroqProvider
from forkcheck.services.llm.ollama_provider import OllamaProvider

logger = logging.getLogger(__name__)


class NoProviderAvailableError(RuntimeError):
    """Raised when neither the primary nor the fallback provider can answer"""


class LLMProviderFactory:
    """
    Factory for LLM providers with automatic fallback.

    Manages primary (Groq by default) and fallback (Ollama) providers,
    automatically switching when the primary is unavailable.
    """

    # Health check cache duration
    HEALTH_CACHE_SECONDS = 30

    def __init__(
        self,
        groq_api_key: Optional[str] = None,
        groq_model: str = "meta-llama/llama-4-scout-17b-16e-instruct",
        ollama_base_url: str = "http://localhost:11434",
        ollama_model: str = "qwen2.5vl:3b",
        enable_fallback: bool = True,
        primary_provider: str = "groq",
        temperature: float = 0.1,
        max_tokens: int = 1024,
        groq_timeout: int = 30,
        ollama_timeout: int = 120
    ):
        self.enable_fallback = enable_fallback
        self.primary_provider_name = primary_provider

        self._groq_api_key = groq_api_key or ""
        self._groq_config = LLMConfig(
            model_name=groq_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_seconds=groq_timeout,
            retry_attempts=3
        )

        self._ollama_base_url = ollama_base_url
        self._ollama_config = LLMConfig(
            model_name=ollama_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_seconds=ollama_timeout
        )

        # Provider instances keyed by name
        self._providers: Dict[str, BaseLLMProvider] = {}

        # Health cache keyed by provider name
        self._health_cache: Dict[str, tuple[datetime, ProviderHealthInfo]] = {}

        self._stats = {
            "requests": 0,
            "fallback_count": 0,
            "total_failures": 0
        }

        self._initialized = False

    @classmethod
    def from_settings(cls, settings) -> "LLMProviderFactory":
        return cls(
            groq_api_key=settings.GROQ_API_KEY,
            groq_model=settings.GROQ_MODEL,
            ollama_base_url=settings.OLLAMA_BASE_URL,
            ollama_model=settings.OLLAMA_MODEL,
            enable_fallback=settings.ENABLE_FALLBACK,
            primary_provider=settings.PRIMARY_LLM_PROVIDER,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            groq_timeout=settings.GROQ_TIMEOUT,
            ollama_timeout=settings.OLLAMA_TIMEOUT
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """Initialize all configured providers"""
        self._providers.clear()

        if self._groq_api_key:
            groq = GroqProvider(config=self._groq_config, api_key=self._groq_api_key)
            if await groq.initialize():
                self._providers["groq"] = groq
            else:
                logger.warning("Groq provider failed to initialize")
        else:
            logger.info("No Groq API key configured, skipping Groq provider")

        ollama = OllamaProvider(config=self._ollama_config, base_url=self._ollama_base_url)
        if await ollama.initialize():
            self._providers["ollama"] = ollama
        else:
            logger.warning("Ollama provider failed to initialize")

        self._initialized = bool(self._providers)
        if not self._initialized:
            logger.error("No LLM providers available!")
        return self._initialized

    def _provider_order(self) -> List[str]:
        order = [self.primary_provider_name]
        if self.enable_fallback:
            order += [name for name in ("groq", "ollama") if name != self.primary_provider_name]
        return order

    async def _check_health(self, name: str) -> ProviderHealthInfo:
        """Check provider health with caching"""
        provider = self._providers.get(name)
        if provider is None:
            return ProviderHealthInfo(
                status=ProviderStatus.UNAVAILABLE,
                last_check=datetime.now(),
                error_message="Provider not configured"
            )

        cached = self._health_cache.get(name)
        if cached:
            cache_time, cached_health = cached
            if datetime.now() - cache_time < timedelta(seconds=self.HEALTH_CACHE_SECONDS):
                return cached_health

        health = await provider.check_health()
        self._health_cache[name] = (datetime.now(), health)
        return health

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False
    ) -> LLMResponse:
        """
        Generate response using the best available provider, falling back
        to the next healthy one when a provider errors.
        """
        if not self._initialized:
            raise NoProviderAvailableError("LLM factory not initialized")

        last_error: Optional[Exception] = None

        for name in self._provider_order():
            health = await self._check_health(name)
            if health.status != ProviderStatus.AVAILABLE:
                logger.warning(f"{name} unavailable: {health.error_message or health.status.value}")
                continue

            if name != self.primary_provider_name:
                self._stats["fallback_count"] += 1
                logger.info(f"Using fallback provider: {name}")

            try:
                response = await self._providers[name].generate(
                    messages, temperature, max_tokens, json_mode
                )
                self._stats["requests"] += 1
                return response
            except Exception as e:
                last_error = e
                logger.error(f"Provider {name} failed: {e}")
                # A failing provider should be re-checked next time
                self._health_cache.pop(name, None)

        self._stats["total_failures"] += 1
        raise NoProviderAvailableError(f"All providers failed: {last_error}")

    def get_stats(self) -> Dict[str, Any]:
        """Get factory statistics"""
        return {
            **self._stats,
            "providers": sorted(self._providers),
            "primary_provider": self.primary_provider_name,
            "fallback_enabled": self.enable_fallback
        }


# Global factory instance (initialized lazily)
_llm_factory: Optional[LLMProviderFactory] = None


async def get_llm_factory() -> LLMProviderFactory:
    """Get the global LLM factory instance, initializing it on first use"""
    global _llm_factory

    if _llm_factory is None:
        from forkcheck.config import settings

        _llm_factory = LLMProviderFactory.from_settings(settings)

    if not _llm_factory.is_initialized:
        await _llm_factory.initialize()

    return _llm_factory


def current_llm_factory() -> Optional[LLMProviderFactory]:
    """The global factory if it was already created, without initializing it"""
    return _llm_factory
