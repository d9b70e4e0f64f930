"""
Ollama LLM Provider
Implements BaseLLMProvider for local Ollama models (vision models accept photos)
"""

import logging
import time
from datetime import datetime
from typing import List, Optional

import httpx
from ollama import AsyncClient

from forkcheck.services.llm.base import (
    BaseLLMProvider,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    ProviderHealthInfo,
    ProviderStatus,
    split_data_uri
)

logger = logging.getLogger(__name__)


class OllamaProvider(BaseLLMProvider):
    """
    Ollama LLM provider for local model inference.
    Used as the fallback when Groq is not configured or unavailable.
    """

    def __init__(
        self,
        config: LLMConfig,
        base_url: str = "http://localhost:11434"
    ):
        super().__init__(config)
        self.base_url = base_url
        self._client: Optional[AsyncClient] = None

    @property
    def provider_name(self) -> str:
        return "ollama"

    async def initialize(self) -> bool:
        """Initialize Ollama connection and verify model availability"""
        try:
            self._client = AsyncClient(host=self.base_url, timeout=self.config.timeout_seconds)
            health = await self.check_health()
            if health.status != ProviderStatus.AVAILABLE:
                logger.error(f"Ollama not ready: {health.error_message}")
                self._initialized = False
                return False

            self._initialized = True
            logger.info(f"Ollama provider initialized with model {self.config.model_name}")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize Ollama provider: {e}")
            self._initialized = False
            return False

    @staticmethod
    def _convert_message(msg: LLMMessage) -> dict:
        converted = {"role": msg.role, "content": msg.content}
        if msg.images:
            # Ollama wants the bare base64 payload
            converted["images"] = [split_data_uri(image)[1] for image in msg.images]
        return converted

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate response using Ollama"""
        if not self._initialized or not self._client:
            raise RuntimeError("Ollama provider not initialized")

        start_time = time.time()

        try:
            response = await self._client.chat(
                model=self.config.model_name,
                messages=[self._convert_message(msg) for msg in messages],
                format="json" if json_mode else "",
                options={
                    "temperature": temperature if temperature is not None else self.config.temperature,
                    "num_predict": max_tokens if max_tokens is not None else self.config.max_tokens,
                },
                keep_alive="1h"
            )

            llm_response = LLMResponse(
                content=response["message"]["content"],
                model_name=self.config.model_name,
                provider_name=self.provider_name,
                prompt_tokens=response.get("prompt_eval_count"),
                completion_tokens=response.get("eval_count"),
                latency_ms=(time.time() - start_time) * 1000,
                finish_reason=response.get("done_reason") or "stop"
            )

            self._log_request(messages, llm_response)
            return llm_response

        except Exception as e:
            self._log_request(messages, error=e)
            raise

    async def check_health(self) -> ProviderHealthInfo:
        """Check Ollama availability"""
        try:
            start_time = time.time()
            client = self._client or AsyncClient(host=self.base_url, timeout=5.0)
            listing = await client.list()
            latency_ms = (time.time() - start_time) * 1000

            available_models = [
                m.get("model") or m.get("name") for m in listing.get("models", [])
            ]

            # Ollama returns model names with tags like "qwen2.5vl:3b"
            if not any(self.config.model_name in (name or "") for name in available_models):
                return ProviderHealthInfo(
                    status=ProviderStatus.ERROR,
                    last_check=datetime.now(),
                    latency_ms=latency_ms,
                    error_message=f"Model {self.config.model_name} not found. Available: {available_models}"
                )

            self._last_health_check = ProviderHealthInfo(
                status=ProviderStatus.AVAILABLE,
                last_check=datetime.now(),
                latency_ms=latency_ms
            )
            return self._last_health_check

        except (httpx.ConnectError, ConnectionError):
            return ProviderHealthInfo(
                status=ProviderStatus.UNAVAILABLE,
                last_check=datetime.now(),
                error_message=f"Cannot connect to Ollama at {self.base_url}"
            )
        except Exception as e:
            return ProviderHealthInfo(
                status=ProviderStatus.ERROR,
                last_check=datetime.now(),
                error_message=str(e)
            )
