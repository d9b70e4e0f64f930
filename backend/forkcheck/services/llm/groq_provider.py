"""
Groq LLM Provider
Implements BaseLLMProvider for Groq cloud API (vision-capable chat models)
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import List, Optional

from groq import APIConnectionError, APIStatusError, AsyncGroq, RateLimitError

from forkcheck.services.llm.base import (
    BaseLLMProvider,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    ProviderHealthInfo,
    ProviderStatus
)

logger = logging.getLogger(__name__)


class GroqProvider(BaseLLMProvider):
    """
    Groq LLM provider for fast cloud inference.

    Primary provider with automatic retry and rate limit handling.
    """

    def __init__(
        self,
        config: LLMConfig,
        api_key: str
    ):
        super().__init__(config)
        self.api_key = api_key
        self._client: Optional[AsyncGroq] = None

    @property
    def provider_name(self) -> str:
        return "groq"

    async def initialize(self) -> bool:
        """Initialize Groq client and verify API key"""
        if not self.api_key:
            logger.error("Groq API key not provided")
            return False

        try:
            self._client = AsyncGroq(
                api_key=self.api_key,
                timeout=self.config.timeout_seconds
            )
            await self._client.models.list()

            self._initialized = True
            logger.info(f"Groq provider initialized with model {self.config.model_name}")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize Groq provider: {e}")
            self._initialized = False
            return False

    @staticmethod
    def _convert_message(msg: LLMMessage) -> dict:
        """Photos travel as image_url content parts next to the text"""
        if not msg.images:
            return {"role": msg.role, "content": msg.content}

        parts = [{"type": "text", "text": msg.content}]
        parts.extend(
            {"type": "image_url", "image_url": {"url": image}}
            for image in msg.images
        )
        return {"role": msg.role, "content": parts}

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate response using Groq API with retry logic"""
        if not self._initialized or not self._client:
            raise RuntimeError("Groq provider not initialized")

        start_time = time.time()

        groq_messages = [self._convert_message(msg) for msg in messages]

        temp = temperature if temperature is not None else self.config.temperature
        tokens = max_tokens if max_tokens is not None else self.config.max_tokens
        extra = {"response_format": {"type": "json_object"}} if json_mode else {}

        last_error = None

        for attempt in range(self.config.retry_attempts):
            try:
                response = await self._client.chat.completions.create(
                    model=self.config.model_name,
                    messages=groq_messages,
                    temperature=temp,
                    max_tokens=tokens,
                    **extra
                )

                latency_ms = (time.time() - start_time) * 1000
                usage = response.usage

                llm_response = LLMResponse(
                    content=response.choices[0].message.content or "",
                    model_name=self.config.model_name,
                    provider_name=self.provider_name,
                    tokens_used=usage.total_tokens if usage else None,
                    prompt_tokens=usage.prompt_tokens if usage else None,
                    completion_tokens=usage.completion_tokens if usage else None,
                    latency_ms=latency_ms,
                    finish_reason=response.choices[0].finish_reason,
                    metadata={"response_id": response.id, "model": response.model}
                )

                self._log_request(messages, llm_response)
                return llm_response

            except RateLimitError as e:
                last_error = e
                logger.warning(
                    f"Groq rate limit hit, attempt {attempt + 1}/{self.config.retry_attempts}"
                )
                if attempt < self.config.retry_attempts - 1:
                    # Exponential backoff
                    await asyncio.sleep(self.config.retry_delay_seconds * (2 ** attempt))

            except APIConnectionError as e:
                last_error = e
                logger.error(f"Groq connection error: {e}")
                break  # Don't retry connection errors

            except APIStatusError as e:
                last_error = e
                logger.error(f"Groq API error: {e.status_code} - {e.message}")
                if e.status_code >= 500 and attempt < self.config.retry_attempts - 1:
                    await asyncio.sleep(self.config.retry_delay_seconds)
                elif e.status_code < 500:
                    break

        self._log_request(messages, error=last_error)
        raise last_error if last_error else RuntimeError("Groq generation failed")

    async def check_health(self) -> ProviderHealthInfo:
        """Check Groq API availability"""
        if not self.api_key:
            return ProviderHealthInfo(
                status=ProviderStatus.UNAVAILABLE,
                last_check=datetime.now(),
                error_message="No API key configured"
            )

        try:
            start_time = time.time()
            client = self._client or AsyncGroq(api_key=self.api_key)
            await client.models.list()

            self._last_health_check = ProviderHealthInfo(
                status=ProviderStatus.AVAILABLE,
                last_check=datetime.now(),
                latency_ms=(time.time() - start_time) * 1000
            )
            return self._last_health_check

        except RateLimitError:
            return ProviderHealthInfo(
                status=ProviderStatus.RATE_LIMITED,
                last_check=datetime.now()
            )
        except APIConnectionError:
            return ProviderHealthInfo(
                status=ProviderStatus.UNAVAILABLE,
                last_check=datetime.now(),
                error_message="Cannot connect to Groq API"
            )
        except Exception as e:
            return ProviderHealthInfo(
                status=ProviderStatus.ERROR,
                last_check=datetime.now(),
                error_message=str(e)
            )
