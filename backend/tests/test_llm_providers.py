from datetime import datetime

import pytest

from forkcheck.services.llm import (
    BaseLLMProvider,
    LLMConfig,
    LLMMessage,
    LLMProviderFactory,
    LLMResponse,
    NoProviderAvailableError,
    ProviderStatus,
)
from forkcheck.services.llm.base import ProviderHealthInfo, split_data_uri
from forkcheck.services.llm.groq_provider import GroqProvider
from forkcheck.services.llm.ollama_provider import OllamaProvider


class StubProvider(BaseLLMProvider):
    def __init__(self, name, fail=False, status=ProviderStatus.AVAILABLE):
        super().__init__(LLMConfig(model_name=f"{name}-model"))
        self._name = name
        self.fail = fail
        self.status = status
        self.calls = 0

    @property
    def provider_name(self):
        return self._name

    async def initialize(self):
        return True

    async def generate(self, messages, temperature=None, max_tokens=None, json_mode=False):
        self.calls += 1
        if self.fail:
            raise RuntimeError(f"{self._name} exploded")
        return LLMResponse(content="ok", model_name=self.config.model_name, provider_name=self._name)

    async def check_health(self):
        return ProviderHealthInfo(status=self.status, last_check=datetime.now())


def _factory(**providers):
    factory = LLMProviderFactory(primary_provider="groq", enable_fallback=True)
    factory._providers.update(providers)
    factory._initialized = True
    return factory


MESSAGES = [LLMMessage(role="user", content="hello")]


@pytest.mark.asyncio
async def test_primary_provider_answers():
    factory = _factory(groq=StubProvider("groq"), ollama=StubProvider("ollama"))

    response = await factory.generate(MESSAGES)

    assert response.provider_name == "groq"
    assert factory.get_stats()["fallback_count"] == 0


@pytest.mark.asyncio
async def test_falls_back_when_primary_errors():
    groq = StubProvider("groq", fail=True)
    factory = _factory(groq=groq, ollama=StubProvider("ollama"))

    response = await factory.generate(MESSAGES)

    assert response.provider_name == "ollama"
    assert groq.calls == 1
    assert factory.get_stats()["fallback_count"] == 1


@pytest.mark.asyncio
async def test_skips_unhealthy_primary():
    groq = StubProvider("groq", status=ProviderStatus.RATE_LIMITED)
    factory = _factory(groq=groq, ollama=StubProvider("ollama"))

    response = await factory.generate(MESSAGES)

    assert response.provider_name == "ollama"
    assert groq.calls == 0


@pytest.mark.asyncio
async def test_all_providers_failing():
    factory = _factory(groq=StubProvider("groq", fail=True), ollama=StubProvider("ollama", fail=True))

    with pytest.raises(NoProviderAvailableError, match="All providers failed"):
        await factory.generate(MESSAGES)
    assert factory.get_stats()["total_failures"] == 1


@pytest.mark.asyncio
async def test_fallback_disabled():
    factory = _factory(groq=StubProvider("groq", fail=True), ollama=StubProvider("ollama"))
    factory.enable_fallback = False

    with pytest.raises(NoProviderAvailableError):
        await factory.generate(MESSAGES)


@pytest.mark.asyncio
async def test_uninitialized_factory_refuses():
    with pytest.raises(NoProviderAvailableError):
        await LLMProviderFactory().generate(MESSAGES)


def test_photos_are_converted_per_backend():
    message = LLMMessage(role="user", content="look", images=["data:image/png;base64,AAAA"])

    groq_message = GroqProvider._convert_message(message)
    assert groq_message["content"][0] == {"type": "text", "text": "look"}
    assert groq_message["content"][1]["image_url"]["url"] == "data:image/png;base64,AAAA"

    ollama_message = OllamaProvider._convert_message(message)
    assert ollama_message["images"] == ["AAAA"]

    assert split_data_uri("data:image/jpeg;base64,QUJD") == ("image/jpeg", "QUJD")
