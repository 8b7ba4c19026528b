"""Tests for the LLM client provider chain, caching and budget."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from reputation.exceptions import ProviderError
from reputation.integrations.llm_client import (
    LLMClient,
    LLMConfig,
    NoProvider,
    OpenAIProvider,
    ProviderConfig,
    ResponseCache,
)


class FakeProvider:

    def __init__(self, name, response=None, error=None, configured=True):
        self.name = name
        self._configured = configured
        self.complete = AsyncMock(side_effect=error, return_value=response)

    @property
    def is_configured(self):
        return self._configured


class TestLLMConfig:

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        config = LLMConfig.from_settings({
            "primary": {"model": "gpt-4o", "max_tokens": 500},
            "cache": {"enabled": False},
            "rate_limits": {"openai_rpm": 10},
            "max_monthly_budget": 5,
        })
        assert config.primary.api_key == "sk-test"
        assert config.primary.model == "gpt-4o"
        assert config.primary.max_tokens == 500
        assert config.primary.requests_per_minute == 10
        assert config.fallback.api_key == ""
        assert config.cache_enabled is False
        assert config.max_monthly_budget == 5.0

    def test_no_keys_means_unavailable(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        client = LLMClient(LLMConfig.from_settings({}))
        assert client.is_available is False
        assert client.provider_names == []


class TestResponseCache:

    def test_evicts_oldest(self):
        cache = ResponseCache(max_size=2)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.set("c", "3")
        assert len(cache) == 2
        assert cache.get("c") == "3"

    def test_expired_entries_dropped(self):
        cache = ResponseCache(ttl_hours=0)
        cache.set("a", "1")
        assert cache.get("a") is None

    def test_key_depends_on_settings(self):
        assert ResponseCache.make_key("p", temp=0.1) != ResponseCache.make_key("p", temp=0.2)


class TestGenerateText:

    @pytest.mark.asyncio
    async def test_primary_answers(self):
        primary = FakeProvider("openai", response="hello")
        fallback = FakeProvider("gemini", response="unused")
        client = LLMClient(LLMConfig(), providers=[primary, fallback])
        assert await client.generate_text("hi") == "hello"
        fallback.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_falls_back_on_provider_error(self):
        primary = FakeProvider("openai", error=ProviderError("429", provider="openai"))
        fallback = FakeProvider("gemini", response="from gemini")
        client = LLMClient(LLMConfig(), providers=[primary, fallback])
        assert await client.generate_text("hi") == "from gemini"

    @pytest.mark.asyncio
    async def test_falls_back_on_unexpected_error(self):
        primary = FakeProvider("openai", error=IndexError("list index out of range"))
        fallback = FakeProvider("gemini", response="from gemini")
        client = LLMClient(LLMConfig(), providers=[primary, fallback])
        assert await client.generate_text("hi") == "from gemini"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_provider_error(self):
        client = LLMClient(LLMConfig(), providers=[FakeProvider("openai", error=AttributeError("text"))])
        with pytest.raises(ProviderError, match="All LLM providers failed"):
            await client.generate_text("hi")

    @pytest.mark.asyncio
    async def test_skips_unconfigured(self):
        primary = NoProvider("openai")
        fallback = FakeProvider("gemini", response="ok")
        client = LLMClient(LLMConfig(), providers=[primary, fallback])
        assert client.provider_names == ["gemini"]
        assert await client.generate_text("hi") == "ok"

    @pytest.mark.asyncio
    async def test_all_fail(self):
        providers = [
            FakeProvider("openai", error=ProviderError("down")),
            FakeProvider("gemini", error=ProviderError("down")),
        ]
        client = LLMClient(LLMConfig(), providers=providers)
        with pytest.raises(ProviderError, match="All LLM providers failed"):
            await client.generate_text("hi")

    @pytest.mark.asyncio
    async def test_none_configured(self):
        client = LLMClient(LLMConfig(), providers=[NoProvider("openai"), NoProvider("gemini")])
        with pytest.raises(ProviderError, match="No LLM provider configured"):
            await client.generate_text("hi")

    @pytest.mark.asyncio
    async def test_cached_response_reused(self):
        primary = FakeProvider("openai", response="hello")
        client = LLMClient(LLMConfig(), providers=[primary])
        await client.generate_text("hi")
        await client.generate_text("hi")
        assert primary.complete.await_count == 1
        assert client.get_usage_summary()["cached_responses"] == 1

    @pytest.mark.asyncio
    async def test_cache_bypass(self):
        primary = FakeProvider("openai", response="hello")
        client = LLMClient(LLMConfig(), providers=[primary])
        await client.generate_text("hi", use_cache=False)
        await client.generate_text("hi", use_cache=False)
        assert primary.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_budget_exceeded(self):
        primary = FakeProvider("openai", response="hello")
        client = LLMClient(LLMConfig(max_monthly_budget=1.0), providers=[primary])
        client.usage.total_cost_usd = 1.5
        with pytest.raises(ProviderError, match="budget exceeded"):
            await client.generate_text("hi")
        primary.complete.assert_not_called()


class TestOpenAIProvider:

    @pytest.mark.asyncio
    async def test_empty_choices_raise_provider_error(self):
        provider = OpenAIProvider(ProviderConfig(api_key="sk-test", model="gpt-4o-mini"))
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(return_value=MagicMock(choices=[]))
        with pytest.raises(ProviderError, match="no choices") as excinfo:
            await provider.complete("hi", "system", 100, 0.5)
        assert excinfo.value.provider == "openai"
