"""Generative-AI client: an ordered chain of providers (OpenAI, then Gemini).

Providers share one small protocol, so the client never branches on which
vendor it is talking to.  A provider without credentials is replaced by
:class:`NoProvider`, which is never tried.
"""

import asyncio
import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

import openai
import google.generativeai as genai

from reputation.exceptions import ProviderError
from reputation.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are an expert business reputation consultant."


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class ProviderConfig:
    """Settings for one provider.  An empty ``api_key`` disables it."""
    api_key: str = ""
    model: str = ""
    max_tokens: int = 1000
    temperature: float = 0.7
    timeout: int = 60
    requests_per_minute: int = 60


@dataclass
class LLMConfig:
    """Explicit provider selection for :class:`LLMClient`."""
    primary: ProviderConfig = field(
        default_factory=lambda: ProviderConfig(model="gpt-4o-mini")
    )
    fallback: ProviderConfig = field(
        default_factory=lambda: ProviderConfig(model="gemini-2.0-flash", requests_per_minute=15)
    )
    cache_enabled: bool = True
    cache_ttl_hours: int = 24
    cache_max_size: int = 1000
    max_monthly_budget: float = 100.0

    @classmethod
    def from_settings(cls, settings: Optional[dict[str, Any]] = None) -> "LLMConfig":
        """Build from the ``llm`` section of settings.yaml plus API keys in the env."""
        settings = settings or {}
        primary = settings.get("primary", {}) or {}
        fallback = settings.get("fallback", {}) or {}
        cache = settings.get("cache", {}) or {}
        limits = settings.get("rate_limits", {}) or {}
        return cls(
            primary=ProviderConfig(
                api_key=os.getenv("OPENAI_API_KEY", ""),
                model=primary.get("model", "gpt-4o-mini"),
                max_tokens=int(primary.get("max_tokens", 1000)),
                temperature=float(primary.get("temperature", 0.7)),
                timeout=int(primary.get("timeout", 60)),
                requests_per_minute=int(limits.get("openai_rpm", 60)),
            ),
            fallback=ProviderConfig(
                api_key=os.getenv("GEMINI_API_KEY", ""),
                model=fallback.get("model", "gemini-2.0-flash"),
                max_tokens=int(fallback.get("max_tokens", 1000)),
                temperature=float(fallback.get("temperature", 0.7)),
                timeout=int(fallback.get("timeout", 60)),
                requests_per_minute=int(limits.get("gemini_rpm", 15)),
            ),
            cache_enabled=bool(cache.get("enabled", True)),
            cache_ttl_hours=int(cache.get("ttl_hours", 24)),
            cache_max_size=int(cache.get("max_size", 1000)),
            max_monthly_budget=float(settings.get("max_monthly_budget", 100.0)),
        )


# ---------------------------------------------------------------------------
# Bookkeeping
# ---------------------------------------------------------------------------

@dataclass
class UsageStats:
    """Tracks token usage and estimated cost."""
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_requests: int = 0
    total_cost_usd: float = 0.0

    def add_usage(self, input_tokens: int, output_tokens: int,
                  cost_per_1k_input: float = 0.00015,
                  cost_per_1k_output: float = 0.0006) -> float:
        """Record token usage and return cost for this call."""
        cost = (input_tokens / 1000) * cost_per_1k_input + \
               (output_tokens / 1000) * cost_per_1k_output
        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.total_requests += 1
        self.total_cost_usd += cost
        return cost


class ResponseCache:
    """In-memory TTL cache keyed by a hash of the prompt and its settings."""

    def __init__(self, max_size: int = 1000, ttl_hours: int = 24):
        self._cache: dict[str, tuple[float, str]] = {}
        self._max_size = max_size
        self._ttl_seconds = ttl_hours * 3600

    @staticmethod
    def make_key(prompt: str, **kwargs) -> str:
        raw = f"{prompt}:{json.dumps(kwargs, sort_keys=True)}"
        return hashlib.sha256(raw.encode()).hexdigest()

    def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        ts, value = entry
        if time.time() - ts < self._ttl_seconds:
            return value
        del self._cache[key]
        return None

    def set(self, key: str, value: str) -> None:
        if key not in self._cache and len(self._cache) >= self._max_size:
            oldest_key = min(self._cache, key=lambda k: self._cache[k][0])
            del self._cache[oldest_key]
        self._cache[key] = (time.time(), value)

    def __len__(self) -> int:
        return len(self._cache)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

@runtime_checkable
class GenerativeProvider(Protocol):
    name: str

    @property
    def is_configured(self) -> bool: ...

    async def complete(
        self, prompt: str, system_prompt: str, max_tokens: int, temperature: float
    ) -> str: ...


class NoProvider:
    """Placeholder for a provider whose credentials are absent."""

    def __init__(self, name: str = "none"):
        self.name = name

    @property
    def is_configured(self) -> bool:
        return False

    async def complete(self, prompt, system_prompt, max_tokens, temperature) -> str:
        raise ProviderError(f"{self.name} is not configured", provider=self.name)


class OpenAIProvider:
    """OpenAI Chat Completions."""

    name = "openai"

    def __init__(self, config: ProviderConfig, usage: Optional[UsageStats] = None):
        self.config = config
        self.usage = usage or UsageStats()
        self._client = openai.AsyncOpenAI(api_key=config.api_key, timeout=config.timeout)
        self._limiter = RateLimiter(config.requests_per_minute, name=self.name)

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def complete(self, prompt, system_prompt, max_tokens, temperature) -> str:
        await self._limiter.acquire()
        try:
            response = await self._client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.OpenAIError as exc:
            raise ProviderError(f"OpenAI call failed: {exc}", provider=self.name) from exc

        if not response.choices or response.choices[0].message is None:
            raise ProviderError("OpenAI returned no choices", provider=self.name)
        text = response.choices[0].message.content or ""
        usage = response.usage
        if usage:
            cost = self.usage.add_usage(usage.prompt_tokens, usage.completion_tokens)
            logger.info(
                "OpenAI call: %d in / %d out tokens, $%.6f",
                usage.prompt_tokens, usage.completion_tokens, cost,
            )
        return text.strip()


class GeminiProvider:
    """Google Gemini, called in a worker thread to keep the async interface."""

    name = "gemini"

    def __init__(self, config: ProviderConfig):
        self.config = config
        self._limiter = RateLimiter(config.requests_per_minute, name=self.name)
        genai.configure(api_key=config.api_key)

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def complete(self, prompt, system_prompt, max_tokens, temperature) -> str:
        await self._limiter.acquire()
        model = genai.GenerativeModel(
            model_name=self.config.model,
            system_instruction=system_prompt,
            generation_config=genai.types.GenerationConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
            ),
        )
        loop = asyncio.get_running_loop()
        try:
            response = await asyncio.wait_for(
                loop.run_in_executor(None, model.generate_content, prompt),
                timeout=self.config.timeout,
            )
            text = response.text or ""
        except Exception as exc:
            raise ProviderError(f"Gemini call failed: {exc}", provider=self.name) from exc
        logger.info("Gemini call completed (len=%d)", len(text))
        return text.strip()


def build_providers(config: LLMConfig, usage: Optional[UsageStats] = None) -> list:
    """Primary then fallback, with :class:`NoProvider` wherever a key is missing."""
    primary = (
        OpenAIProvider(config.primary, usage) if config.primary.api_key
        else NoProvider("openai")
    )
    fallback = (
        GeminiProvider(config.fallback) if config.fallback.api_key
        else NoProvider("gemini")
    )
    return [primary, fallback]


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class LLMClient:
    """Async text generation over an ordered provider chain.

    Usage::

        client = LLMClient(LLMConfig.from_settings(settings["llm"]))
        if client.is_available:
            text = await client.generate_text("Summarize these reviews ...")
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        providers: Optional[list[GenerativeProvider]] = None,
    ):
        self.config = config or LLMConfig()
        self.usage = UsageStats()
        self.providers = (
            list(providers) if providers is not None
            else build_providers(self.config, self.usage)
        )
        self._cache = ResponseCache(
            max_size=self.config.cache_max_size, ttl_hours=self.config.cache_ttl_hours
        )

    @property
    def is_available(self) -> bool:
        return any(p.is_configured for p in self.providers)

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self.providers if p.is_configured]

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        use_cache: bool = True,
    ) -> str:
        """Return the first successful completion along the provider chain.

        Raises:
            ProviderError: When no provider is configured or every one failed.
        """
        max_tokens = max_tokens or self.config.primary.max_tokens
        temperature = temperature if temperature is not None else self.config.primary.temperature
        caching = use_cache and self.config.cache_enabled
        key = ResponseCache.make_key(
            prompt, system=system_prompt, max_tokens=max_tokens, temp=temperature
        )
        if caching:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for prompt (len=%d)", len(prompt))
                return cached

        self._check_budget()
        errors: list[str] = []
        for provider in self.providers:
            if not provider.is_configured:
                continue
            try:
                result = await provider.complete(prompt, system_prompt, max_tokens, temperature)
            except Exception as exc:
                logger.warning("Provider %s failed: %s", provider.name, exc)
                errors.append(f"{provider.name}: {exc}")
                continue
            if caching:
                self._cache.set(key, result)
            return result

        if not errors:
            raise ProviderError("No LLM provider configured. Set OPENAI_API_KEY or GEMINI_API_KEY.")
        raise ProviderError("All LLM providers failed: " + "; ".join(errors))

    def _check_budget(self) -> None:
        if self.usage.total_cost_usd >= self.config.max_monthly_budget:
            raise ProviderError(
                f"LLM budget exceeded: ${self.usage.total_cost_usd:.2f} "
                f">= ${self.config.max_monthly_budget:.2f}"
            )

    def get_usage_summary(self) -> dict[str, Any]:
        """Return a summary of token usage and costs."""
        return {
            "providers": self.provider_names,
            "total_requests": self.usage.total_requests,
            "total_input_tokens": self.usage.total_input_tokens,
            "total_output_tokens": self.usage.total_output_tokens,
            "total_cost_usd": round(self.usage.total_cost_usd, 6),
            "cached_responses": len(self._cache),
        }
