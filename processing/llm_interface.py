"""
LLM Interface — swappable text-generation providers for the briefing narrative.

Default: Groq (or any OpenAI-compatible /chat/completions endpoint) via httpx
Alternative: Anthropic Claude via the anthropic SDK

The narrative assembler only depends on BaseLLMProvider.complete(); which
provider is built (if any) is decided by NarrativeSettings. No credential
means no provider, and the narrative falls back to its template.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from config.settings import NarrativeSettings

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Structured response from the LLM."""
    raw_text: str
    model: str = ""
    tokens_used: int = 0


class BaseLLMProvider(ABC):
    """Abstract LLM provider interface."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 400,
    ) -> LLMResponse:
        ...


class ClaudeAPIProvider(BaseLLMProvider):
    """
    Claude API provider.

    Uses the Anthropic Python SDK; the client is created on first use.
    """

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-20250514", timeout: float = 8.0):
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._client = None

    def _get_client(self):
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key, timeout=self._timeout)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 400,
    ) -> LLMResponse:
        client = self._get_client()
        response = await client.messages.create(
            model=self._model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        text = response.content[0].text
        return LLMResponse(
            raw_text=text,
            model=self._model,
            tokens_used=response.usage.input_tokens + response.usage.output_tokens,
        )


class OpenAICompatibleProvider(BaseLLMProvider):
    """
    Provider for OpenAI-style chat completion APIs (Groq by default).

    `transport` lets tests substitute an httpx.MockTransport.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "llama-3.3-70b-versatile",
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 400,
    ) -> LLMResponse:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(
                f"{self._base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={
                    "model": self._model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                },
            )
            resp.raise_for_status()
            data = resp.json()
            text = data["choices"][0]["message"]["content"] or ""
            usage = data.get("usage", {})
            return LLMResponse(
                raw_text=text,
                model=self._model,
                tokens_used=usage.get("total_tokens", 0),
            )


def get_llm_provider(settings: Optional[NarrativeSettings] = None) -> Optional[BaseLLMProvider]:
    """
    Factory for the narrative provider.

    Args:
        settings: Narrative settings; read from the environment when omitted

    Returns:
        A provider, or None (template mode) when no credential is configured
        or the mode is not recognized
    """
    settings = settings or NarrativeSettings.from_env()
    if not settings.enabled:
        logger.info("No LLM credential configured — narratives use the template")
        return None

    if settings.mode == "claude":
        return ClaudeAPIProvider(
            api_key=settings.api_key, model=settings.model, timeout=settings.timeout_seconds,
        )
    elif settings.mode in ("groq", "openai", "local"):
        return OpenAICompatibleProvider(
            api_key=settings.api_key,
            base_url=settings.base_url,
            model=settings.model,
            timeout=settings.timeout_seconds,
        )
    logger.warning(
        "Unknown LLM mode %r (use groq, openai, local or claude) — narratives use the template",
        settings.mode,
    )
    return None
