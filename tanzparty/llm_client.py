"""OpenRouter LLM client used for structured event extraction."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from tanzparty.config import settings
from tanzparty.services.logger import log_llm_call


class LLMError(RuntimeError):
    """The generative-language backend failed or returned nothing usable."""


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class Completion:
    text: str
    usage: Usage


def _temperature_for_model(model: str) -> int:
    # Some OpenAI GPT-5-compatible gateways reject temperature=0.
    lowered = (model or "").lower()
    if "gpt-5" in lowered:
        return 1
    return 0


class LLMClient:
    def __init__(self, openai_client: Any, *, model: str, max_tokens: int = 4096):
        self._client = openai_client
        self.model = model
        self.max_tokens = max_tokens

    def _from_openai_response(self, response: Any) -> Completion:
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise LLMError("LLM response contained no choices")
        text = getattr(choices[0].message, "content", None) or ""

        usage = getattr(response, "usage", None)
        return Completion(
            text=text,
            usage=Usage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )

    async def complete(self, prompt: str, *, caller: str = "extractor") -> str:
        """Send one user prompt and return the raw text answer."""
        from openai import OpenAIError

        t0 = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=_temperature_for_model(self.model),
            )
            completion = self._from_openai_response(response)
        except (OpenAIError, LLMError) as exc:
            log_llm_call(
                self.model,
                caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(exc),
            )
            if isinstance(exc, LLMError):
                raise
            raise LLMError(str(exc)) from exc

        log_llm_call(
            self.model,
            caller,
            input_tokens=completion.usage.input_tokens,
            output_tokens=completion.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return completion.text


def get_model() -> str:
    """Get the active extraction model id."""
    return settings.active_extraction_model


def get_client() -> LLMClient:
    """Get OpenRouter client via OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    openai_client = AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
        timeout=settings.llm_timeout_s,
        max_retries=0,
    )
    return LLMClient(openai_client, model=get_model(), max_tokens=settings.llm_max_tokens)


_client: LLMClient | None = None


def client() -> LLMClient:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client
