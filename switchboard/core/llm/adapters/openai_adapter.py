"""OpenAI provider client."""

from __future__ import annotations

import time
from typing import Any

import openai

from switchboard.core.llm.adapters.base import ProviderClient
from switchboard.core.llm.errors import ProviderError
from switchboard.core.llm.types import Generation

# Reasoning models take max_completion_tokens and no temperature
REASONING_MODEL_PREFIXES = ("o1", "o3", "o4")


class OpenAIClient(ProviderClient):
    """Client for OpenAI chat models (GPT-4o, GPT-4o-mini, o-series)."""

    @property
    def client(self) -> openai.AsyncOpenAI:
        """Get or create the OpenAI client."""
        if self._client is None:
            if not self._api_key:
                raise ProviderError(self.name, "OpenAI API key not configured", retryable=False)
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int = 4000,
    ) -> Generation:
        """Execute a chat completion."""
        model = model or self.provider.model
        start_time = time.perf_counter()

        is_reasoning = model.startswith(REASONING_MODEL_PREFIXES)
        params: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "max_completion_tokens" if is_reasoning else "max_tokens": max_tokens,
        }
        if not is_reasoning:
            params["temperature"] = 0.7

        try:
            response = await self.client.chat.completions.create(**params)
        except openai.APIError as e:
            raise self._translate_error(openai, e, start_time) from e

        return Generation(
            text=(response.choices[0].message.content or "") if response.choices else "",
            tokens_used=response.usage.total_tokens if response.usage else 0,
            model=model,
            latency_ms=self._elapsed_ms(start_time),
        )
