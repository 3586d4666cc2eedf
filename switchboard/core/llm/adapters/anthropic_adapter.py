"""Anthropic Claude provider client."""

from __future__ import annotations

import time

import anthropic

from switchboard.core.llm.adapters.base import ProviderClient
from switchboard.core.llm.errors import ProviderError
from switchboard.core.llm.types import Generation


class AnthropicClient(ProviderClient):
    """Client for Anthropic Claude models."""

    # Output token ceilings per model family
    MAX_OUTPUT = {
        "claude-opus-4": 32000,
        "claude-sonnet-4": 64000,
        "claude-3-5-haiku": 8192,
        "claude-3-haiku": 4096,
    }

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        """Get or create the Anthropic client."""
        if self._client is None:
            if not self._api_key:
                raise ProviderError(self.name, "Anthropic API key not configured", retryable=False)
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    def _max_output(self, model: str) -> int:
        for prefix, limit in self.MAX_OUTPUT.items():
            if model.startswith(prefix):
                return limit
        return 4096

    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int = 4000,
    ) -> Generation:
        """Execute a messages request."""
        model = model or self.provider.model
        start_time = time.perf_counter()

        try:
            response = await self.client.messages.create(
                model=model,
                max_tokens=min(max_tokens, self._max_output(model)),
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise self._translate_error(anthropic, e, start_time) from e

        # Only text blocks carry the answer
        text = "".join(block.text for block in response.content if block.type == "text")
        tokens = (response.usage.input_tokens + response.usage.output_tokens) if response.usage else 0

        return Generation(
            text=text,
            tokens_used=tokens,
            model=model,
            latency_ms=self._elapsed_ms(start_time),
        )
