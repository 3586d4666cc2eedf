"""Groq provider client (free-tier Llama inference)."""

from __future__ import annotations

import openai

from switchboard.core.llm.adapters.openai_adapter import OpenAIClient
from switchboard.core.llm.errors import ProviderError

# Groq serves an OpenAI-compatible chat completions API
GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class GroqClient(OpenAIClient):
    """Client for Groq-hosted open models."""

    @property
    def client(self) -> openai.AsyncOpenAI:
        """Get or create the client pointed at Groq."""
        if self._client is None:
            if not self._api_key:
                raise ProviderError(self.name, "Groq API key not configured", retryable=False)
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._config.get("base_url", GROQ_BASE_URL),
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client
