"""Base provider client interface."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from types import ModuleType
from typing import Any

from switchboard.core.llm.errors import ProviderError, is_retryable_status
from switchboard.core.llm.types import Generation, Provider


class ProviderClient(ABC):
    """Base class for vendor-specific clients.

    A client turns a prompt into text for exactly one provider. It owns the
    per-call timeout and translates vendor failures into ``ProviderError``
    so the router never sees SDK exception types.
    """

    def __init__(
        self,
        provider: Provider,
        api_key: str | None = None,
        timeout: float = 60.0,
        **kwargs: Any,
    ):
        self.provider = provider
        self._api_key = api_key
        self._timeout = timeout
        self._config = kwargs
        self._client: Any = None

    @property
    def name(self) -> str:
        return self.provider.name

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int = 4000,
    ) -> Generation:
        """Generate a completion for ``prompt``.

        Args:
            prompt: The user prompt
            model: Optional model override (defaults to the provider's model)
            max_tokens: Maximum tokens to generate

        Returns:
            Generation with text and token usage

        Raises:
            ProviderError: If the backend call fails
        """

    def _elapsed_ms(self, start_time: float) -> float:
        return (time.perf_counter() - start_time) * 1000

    def _translate_error(self, sdk: ModuleType, exc: Exception, start_time: float) -> ProviderError:
        """Map an SDK exception onto the retryable/fatal split."""
        latency = self._elapsed_ms(start_time)
        message = f"{type(exc).__name__} after {latency:.0f}ms: {exc}"

        if isinstance(exc, sdk.APIStatusError):
            return ProviderError(
                self.name,
                message,
                retryable=is_retryable_status(exc.status_code),
                status_code=exc.status_code,
            )
        # APITimeoutError subclasses APIConnectionError
        if isinstance(exc, sdk.APIConnectionError):
            return ProviderError(self.name, message, retryable=True)
        return ProviderError(self.name, message, retryable=False)
