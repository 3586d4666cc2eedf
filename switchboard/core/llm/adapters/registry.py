"""Provider registry: static provider catalogue plus one client per backend."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from switchboard.core.llm.adapters.base import ProviderClient
from switchboard.core.llm.types import Provider, ProviderTier

logger = logging.getLogger(__name__)


# Default catalogue, cheapest first
DEFAULT_PROVIDERS: list[Provider] = [
    Provider(
        name="groq",
        tier=ProviderTier.FREE,
        model="llama-3.3-70b-versatile",
        vendor="groq",
        cost_per_million_tokens=0.0,
        credential_env="GROQ_API_KEY",
    ),
    Provider(
        name="openai-mini",
        tier=ProviderTier.STANDARD,
        model="gpt-4o-mini",
        vendor="openai",
        cost_per_million_tokens=0.60,
        credential_env="OPENAI_API_KEY",
    ),
    Provider(
        name="openai",
        tier=ProviderTier.STANDARD,
        model="gpt-4o",
        vendor="openai",
        cost_per_million_tokens=10.0,
        credential_env="OPENAI_API_KEY",
    ),
    Provider(
        name="anthropic",
        tier=ProviderTier.PREMIUM,
        model="claude-sonnet-4-20250514",
        vendor="anthropic",
        cost_per_million_tokens=15.0,
        credential_env="ANTHROPIC_API_KEY",
    ),
]


def _client_class(vendor: str) -> type[ProviderClient]:
    """Resolve the client class for a vendor."""
    if vendor == "openai":
        from switchboard.core.llm.adapters.openai_adapter import OpenAIClient
        return OpenAIClient

    elif vendor == "anthropic":
        from switchboard.core.llm.adapters.anthropic_adapter import AnthropicClient
        return AnthropicClient

    elif vendor == "groq":
        from switchboard.core.llm.adapters.groq_adapter import GroqClient
        return GroqClient

    else:
        raise ValueError(f"Unknown provider vendor: {vendor}")


class ProviderRegistry:
    """Read-only registry of providers and their clients.

    Built once at process start. A provider is available when its
    credential is present; availability never changes afterwards.
    """

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}
        self._clients: dict[str, ProviderClient] = {}

    @classmethod
    def from_environment(
        cls,
        providers: list[Provider] | None = None,
        credentials: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
        timeout: float = 60.0,
    ) -> ProviderRegistry:
        """Build a registry, deriving availability from credentials.

        Args:
            providers: Provider catalogue (defaults to DEFAULT_PROVIDERS)
            credentials: Provider name -> environment variable holding its key;
                overrides each provider's own ``credential_env``
            environ: Environment to read secrets from (defaults to os.environ)
            timeout: Per-call timeout handed to each client

        Returns:
            Populated ProviderRegistry
        """
        environ = os.environ if environ is None else environ
        credentials = credentials or {}
        registry = cls()

        for provider in providers if providers is not None else DEFAULT_PROVIDERS:
            env_name = credentials.get(provider.name, provider.credential_env)
            api_key = environ.get(env_name) if env_name else None
            resolved = provider.model_copy(
                update={"available": bool(api_key), "credential_env": env_name}
            )
            client = _client_class(provider.vendor)(resolved, api_key=api_key, timeout=timeout)
            registry.register(resolved, client)

        logger.info(
            "Provider registry initialized: %s",
            ", ".join(
                f"{name}={'available' if available else 'not configured'}"
                for name, available in registry.availability().items()
            ),
        )
        return registry

    def register(self, provider: Provider, client: ProviderClient) -> None:
        """Register a provider and the client that serves it."""
        self._providers[provider.name] = provider
        self._clients[provider.name] = client

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def get(self, name: str) -> Provider | None:
        """Look up a provider by name."""
        return self._providers.get(name)

    def client_for(self, name: str) -> ProviderClient:
        """Get the client for a provider.

        Raises:
            KeyError: If the provider is not registered
        """
        return self._clients[name]

    def is_available(self, name: str) -> bool:
        provider = self._providers.get(name)
        return provider is not None and provider.available

    @property
    def names(self) -> list[str]:
        return list(self._providers)

    def available(self) -> list[Provider]:
        """Available providers in registration order."""
        return [p for p in self._providers.values() if p.available]

    def availability(self) -> dict[str, bool]:
        return {name: p.available for name, p in self._providers.items()}
