"""Provider clients for the supported LLM vendors."""

from switchboard.core.llm.adapters.base import ProviderClient
from switchboard.core.llm.adapters.openai_adapter import OpenAIClient
from switchboard.core.llm.adapters.anthropic_adapter import AnthropicClient
from switchboard.core.llm.adapters.groq_adapter import GroqClient
from switchboard.core.llm.adapters.registry import (
    DEFAULT_PROVIDERS,
    ProviderRegistry,
)

__all__ = [
    "ProviderClient",
    "OpenAIClient",
    "AnthropicClient",
    "GroqClient",
    "DEFAULT_PROVIDERS",
    "ProviderRegistry",
]
