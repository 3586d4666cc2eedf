"""Routing service: wires registry, governor, policy, router and orchestrator."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from switchboard.core.llm.adapters.registry import ProviderRegistry
from switchboard.core.llm.cost_governor import CostGovernor
from switchboard.core.llm.errors import PolicyConfigurationError
from switchboard.core.llm.orchestrator import Orchestrator
from switchboard.core.llm.policy import RoutingPolicy
from switchboard.core.llm.quality import ValidationType
from switchboard.core.llm.router import ProviderRouter
from switchboard.core.llm.types import (
    ComplexityTier,
    FanOutResponse,
    RouteResult,
    ValidationReport,
)

if TYPE_CHECKING:
    from switchboard.api.config import Settings

logger = logging.getLogger(__name__)


class RoutingService:
    """Entry point for the three external operations: route, fan-out, validate."""

    _instance: RoutingService | None = None

    def __init__(
        self,
        registry: ProviderRegistry,
        governor: CostGovernor,
        policy: RoutingPolicy | None = None,
        synthesis_provider: str = "anthropic",
        validation_threshold: float = 0.7,
        fan_out_deadline_ms: int = 30000,
        max_tokens: int = 4000,
    ):
        self.registry = registry
        self.governor = governor
        self.policy = policy or RoutingPolicy()
        self._fan_out_deadline_ms = fan_out_deadline_ms

        self.policy.validate(registry)
        if synthesis_provider not in registry:
            raise PolicyConfigurationError(f"Unknown synthesis provider: {synthesis_provider}")

        self.router = ProviderRouter(registry, governor, self.policy, max_tokens=max_tokens)
        self.orchestrator = Orchestrator(
            registry,
            governor,
            synthesis_provider=synthesis_provider,
            validation_threshold=validation_threshold,
            default_deadline=fan_out_deadline_ms / 1000,
            max_tokens=max_tokens,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> RoutingService:
        """Build the service from process configuration.

        Raises:
            PolicyConfigurationError: If the policy or registry is inconsistent
        """
        registry = ProviderRegistry.from_environment(
            credentials=settings.provider_credentials,
            timeout=settings.provider_timeout_seconds,
        )
        governor = CostGovernor(
            budget_ceiling=settings.budget_ceiling_usd,
            warning_ratio=settings.warning_ratio,
            critical_ratio=settings.critical_ratio,
        )

        if settings.routing_policy:
            policy = RoutingPolicy.from_mapping(settings.routing_policy)
        elif settings.routing_policy_path:
            policy = RoutingPolicy.from_yaml(settings.routing_policy_path)
        else:
            policy = RoutingPolicy()

        return cls(
            registry,
            governor,
            policy,
            synthesis_provider=settings.synthesis_provider,
            validation_threshold=settings.validation_threshold,
            fan_out_deadline_ms=settings.fan_out_deadline_ms,
            max_tokens=settings.max_tokens,
        )

    @classmethod
    def get_instance(cls) -> RoutingService:
        """Get singleton service instance."""
        if cls._instance is None:
            from switchboard.api.config import Settings

            cls._instance = cls.from_settings(Settings())
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset singleton (for testing)."""
        cls._instance = None

    async def route(
        self,
        prompt: str,
        complexity: ComplexityTier | str = ComplexityTier.MEDIUM,
        max_tokens: int | None = None,
    ) -> RouteResult:
        return await self.router.route(prompt, ComplexityTier(complexity), max_tokens)

    async def fan_out(
        self,
        prompt: str,
        providers: Sequence[str],
        deadline_ms: int | None = None,
    ) -> FanOutResponse:
        deadline_ms = self._fan_out_deadline_ms if deadline_ms is None else deadline_ms
        return await self.orchestrator.fan_out_and_synthesize(prompt, providers, deadline_ms / 1000)

    async def validate(
        self,
        content: str,
        rubric: str | ValidationType,
        providers: Sequence[str] | None = None,
        deadline_ms: int | None = None,
        with_consensus: bool = False,
    ) -> ValidationReport:
        deadline_ms = self._fan_out_deadline_ms if deadline_ms is None else deadline_ms
        return await self.orchestrator.parallel_validate(
            content,
            rubric,
            providers,
            deadline=deadline_ms / 1000,
            with_consensus=with_consensus,
        )

    def status(self) -> dict[str, Any]:
        """Provider availability, current pressure and first choices per tier."""
        return {
            "providers": {
                p.name: {
                    "available": p.available,
                    "tier": p.tier.value,
                    "model": p.model,
                    "cost_per_million_tokens": p.cost_per_million_tokens,
                }
                for p in (self.registry.get(n) for n in self.registry.names)
                if p is not None
            },
            "pressure": self.governor.current_pressure().value,
            "recommendations": {
                c.value: self.router.recommended_provider(c) for c in ComplexityTier
            },
            "synthesis_provider": self.orchestrator.synthesis_provider,
        }


def get_routing_service() -> RoutingService:
    """Get the singleton routing service."""
    return RoutingService.get_instance()
