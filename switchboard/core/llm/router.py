"""Provider router.

Picks one provider per request based on:
- Caller-declared task complexity
- Current cost pressure
- Provider availability

and cascades through the remaining candidates when a provider fails.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from datetime import datetime, timezone

from switchboard.core.llm.adapters.registry import ProviderRegistry
from switchboard.core.llm.cost_governor import CostGovernor
from switchboard.core.llm.errors import AllProvidersFailed, NoProviderAvailable, ProviderError
from switchboard.core.llm.policy import RoutingPolicy
from switchboard.core.llm.types import (
    AttemptOutcome,
    ComplexityTier,
    CostPressure,
    Provider,
    RouteAttempt,
    RouteResult,
)

logger = logging.getLogger(__name__)


class ProviderRouter:
    """Routes a prompt to the first provider that succeeds.

    Candidates come from the routing policy row for the request's
    complexity and the governor's current pressure, filtered to available
    providers. Attempts are strictly sequential; any failure, including an
    unexpected exception from a client, moves on to the next candidate and
    only exhausting the list is fatal.

    There is no deadline across the cascade. Each client bounds its own
    call with its timeout.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        governor: CostGovernor,
        policy: RoutingPolicy | None = None,
        max_tokens: int = 4000,
        attempt_log_size: int = 500,
    ):
        self._registry = registry
        self._governor = governor
        self._policy = policy or RoutingPolicy()
        self._max_tokens = max_tokens
        self._attempt_log: deque[RouteAttempt] = deque(maxlen=attempt_log_size)

    @property
    def policy(self) -> RoutingPolicy:
        return self._policy

    def candidates(
        self,
        complexity: ComplexityTier,
        pressure: CostPressure | None = None,
    ) -> list[Provider]:
        """Available providers for a request, in preference order."""
        pressure = pressure or self._governor.current_pressure()
        providers = []
        for name in self._policy.candidates(complexity, pressure):
            provider = self._registry.get(name)
            if provider is not None and provider.available:
                providers.append(provider)
        return providers

    async def route(
        self,
        prompt: str,
        complexity: ComplexityTier = ComplexityTier.MEDIUM,
        max_tokens: int | None = None,
    ) -> RouteResult:
        """Generate a completion with the best available provider.

        Args:
            prompt: The prompt to send
            complexity: Declared task complexity
            max_tokens: Completion size limit (defaults to the router's)

        Returns:
            RouteResult from the first provider that succeeded

        Raises:
            NoProviderAvailable: No candidate is available; nothing attempted
            AllProvidersFailed: Every candidate failed, attempts in order
        """
        pressure = self._governor.current_pressure()
        candidates = self.candidates(complexity, pressure)

        if not candidates:
            logger.error(
                "No provider available for complexity=%s pressure=%s",
                complexity.value,
                pressure.value,
            )
            raise NoProviderAvailable(complexity.value, pressure.value)

        return await self._cascade(prompt, candidates, complexity, pressure, max_tokens)

    async def route_to(
        self,
        provider_name: str,
        prompt: str,
        max_tokens: int | None = None,
    ) -> RouteResult:
        """Send a prompt to one named provider, bypassing the policy table.

        Raises:
            NoProviderAvailable: Provider unknown or not configured
            AllProvidersFailed: The single attempt failed
        """
        pressure = self._governor.current_pressure()
        provider = self._registry.get(provider_name)
        if provider is None or not provider.available:
            raise NoProviderAvailable(f"forced:{provider_name}", pressure.value)

        complexity = ComplexityTier.from_max_tokens(max_tokens or self._max_tokens)
        return await self._cascade(prompt, [provider], complexity, pressure, max_tokens)

    async def _cascade(
        self,
        prompt: str,
        candidates: list[Provider],
        complexity: ComplexityTier,
        pressure: CostPressure,
        max_tokens: int | None,
    ) -> RouteResult:
        attempts: list[RouteAttempt] = []

        for provider in candidates:
            client = self._registry.client_for(provider.name)
            started_at = datetime.now(timezone.utc)
            start = time.perf_counter()

            try:
                generation = await client.generate(
                    prompt,
                    model=provider.model,
                    max_tokens=max_tokens or self._max_tokens,
                )
            except ProviderError as e:
                outcome = (
                    AttemptOutcome.RETRYABLE_FAILURE if e.retryable else AttemptOutcome.FATAL_FAILURE
                )
                attempt = self._log_attempt(provider, started_at, start, outcome, error=e.message)
                attempts.append(attempt)
                logger.warning(
                    "Provider %s failed (%s): %s; %d candidate(s) left",
                    provider.name,
                    outcome.value,
                    e.message,
                    len(candidates) - len(attempts),
                )
                continue
            except Exception as e:
                attempt = self._log_attempt(
                    provider,
                    started_at,
                    start,
                    AttemptOutcome.FATAL_FAILURE,
                    error=f"{type(e).__name__}: {e}",
                )
                attempts.append(attempt)
                logger.exception(
                    "Unexpected error from provider %s; %d candidate(s) left",
                    provider.name,
                    len(candidates) - len(attempts),
                )
                continue

            attempts.append(
                self._log_attempt(provider, started_at, start, AttemptOutcome.SUCCESS)
            )
            cost = self._governor.record_usage(provider, generation.tokens_used)

            if len(attempts) > 1:
                logger.info(
                    "Routed %s request to %s after %d failed attempt(s)",
                    complexity.value,
                    provider.name,
                    len(attempts) - 1,
                )
            else:
                logger.debug("Routed %s request to %s", complexity.value, provider.name)

            return RouteResult(
                text=generation.text,
                provider=provider.name,
                model=generation.model or provider.model,
                tokens_used=generation.tokens_used,
                cost=float(cost),
                complexity=complexity,
                pressure=pressure,
                attempts=attempts,
            )

        logger.error(
            "All providers failed for %s request: %s",
            complexity.value,
            ", ".join(a.provider for a in attempts),
        )
        raise AllProvidersFailed(attempts)

    def _log_attempt(
        self,
        provider: Provider,
        started_at: datetime,
        start: float,
        outcome: AttemptOutcome,
        error: str | None = None,
    ) -> RouteAttempt:
        attempt = RouteAttempt(
            provider=provider.name,
            started_at=started_at,
            outcome=outcome,
            latency_ms=(time.perf_counter() - start) * 1000,
            error=error,
        )
        self._attempt_log.append(attempt)
        return attempt

    def recent_attempts(self, limit: int | None = None) -> list[RouteAttempt]:
        """Most recent attempts across all route calls, oldest first."""
        attempts = list(self._attempt_log)
        return attempts[-limit:] if limit else attempts

    def recommended_provider(self, complexity: ComplexityTier) -> str | None:
        """First choice for a complexity tier under current pressure."""
        candidates = self.candidates(complexity)
        return candidates[0].name if candidates else None

    def availability(self) -> dict[str, bool]:
        return self._registry.availability()
