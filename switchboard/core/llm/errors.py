"""Error taxonomy for provider routing."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from switchboard.core.llm.types import RouteAttempt

# Status codes worth trying again: request timeout, conflict, rate limit
RETRYABLE_STATUS_CODES = frozenset({408, 409, 429})


def is_retryable_status(status_code: int | None) -> bool:
    """Whether an HTTP status returned by a vendor is transient."""
    if status_code is None:
        return True
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


class ProviderError(Exception):
    """A single backend call failed.

    Retryable covers timeouts, rate limiting and transient 5xx responses;
    non-retryable covers auth and malformed-request errors.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        retryable: bool = True,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.retryable = retryable
        self.status_code = status_code


class RoutingError(Exception):
    """A route request could not be served."""


class NoProviderAvailable(RoutingError):
    """No candidate survived the availability filter; nothing was attempted."""

    def __init__(self, complexity: str, pressure: str) -> None:
        super().__init__(
            f"No provider available for complexity={complexity} pressure={pressure}"
        )
        self.complexity = complexity
        self.pressure = pressure


class AllProvidersFailed(RoutingError):
    """Every candidate was tried and failed."""

    def __init__(self, attempts: list[RouteAttempt]) -> None:
        self.attempts = attempts
        reasons = "; ".join(f"{a.provider} ({a.outcome.value}): {a.error}" for a in attempts)
        super().__init__(f"All {len(attempts)} providers failed: {reasons}")

    @property
    def providers(self) -> list[str]:
        return [a.provider for a in self.attempts]


class PolicyConfigurationError(ValueError):
    """Routing policy or provider registry is inconsistent."""
