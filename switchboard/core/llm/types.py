"""Core types for the provider routing layer."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProviderTier(str, Enum):
    """Provider tiers based on cost and capability.

    FREE: free-tier inference (Groq, local)
    STANDARD: general-purpose paid models (GPT-4o family)
    PREMIUM: heavy reasoning models (Claude Sonnet/Opus)
    """
    FREE = "free"
    STANDARD = "standard"
    PREMIUM = "premium"


class ComplexityTier(str, Enum):
    """Caller-declared task complexity."""

    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"

    @classmethod
    def from_max_tokens(cls, max_tokens: int) -> ComplexityTier:
        """Infer a complexity tier from the size of the requested completion."""
        if max_tokens > 6000:
            return cls.HEAVY
        if max_tokens > 3000:
            return cls.MEDIUM
        return cls.LIGHT


class CostPressure(str, Enum):
    """How close current spend is to the budget ceiling."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def level(self) -> int:
        return _PRESSURE_ORDER.index(self)


_PRESSURE_ORDER = [CostPressure.NORMAL, CostPressure.WARNING, CostPressure.CRITICAL]


class AttemptOutcome(str, Enum):
    """Outcome of a single provider attempt inside a route call."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


class Provider(BaseModel):
    """Static description of one backend."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    tier: ProviderTier
    model: str = Field(description="Model identifier passed to the vendor")
    vendor: str = Field(default="", description="SDK family: openai, anthropic, groq")
    cost_per_million_tokens: float = Field(default=0.0, ge=0.0)
    credential_env: str | None = Field(default=None)
    available: bool = Field(default=False)

    def cost_for(self, tokens: int) -> Decimal:
        """Cost of ``tokens`` at this provider's rate."""
        return Decimal(max(tokens, 0)) * Decimal(str(self.cost_per_million_tokens)) / Decimal(1_000_000)


class Generation(BaseModel):
    """Text returned by a provider client."""

    text: str
    tokens_used: int = Field(default=0, ge=0)
    model: str = Field(default="")
    latency_ms: float = Field(default=0.0)


class RouteAttempt(BaseModel):
    """Record of one provider try inside a single route call."""

    provider: str
    started_at: datetime = Field(default_factory=_utcnow)
    outcome: AttemptOutcome
    latency_ms: float = Field(default=0.0)
    error: str | None = Field(default=None)


class RouteResult(BaseModel):
    """Successful route outcome."""

    text: str
    provider: str
    model: str
    tokens_used: int = Field(default=0)
    cost: float = Field(default=0.0)
    complexity: ComplexityTier
    pressure: CostPressure
    attempts: list[RouteAttempt] = Field(default_factory=list)

    @property
    def fallback_used(self) -> bool:
        return len(self.attempts) > 1


class FanOutResult(BaseModel):
    """One provider's outcome inside a fan-out call."""

    provider: str
    text: str | None = Field(default=None)
    error: str | None = Field(default=None)
    latency_ms: float = Field(default=0.0)
    tokens_used: int = Field(default=0)
    succeeded: bool = Field(default=False)
    deadline_exceeded: bool = Field(default=False)


class FanOutResponse(BaseModel):
    """All fan-out results in request order, plus the merged answer."""

    results: list[FanOutResult] = Field(default_factory=list)
    synthesized_text: str | None = Field(default=None)
    deadline_exceeded: bool = Field(default=False)

    @property
    def successful(self) -> list[FanOutResult]:
        return [r for r in self.results if r.succeeded]


class ValidationVerdict(BaseModel):
    """One provider's judgment of a piece of content."""

    provider: str
    passed: bool
    feedback: str
    latency_ms: float = Field(default=0.0)


class ValidationReport(BaseModel):
    """Aggregated parallel validation."""

    pass_rate: float = Field(ge=0.0, le=1.0)
    threshold: float = Field(ge=0.0, le=1.0)
    passed: bool
    verdicts: list[ValidationVerdict] = Field(default_factory=list)
    consensus: str | None = Field(default=None)
    timestamp: datetime = Field(default_factory=_utcnow)
