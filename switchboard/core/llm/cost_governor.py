"""Cost governance for LLM usage.

Provides:
- Per-period spend ledger with per-provider breakdown
- Cost pressure levels that steer routing toward cheaper providers
- Monthly period rollover
- Spend projection and usage analytics

The governor never blocks or fails a request; it only reports pressure.
"""

from __future__ import annotations

import calendar
import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from switchboard.core.llm.types import CostPressure, Provider

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def period_key(moment: datetime) -> str:
    """Billing period (calendar month) containing ``moment``."""
    return f"{moment.year:04d}-{moment.month:02d}"


@dataclass
class CostLedger:
    """Spend for the current billing period."""

    budget_ceiling: Decimal
    period: str
    spent_this_period: Decimal = Decimal(0)
    per_provider_spend: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class UsageRecord:
    """One recorded provider call."""

    provider: str
    tokens: int
    cost: Decimal
    timestamp: datetime


class CostGovernor:
    """Track spend against a monthly ceiling and expose cost pressure.

    Mutations are serialized behind a single lock. ``current_pressure``
    reads the running total without locking; a slightly stale figure only
    delays a pressure change by one request. Every read rolls a finished
    billing period over first, so reports never show last month's spend.
    """

    def __init__(
        self,
        budget_ceiling: float,
        warning_ratio: float = 0.5,
        critical_ratio: float = 0.9,
        clock: Callable[[], datetime] | None = None,
        usage_log_size: int = 10000,
    ):
        if budget_ceiling <= 0:
            raise ValueError("budget_ceiling must be > 0")
        if not 0 < warning_ratio < critical_ratio:
            raise ValueError("expected 0 < warning_ratio < critical_ratio")

        self._clock = clock or _utcnow
        self._warning_ratio = Decimal(str(warning_ratio))
        self._critical_ratio = Decimal(str(critical_ratio))
        self._lock = threading.Lock()
        self._ledger = CostLedger(
            budget_ceiling=Decimal(str(budget_ceiling)),
            period=period_key(self._clock()),
        )
        self._usage_log: deque[UsageRecord] = deque(maxlen=usage_log_size)
        self._last_pressure = CostPressure.NORMAL

    @property
    def budget_ceiling(self) -> float:
        return float(self._ledger.budget_ceiling)

    @property
    def spent_this_period(self) -> float:
        return float(self._ledger.spent_this_period)

    def record_usage(self, provider: Provider, tokens_used: int) -> Decimal:
        """Add the cost of ``tokens_used`` at the provider's rate.

        Always succeeds. Rolls the ledger over first if the billing period
        changed since the last mutation.

        Returns:
            The cost that was recorded
        """
        if tokens_used < 0:
            logger.warning("Ignoring negative token count %d for %s", tokens_used, provider.name)
            tokens_used = 0

        cost = provider.cost_for(tokens_used)
        now = self._clock()

        with self._lock:
            self._roll_over_locked(now)
            ledger = self._ledger
            ledger.spent_this_period += cost
            ledger.per_provider_spend[provider.name] = (
                ledger.per_provider_spend.get(provider.name, Decimal(0)) + cost
            )
            self._usage_log.append(UsageRecord(provider.name, tokens_used, cost, now))

            pressure = self._pressure_for(ledger.spent_this_period)
            previous, self._last_pressure = self._last_pressure, pressure
            spent = ledger.spent_this_period

        if pressure != previous:
            log = logger.warning if pressure.level > previous.level else logger.info
            log(
                "Cost pressure %s -> %s: $%.4f of $%.2f spent this period",
                previous.value,
                pressure.value,
                spent,
                self._ledger.budget_ceiling,
            )
        return cost

    def current_pressure(self) -> CostPressure:
        """Pressure level for the current ledger snapshot.

        normal below the warning ratio (50%), warning up to and including
        the critical ratio (90%), critical above it. A billing period that
        ended since the last mutation is rolled over first.
        """
        self._roll_over_if_due()
        return self._pressure_for(self._ledger.spent_this_period)

    def _pressure_for(self, spent: Decimal) -> CostPressure:
        ratio = spent / self._ledger.budget_ceiling
        if ratio > self._critical_ratio:
            return CostPressure.CRITICAL
        if ratio >= self._warning_ratio:
            return CostPressure.WARNING
        return CostPressure.NORMAL

    def reset_period(self, now: datetime | None = None) -> bool:
        """Zero the ledger at a billing-period rollover.

        Idempotent: a no-op when the ledger already belongs to the period
        containing ``now``.

        Returns:
            True if the ledger was reset
        """
        with self._lock:
            return self._roll_over_locked(now or self._clock())

    def _roll_over_if_due(self) -> None:
        # Only takes the lock when the month has actually changed
        now = self._clock()
        if period_key(now) > self._ledger.period:
            self.reset_period(now)

    def _roll_over_locked(self, now: datetime) -> bool:
        key = period_key(now)
        if key <= self._ledger.period:
            return False

        previous = self._ledger
        self._ledger = CostLedger(budget_ceiling=previous.budget_ceiling, period=key)
        self._last_pressure = CostPressure.NORMAL
        logger.info(
            "Billing period rolled over %s -> %s (closing spend $%.4f)",
            previous.period,
            key,
            previous.spent_this_period,
        )
        return True

    def snapshot(self) -> CostLedger:
        """Consistent copy of the ledger."""
        with self._lock:
            self._roll_over_locked(self._clock())
            return replace(self._ledger, per_provider_spend=dict(self._ledger.per_provider_spend))

    def budget_status(self) -> dict[str, Any]:
        """Get current budget status."""
        ledger = self.snapshot()
        ceiling = ledger.budget_ceiling
        spent = ledger.spent_this_period
        return {
            "period": ledger.period,
            "budget_ceiling": float(ceiling),
            "spent_this_period": round(float(spent), 4),
            "remaining": round(float(max(ceiling - spent, Decimal(0))), 4),
            "percentage_used": round(float(spent / ceiling * 100), 1),
            "pressure": self._pressure_for(spent).value,
            "per_provider_spend": {k: round(float(v), 4) for k, v in ledger.per_provider_spend.items()},
            "projected_spend": round(self.project_period_spend(), 4),
        }

    def project_period_spend(self, now: datetime | None = None) -> float:
        """Linear projection of spend to the end of the billing period."""
        self._roll_over_if_due()
        now = now or self._clock()
        spent = float(self._ledger.spent_this_period)
        days_in_month = calendar.monthrange(now.year, now.month)[1]
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        days_elapsed = (now - start_of_month).total_seconds() / 86400
        if days_elapsed <= 0:
            return spent
        return spent / days_elapsed * days_in_month

    def health_score(self) -> float:
        """100 at zero spend, falling to 0 at the ceiling."""
        self._roll_over_if_due()
        ratio = float(self._ledger.spent_this_period / self._ledger.budget_ceiling)
        return max(0.0, 100.0 - ratio * 100.0)

    @staticmethod
    def cheapest(providers: Iterable[Provider]) -> list[Provider]:
        """Providers ordered by rate, cheapest first (stable)."""
        return sorted(providers, key=lambda p: p.cost_per_million_tokens)

    def usage_stats(self) -> dict[str, Any]:
        """Usage statistics for the current period."""
        with self._lock:
            self._roll_over_locked(self._clock())
            period = self._ledger.period
            records = [r for r in self._usage_log if period_key(r.timestamp) == period]

        by_provider: dict[str, Decimal] = {}
        tokens_by_provider: dict[str, int] = {}
        for record in records:
            by_provider[record.provider] = by_provider.get(record.provider, Decimal(0)) + record.cost
            tokens_by_provider[record.provider] = tokens_by_provider.get(record.provider, 0) + record.tokens

        return {
            "period": period,
            "request_count": len(records),
            "total_tokens": sum(tokens_by_provider.values()),
            "total_cost": round(float(sum(by_provider.values(), Decimal(0))), 4),
            "cost_by_provider": {k: round(float(v), 4) for k, v in by_provider.items()},
            "tokens_by_provider": tokens_by_provider,
        }
