"""Tests for the cost governor."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from fakes import METER, FixedClock, make_provider
from switchboard.core.llm.cost_governor import CostGovernor, period_key
from switchboard.core.llm.types import CostPressure, ProviderTier


@pytest.fixture
def meter_governor(clock: FixedClock) -> CostGovernor:
    """$100 ceiling so a METER token count reads as a percentage."""
    return CostGovernor(budget_ceiling=100.0, clock=clock)


class TestRecordUsage:
    """Tests for converting tokens to spend."""

    def test_converts_tokens_at_provider_rate(self, governor: CostGovernor) -> None:
        """100k tokens at $15/M costs $1.50."""
        premium = make_provider("premium", ProviderTier.PREMIUM, rate=15.0)
        cost = governor.record_usage(premium, 100_000)

        assert cost == Decimal("1.5")
        assert governor.spent_this_period == pytest.approx(1.5)

    def test_free_provider_costs_nothing(self, governor: CostGovernor) -> None:
        free = make_provider("free", ProviderTier.FREE, rate=0.0)
        governor.record_usage(free, 5_000_000)

        assert governor.spent_this_period == 0
        assert governor.current_pressure() == CostPressure.NORMAL

    def test_additive_and_order_independent(self, clock: FixedClock) -> None:
        """Recording (P1, 100) then (P2, 50) equals the reverse order."""
        p1 = make_provider("p1", rate=3.7)
        p2 = make_provider("p2", rate=0.13)

        forward = CostGovernor(budget_ceiling=10.0, clock=clock)
        forward.record_usage(p1, 100)
        forward.record_usage(p2, 50)

        reverse = CostGovernor(budget_ceiling=10.0, clock=clock)
        reverse.record_usage(p2, 50)
        reverse.record_usage(p1, 100)

        assert forward.snapshot().spent_this_period == reverse.snapshot().spent_this_period

    def test_total_matches_per_provider_sum(self, governor: CostGovernor) -> None:
        providers = [make_provider(f"p{i}", rate=0.1 * (i + 1)) for i in range(4)]
        for i in range(40):
            governor.record_usage(providers[i % 4], 1000 + i * 37)

        ledger = governor.snapshot()
        assert ledger.spent_this_period == sum(ledger.per_provider_spend.values())
        assert set(ledger.per_provider_spend) == {"p0", "p1", "p2", "p3"}

    def test_negative_tokens_never_reduce_spend(self, meter_governor: CostGovernor) -> None:
        meter_governor.record_usage(METER, 10)
        meter_governor.record_usage(METER, -5)

        assert meter_governor.spent_this_period == 10

    def test_concurrent_recording_is_atomic(self, clock: FixedClock) -> None:
        governor = CostGovernor(budget_ceiling=1_000_000.0, clock=clock)

        def worker() -> None:
            for _ in range(500):
                governor.record_usage(METER, 1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ledger = governor.snapshot()
        assert ledger.spent_this_period == Decimal(4000)
        assert ledger.per_provider_spend["meter"] == Decimal(4000)


class TestCurrentPressure:
    """Tests for pressure levels."""

    @pytest.mark.parametrize(
        ("percent", "expected"),
        [
            (0, CostPressure.NORMAL),
            (49, CostPressure.NORMAL),
            (50, CostPressure.WARNING),
            (75, CostPressure.WARNING),
            (90, CostPressure.WARNING),
            (91, CostPressure.CRITICAL),
            (150, CostPressure.CRITICAL),
        ],
    )
    def test_thresholds(
        self, meter_governor: CostGovernor, percent: int, expected: CostPressure
    ) -> None:
        meter_governor.record_usage(METER, percent)
        assert meter_governor.current_pressure() == expected

    def test_monotonic_with_spend(self, meter_governor: CostGovernor) -> None:
        """Increasing spend never lowers the reported level."""
        last_level = meter_governor.current_pressure().level
        for _ in range(120):
            meter_governor.record_usage(METER, 1)
            level = meter_governor.current_pressure().level
            assert level >= last_level
            last_level = level
        assert meter_governor.current_pressure() == CostPressure.CRITICAL

    def test_custom_ratios(self, clock: FixedClock) -> None:
        governor = CostGovernor(budget_ceiling=100.0, warning_ratio=0.2, critical_ratio=0.4, clock=clock)
        governor.record_usage(METER, 25)
        assert governor.current_pressure() == CostPressure.WARNING
        governor.record_usage(METER, 20)
        assert governor.current_pressure() == CostPressure.CRITICAL

    def test_invalid_configuration_rejected(self) -> None:
        with pytest.raises(ValueError):
            CostGovernor(budget_ceiling=0)
        with pytest.raises(ValueError):
            CostGovernor(budget_ceiling=10.0, warning_ratio=0.9, critical_ratio=0.5)


class TestResetPeriod:
    """Tests for billing-period rollover."""

    def test_noop_within_current_period(self, meter_governor: CostGovernor) -> None:
        meter_governor.record_usage(METER, 60)

        assert meter_governor.reset_period() is False
        assert meter_governor.spent_this_period == 60

    def test_resets_once_per_new_period(
        self, meter_governor: CostGovernor, clock: FixedClock
    ) -> None:
        meter_governor.record_usage(METER, 95)
        assert meter_governor.current_pressure() == CostPressure.CRITICAL

        clock.now = datetime(2026, 11, 1, 0, 0, 5, tzinfo=timezone.utc)
        assert meter_governor.reset_period() is True
        assert meter_governor.spent_this_period == 0
        assert meter_governor.current_pressure() == CostPressure.NORMAL
        assert meter_governor.snapshot().period == "2026-11"

        meter_governor.record_usage(METER, 10)
        assert meter_governor.reset_period() is False
        assert meter_governor.spent_this_period == 10

    def test_record_usage_rolls_over_lazily(
        self, meter_governor: CostGovernor, clock: FixedClock
    ) -> None:
        meter_governor.record_usage(METER, 80)
        clock.now = datetime(2026, 11, 3, tzinfo=timezone.utc)

        meter_governor.record_usage(METER, 5)

        ledger = meter_governor.snapshot()
        assert ledger.period == "2026-11"
        assert ledger.spent_this_period == 5

    def test_reads_roll_over_without_new_usage(
        self, meter_governor: CostGovernor, clock: FixedClock
    ) -> None:
        """Last month's critical spend is not reported once the month turns."""
        meter_governor.record_usage(METER, 95)
        assert meter_governor.current_pressure() == CostPressure.CRITICAL

        clock.now = datetime(2026, 11, 2, tzinfo=timezone.utc)

        assert meter_governor.current_pressure() == CostPressure.NORMAL
        status = meter_governor.budget_status()
        assert status["period"] == "2026-11"
        assert status["spent_this_period"] == 0
        assert status["pressure"] == "normal"
        assert meter_governor.health_score() == 100.0
        assert meter_governor.usage_stats()["request_count"] == 0

    def test_past_timestamp_does_not_reset(self, meter_governor: CostGovernor) -> None:
        meter_governor.record_usage(METER, 30)
        assert meter_governor.reset_period(datetime(2026, 9, 30, tzinfo=timezone.utc)) is False
        assert meter_governor.spent_this_period == 30

    def test_period_key(self) -> None:
        assert period_key(datetime(2026, 1, 31, 23, 59, tzinfo=timezone.utc)) == "2026-01"


class TestReporting:
    """Tests for status, projection and usage analytics."""

    def test_snapshot_is_a_copy(self, meter_governor: CostGovernor) -> None:
        meter_governor.record_usage(METER, 10)
        snapshot = meter_governor.snapshot()
        snapshot.per_provider_spend["meter"] = Decimal(0)

        assert meter_governor.snapshot().per_provider_spend["meter"] == Decimal(10)

    def test_budget_status(self, governor: CostGovernor) -> None:
        premium = make_provider("premium", ProviderTier.PREMIUM, rate=15.0)
        governor.record_usage(premium, 400_000)

        status = governor.budget_status()
        assert status["spent_this_period"] == 6.0
        assert status["remaining"] == 4.0
        assert status["percentage_used"] == 60.0
        assert status["pressure"] == "warning"
        assert status["per_provider_spend"] == {"premium": 6.0}

    def test_projection_extrapolates_to_month_end(self, meter_governor: CostGovernor) -> None:
        """$3 after 15 of 31 days projects to $6.20."""
        meter_governor.record_usage(METER, 3)
        assert meter_governor.project_period_spend() == pytest.approx(6.2)

    def test_health_score(self, meter_governor: CostGovernor) -> None:
        meter_governor.record_usage(METER, 25)
        assert meter_governor.health_score() == pytest.approx(75.0)
        meter_governor.record_usage(METER, 100)
        assert meter_governor.health_score() == 0.0

    def test_cheapest_orders_by_rate(self) -> None:
        providers = [
            make_provider("premium", rate=15.0),
            make_provider("free", rate=0.0),
            make_provider("mid", rate=0.6),
        ]
        assert [p.name for p in CostGovernor.cheapest(providers)] == ["free", "mid", "premium"]

    def test_usage_stats_group_by_provider(self, governor: CostGovernor) -> None:
        a = make_provider("a", rate=1.0)
        b = make_provider("b", rate=2.0)
        governor.record_usage(a, 1000)
        governor.record_usage(b, 500)
        governor.record_usage(a, 1000)

        stats = governor.usage_stats()
        assert stats["request_count"] == 3
        assert stats["total_tokens"] == 2500
        assert stats["tokens_by_provider"] == {"a": 2000, "b": 500}
        assert stats["cost_by_provider"] == {"a": 0.002, "b": 0.001}
