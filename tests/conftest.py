"""Shared fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fakes import FakeProviderClient, FixedClock, build_registry
from switchboard.core.llm.adapters.registry import DEFAULT_PROVIDERS, ProviderRegistry
from switchboard.core.llm.cost_governor import CostGovernor


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 10, 16, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def governor(clock: FixedClock) -> CostGovernor:
    """$10 monthly ceiling."""
    return CostGovernor(budget_ceiling=10.0, clock=clock)


@pytest.fixture
def default_clients() -> dict[str, FakeProviderClient]:
    """Fake clients for the default catalogue, all available."""
    return {
        p.name: FakeProviderClient(p.model_copy(update={"available": True}))
        for p in DEFAULT_PROVIDERS
    }


@pytest.fixture
def default_registry(default_clients: dict[str, FakeProviderClient]) -> ProviderRegistry:
    return build_registry(list(default_clients.values()))
