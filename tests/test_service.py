"""Tests for configuration and the routing service wiring."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from fakes import FakeProviderClient, build_registry
from switchboard.api.config import Settings
from switchboard.core.llm.adapters.registry import ProviderRegistry
from switchboard.core.llm.cost_governor import CostGovernor
from switchboard.core.llm.errors import PolicyConfigurationError
from switchboard.core.llm.policy import RoutingPolicy
from switchboard.core.llm.service import RoutingService, get_routing_service
from switchboard.core.llm.types import ComplexityTier, CostPressure

VENDOR_KEYS = ("GROQ_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment without any vendor keys or SWITCHBOARD_ settings."""
    for key in VENDOR_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def fresh_singleton() -> Iterator[None]:
    RoutingService.reset()
    yield
    RoutingService.reset()


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.budget_ceiling_usd == 10.0
        assert settings.warning_ratio == 0.5
        assert settings.critical_ratio == 0.9
        assert settings.synthesis_provider == "anthropic"
        assert settings.validation_threshold == 0.7
        assert settings.provider_credentials["openai-mini"] == "OPENAI_API_KEY"

    def test_reads_prefixed_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        policy = {"light": {"normal": ["groq"], "warning": ["groq"], "critical": ["groq"]}}
        clean_env.setenv("SWITCHBOARD_BUDGET_CEILING_USD", "25")
        clean_env.setenv("SWITCHBOARD_FAN_OUT_DEADLINE_MS", "1500")
        clean_env.setenv("SWITCHBOARD_ROUTING_POLICY", json.dumps(policy))

        settings = Settings(_env_file=None)

        assert settings.budget_ceiling_usd == 25.0
        assert settings.fan_out_deadline_ms == 1500
        assert settings.routing_policy == policy

    def test_rejects_non_positive_ceiling(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("SWITCHBOARD_BUDGET_CEILING_USD", "0")

        with pytest.raises(ValueError):
            Settings(_env_file=None)


class TestFromSettings:
    """Tests for building the service at startup."""

    def test_free_provider_only(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("GROQ_API_KEY", "gsk-test")

        service = RoutingService.from_settings(Settings(_env_file=None))

        assert [p.name for p in service.registry.available()] == ["groq"]
        assert service.router.recommended_provider(ComplexityTier.HEAVY) == "groq"

    def test_premium_provider_only_fails_validation(self, clean_env: pytest.MonkeyPatch) -> None:
        """The default critical rows have nothing left when only anthropic is keyed."""
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant-test")

        with pytest.raises(PolicyConfigurationError, match="critical"):
            RoutingService.from_settings(Settings(_env_file=None))

    def test_unknown_synthesis_provider(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("GROQ_API_KEY", "gsk-test")

        with pytest.raises(PolicyConfigurationError, match="synthesis"):
            RoutingService.from_settings(Settings(_env_file=None, synthesis_provider="mistral"))

    def test_policy_from_yaml_file(self, clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        path = tmp_path / "routing.yaml"
        rows = "\n".join(
            f"{tier.value}:\n" + "".join(f"  {p.value}: [openai-mini]\n" for p in CostPressure)
            for tier in ComplexityTier
        )
        path.write_text(rows)
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        clean_env.setenv("SWITCHBOARD_ROUTING_POLICY_PATH", str(path))

        service = RoutingService.from_settings(Settings(_env_file=None))

        assert service.router.recommended_provider(ComplexityTier.HEAVY) == "openai-mini"

    def test_inline_policy_wins_over_file(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("GROQ_API_KEY", "gsk-test")
        inline = {
            tier.value: {p.value: ["groq"] for p in CostPressure} for tier in ComplexityTier
        }
        settings = Settings(
            _env_file=None,
            routing_policy=inline,
            routing_policy_path="/does/not/exist.yaml",
        )

        service = RoutingService.from_settings(settings)

        assert service.policy.to_dict() == inline

    def test_singleton(self, clean_env: pytest.MonkeyPatch, fresh_singleton: None) -> None:
        clean_env.setenv("GROQ_API_KEY", "gsk-test")

        first = get_routing_service()

        assert get_routing_service() is first
        RoutingService.reset()
        assert get_routing_service() is not first


class TestOperations:
    """Tests for the service's external operations."""

    @pytest.fixture
    def service(
        self, default_registry: ProviderRegistry, governor: CostGovernor
    ) -> RoutingService:
        return RoutingService(default_registry, governor, RoutingPolicy(), fan_out_deadline_ms=5000)

    @pytest.mark.asyncio
    async def test_route_accepts_string_complexity(self, service: RoutingService) -> None:
        result = await service.route("hello", "light")

        assert result.provider == "groq"
        assert result.complexity == ComplexityTier.LIGHT

    @pytest.mark.asyncio
    async def test_fan_out_deadline_in_milliseconds(
        self, default_clients: dict[str, FakeProviderClient], service: RoutingService
    ) -> None:
        default_clients["openai"].delay = 3600

        response = await service.fan_out("hello", ["groq", "openai"], deadline_ms=200)

        assert response.deadline_exceeded
        assert response.synthesized_text == "answer from groq"

    @pytest.mark.asyncio
    async def test_validate(self, service: RoutingService) -> None:
        report = await service.validate("plan", "Check the plan.", ["groq", "openai-mini"])

        assert report.pass_rate == 1.0
        assert report.passed

    def test_status(self, service: RoutingService) -> None:
        status = service.status()

        assert set(status["providers"]) == {"groq", "openai-mini", "openai", "anthropic"}
        assert status["providers"]["anthropic"]["tier"] == "premium"
        assert status["pressure"] == "normal"
        assert status["recommendations"] == {
            "light": "groq",
            "medium": "openai",
            "heavy": "anthropic",
        }
        assert status["synthesis_provider"] == "anthropic"

    def test_policy_checked_against_registry(self, governor: CostGovernor) -> None:
        """The default table names providers an empty registry lacks."""
        with pytest.raises(PolicyConfigurationError, match="unknown providers"):
            RoutingService(build_registry([]), governor)
