"""Routing policy: (complexity, cost pressure) -> ordered provider names.

Default table decisions:
- light tasks prefer the cheapest provider first
- heavy tasks prefer the premium reasoning provider while spend is normal
- under warning pressure premium providers drop out
- under critical pressure only free and cheap providers remain
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from switchboard.core.llm.errors import PolicyConfigurationError
from switchboard.core.llm.types import ComplexityTier, CostPressure

if TYPE_CHECKING:
    from switchboard.core.llm.adapters.registry import ProviderRegistry


PolicyTable = dict[ComplexityTier, dict[CostPressure, list[str]]]


DEFAULT_ROUTING_TABLE: PolicyTable = {
    ComplexityTier.LIGHT: {
        CostPressure.NORMAL: ["groq", "openai-mini", "openai", "anthropic"],
        CostPressure.WARNING: ["groq", "openai-mini"],
        CostPressure.CRITICAL: ["groq", "openai-mini"],
    },
    ComplexityTier.MEDIUM: {
        CostPressure.NORMAL: ["openai", "groq", "anthropic", "openai-mini"],
        CostPressure.WARNING: ["openai-mini", "groq", "openai"],
        CostPressure.CRITICAL: ["groq", "openai-mini"],
    },
    ComplexityTier.HEAVY: {
        CostPressure.NORMAL: ["anthropic", "openai", "groq", "openai-mini"],
        CostPressure.WARNING: ["openai", "groq", "openai-mini"],
        CostPressure.CRITICAL: ["groq", "openai-mini"],
    },
}


class RoutingPolicy:
    """Static provider preference table.

    Read-only after construction, so it is safe to share between
    concurrent requests.
    """

    def __init__(self, table: PolicyTable | None = None):
        source = table if table is not None else DEFAULT_ROUTING_TABLE
        self._table: PolicyTable = {
            complexity: {pressure: list(names) for pressure, names in row.items()}
            for complexity, row in source.items()
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RoutingPolicy:
        """Build a policy from plain data.

        Expected shape: ``{"light": {"normal": ["groq", ...], ...}, ...}``.

        Raises:
            PolicyConfigurationError: On unknown tiers/pressures or bad rows
        """
        table: PolicyTable = {}
        for complexity_key, row in data.items():
            try:
                complexity = ComplexityTier(complexity_key)
            except ValueError as e:
                raise PolicyConfigurationError(f"Unknown complexity tier: {complexity_key!r}") from e
            if not isinstance(row, Mapping):
                raise PolicyConfigurationError(f"Policy row for {complexity_key!r} must be a mapping")

            table[complexity] = {}
            for pressure_key, names in row.items():
                try:
                    pressure = CostPressure(pressure_key)
                except ValueError as e:
                    raise PolicyConfigurationError(f"Unknown cost pressure: {pressure_key!r}") from e
                if isinstance(names, str) or not isinstance(names, Sequence):
                    raise PolicyConfigurationError(
                        f"Policy cell {complexity_key}/{pressure_key} must be a list of provider names"
                    )
                table[complexity][pressure] = [str(n) for n in names]

        return cls(table)

    @classmethod
    def from_yaml(cls, path: Path | str) -> RoutingPolicy:
        """Load a policy from a YAML file."""
        data = yaml.safe_load(Path(path).read_text())
        if not isinstance(data, Mapping):
            raise PolicyConfigurationError(f"Routing policy file {path} must contain a mapping")
        return cls.from_mapping(data)

    def candidates(self, complexity: ComplexityTier, pressure: CostPressure) -> list[str]:
        """Ordered provider names for a request; a copy callers may filter."""
        return list(self._table.get(complexity, {}).get(pressure, []))

    def validate(self, registry: ProviderRegistry) -> None:
        """Check the policy against the registry at startup.

        Every named provider must be registered, and whenever at least one
        provider is available every (complexity, pressure) cell must keep
        at least one available provider.

        Raises:
            PolicyConfigurationError: Describing every problem found
        """
        problems: list[str] = []
        any_available = bool(registry.available())

        for complexity in ComplexityTier:
            for pressure in CostPressure:
                names = self.candidates(complexity, pressure)
                unknown = [n for n in names if n not in registry]
                if unknown:
                    problems.append(
                        f"{complexity.value}/{pressure.value} names unknown providers: {', '.join(unknown)}"
                    )
                if any_available and not any(registry.is_available(n) for n in names):
                    problems.append(
                        f"{complexity.value}/{pressure.value} has no available provider"
                    )

        if problems:
            raise PolicyConfigurationError("Invalid routing policy: " + "; ".join(problems))

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        return {
            complexity.value: {pressure.value: list(names) for pressure, names in row.items()}
            for complexity, row in self._table.items()
        }
