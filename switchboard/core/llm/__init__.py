"""Provider routing layer.

Model-agnostic routing framework that:
- Routes requests to a provider by task complexity and cost pressure
- Fails over across providers in a fixed, reproducible order
- Fans prompts out to several providers and synthesizes the answers
- Validates content with multi-provider votes
"""

from switchboard.core.llm.types import (
    AttemptOutcome,
    ComplexityTier,
    CostPressure,
    FanOutResponse,
    FanOutResult,
    Generation,
    Provider,
    ProviderTier,
    RouteAttempt,
    RouteResult,
    ValidationReport,
    ValidationVerdict,
)
from switchboard.core.llm.errors import (
    AllProvidersFailed,
    NoProviderAvailable,
    PolicyConfigurationError,
    ProviderError,
    RoutingError,
)
from switchboard.core.llm.adapters import (
    ProviderClient,
    ProviderRegistry,
)
from switchboard.core.llm.cost_governor import (
    CostGovernor,
    CostLedger,
)
from switchboard.core.llm.policy import (
    DEFAULT_ROUTING_TABLE,
    RoutingPolicy,
)
from switchboard.core.llm.router import ProviderRouter
from switchboard.core.llm.orchestrator import (
    NO_CONSENSUS,
    Orchestrator,
)
from switchboard.core.llm.service import (
    RoutingService,
    get_routing_service,
)

__all__ = [
    # Types
    "AttemptOutcome",
    "ComplexityTier",
    "CostPressure",
    "FanOutResponse",
    "FanOutResult",
    "Generation",
    "Provider",
    "ProviderTier",
    "RouteAttempt",
    "RouteResult",
    "ValidationReport",
    "ValidationVerdict",
    # Errors
    "AllProvidersFailed",
    "NoProviderAvailable",
    "PolicyConfigurationError",
    "ProviderError",
    "RoutingError",
    # Providers
    "ProviderClient",
    "ProviderRegistry",
    # Cost
    "CostGovernor",
    "CostLedger",
    # Routing
    "DEFAULT_ROUTING_TABLE",
    "RoutingPolicy",
    "ProviderRouter",
    # Orchestration
    "NO_CONSENSUS",
    "Orchestrator",
    "RoutingService",
    "get_routing_service",
]
