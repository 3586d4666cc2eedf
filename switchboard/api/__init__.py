"""Switchboard HTTP API.

Thin handlers over the routing service: they validate input, call one
service operation and format the JSON response.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, status
from pydantic import BaseModel, Field

from switchboard import __version__
from switchboard.core.llm import (
    AllProvidersFailed,
    ComplexityTier,
    NoProviderAvailable,
    RoutingService,
    get_routing_service,
)
from switchboard.core.llm.quality import ValidationType

# =============================================================================
# Request Models
# =============================================================================


class RouteRequest(BaseModel):
    """Request for a single routed completion."""

    prompt: str = Field(..., min_length=1, max_length=100000, description="Prompt text")
    complexity: ComplexityTier = Field(default=ComplexityTier.MEDIUM, description="Task complexity")
    max_tokens: int | None = Field(default=None, gt=0, le=64000)


class RouteResponse(BaseModel):
    """Routed completion."""

    text: str
    provider: str
    model: str
    tokens_used: int
    pressure: str
    attempts: list[dict[str, Any]] = Field(default_factory=list)


class FanOutRequest(BaseModel):
    """Request to query several providers at once."""

    prompt: str = Field(..., min_length=1, max_length=100000)
    providers: list[str] = Field(..., min_length=1, max_length=16)
    deadline_ms: int | None = Field(default=None, gt=0, le=600000)


class FanOutEntry(BaseModel):
    provider: str
    text: str | None = None
    error: str | None = None
    latency_ms: float
    deadline_exceeded: bool = False


class FanOutApiResponse(BaseModel):
    """Per-provider results plus the merged answer."""

    results: list[FanOutEntry]
    synthesized_text: str | None
    deadline_exceeded: bool


class ValidateRequest(BaseModel):
    """Request for multi-provider validation."""

    content: str = Field(..., min_length=1, max_length=100000)
    rubric: str | None = Field(default=None, max_length=10000, description="Free-form criteria")
    validation_type: ValidationType | None = Field(default=None, description="Canned rubric")
    providers: list[str] | None = Field(default=None, max_length=16)
    deadline_ms: int | None = Field(default=None, gt=0, le=600000)
    with_consensus: bool = False


class ValidateResponse(BaseModel):
    pass_rate: float
    threshold: float
    passed: bool
    verdicts: list[dict[str, Any]]
    consensus: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = __version__
    providers_available: int = 0


# =============================================================================
# FastAPI App
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the routing service before serving.

    A routing policy that leaves a cell without an available provider
    raises PolicyConfigurationError here and aborts startup.
    """
    if app.state.service is None:
        app.state.service = get_routing_service()
    yield


app = FastAPI(
    title="Switchboard API",
    description="Cost-aware routing, fan-out and validation across LLM providers.",
    version=__version__,
    docs_url="/docs" if os.getenv("SWITCHBOARD_ENV", "development") == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# Set by lifespan at startup; tests may install their own service first
app.state.service = None


def get_service(request: Request) -> RoutingService:
    """Resolve the routing service for a request."""
    return request.app.state.service


# =============================================================================
# Endpoints
# =============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(service: RoutingService = Depends(get_service)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(providers_available=len(service.registry.available()))


@app.get("/status", tags=["Routing"])
async def routing_status(service: RoutingService = Depends(get_service)) -> dict[str, Any]:
    """Provider availability, cost pressure and per-tier recommendations."""
    return service.status()


@app.get("/budget", tags=["Routing"])
async def budget_status(service: RoutingService = Depends(get_service)) -> dict[str, Any]:
    """Spend for the current billing period."""
    return {
        **service.governor.budget_status(),
        "health_score": round(service.governor.health_score(), 1),
        "usage": service.governor.usage_stats(),
    }


@app.post("/route", response_model=RouteResponse, tags=["Routing"])
async def route(
    request: RouteRequest,
    service: RoutingService = Depends(get_service),
) -> RouteResponse:
    """Generate a completion with the best available provider."""
    try:
        result = await service.route(request.prompt, request.complexity, request.max_tokens)
    except NoProviderAvailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "no_provider_available", "message": str(e)},
        ) from e
    except AllProvidersFailed as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": "all_providers_failed",
                "attempts": [
                    {"provider": a.provider, "outcome": a.outcome.value, "reason": a.error}
                    for a in e.attempts
                ],
            },
        ) from e

    return RouteResponse(
        text=result.text,
        provider=result.provider,
        model=result.model,
        tokens_used=result.tokens_used,
        pressure=result.pressure.value,
        attempts=[
            {"provider": a.provider, "outcome": a.outcome.value, "latency_ms": round(a.latency_ms, 1)}
            for a in result.attempts
        ],
    )


@app.post("/fan-out", response_model=FanOutApiResponse, tags=["Orchestration"])
async def fan_out(
    request: FanOutRequest,
    service: RoutingService = Depends(get_service),
) -> FanOutApiResponse:
    """Query several providers concurrently and synthesize their answers."""
    response = await service.fan_out(request.prompt, request.providers, request.deadline_ms)
    return FanOutApiResponse(
        results=[
            FanOutEntry(
                provider=r.provider,
                text=r.text,
                error=r.error,
                latency_ms=round(r.latency_ms, 1),
                deadline_exceeded=r.deadline_exceeded,
            )
            for r in response.results
        ],
        synthesized_text=response.synthesized_text,
        deadline_exceeded=response.deadline_exceeded,
    )


@app.post("/validate", response_model=ValidateResponse, tags=["Orchestration"])
async def validate(
    request: ValidateRequest,
    service: RoutingService = Depends(get_service),
) -> ValidateResponse:
    """Validate content with a multi-provider vote."""
    rubric = request.rubric or request.validation_type
    if rubric is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Either rubric or validation_type is required",
        )

    report = await service.validate(
        request.content,
        rubric,
        request.providers,
        deadline_ms=request.deadline_ms,
        with_consensus=request.with_consensus,
    )
    return ValidateResponse(
        pass_rate=report.pass_rate,
        threshold=report.threshold,
        passed=report.passed,
        verdicts=[
            {"provider": v.provider, "passed": v.passed, "feedback": v.feedback}
            for v in report.verdicts
        ],
        consensus=report.consensus,
    )
