"""Multi-provider orchestration.

Fans one prompt out to several providers concurrently and combines the
answers: synthesis merges successful outputs into one response, parallel
validation turns each provider's judgment into a pass/fail vote.

Per-provider failures are reported as data. Fan-out itself never raises.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from switchboard.core.llm.adapters.registry import ProviderRegistry
from switchboard.core.llm.cost_governor import CostGovernor
from switchboard.core.llm.errors import ProviderError
from switchboard.core.llm.quality import (
    ValidationType,
    VerdictPredicate,
    build_validation_prompt,
    default_verdict,
    rubric_for,
)
from switchboard.core.llm.types import (
    FanOutResponse,
    FanOutResult,
    Provider,
    ValidationReport,
    ValidationVerdict,
)

logger = logging.getLogger(__name__)

# Returned instead of text when no provider produced a usable answer
NO_CONSENSUS = "[NO CONSENSUS] No provider returned a usable response."


class Orchestrator:
    """Concurrent fan-out with synthesis and parallel validation.

    Usage:
        orchestrator = Orchestrator(registry, governor, synthesis_provider="anthropic")
        response = await orchestrator.fan_out_and_synthesize(prompt, ["groq", "openai"], deadline=20)
        report = await orchestrator.parallel_validate(plan, ValidationType.TECHNICAL)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        governor: CostGovernor | None = None,
        synthesis_provider: str = "anthropic",
        validation_threshold: float = 0.7,
        default_deadline: float = 30.0,
        max_tokens: int = 4000,
    ):
        if not 0.0 <= validation_threshold <= 1.0:
            raise ValueError("validation_threshold must be within [0, 1]")
        self._registry = registry
        self._governor = governor
        self._synthesis_provider = synthesis_provider
        self._validation_threshold = validation_threshold
        self._default_deadline = default_deadline
        self._max_tokens = max_tokens

    @property
    def synthesis_provider(self) -> str:
        return self._synthesis_provider

    # -------------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------------

    async def fan_out(
        self,
        prompt: str,
        providers: Sequence[str],
        deadline: float | None = None,
    ) -> FanOutResponse:
        """Send ``prompt`` to every listed provider concurrently.

        Waits until every call finishes or ``deadline`` seconds elapse.
        Calls still running at the deadline are cancelled without being
        awaited and reported with ``deadline_exceeded``. Results keep the
        order of ``providers``.
        """
        deadline = self._default_deadline if deadline is None else deadline
        start = time.perf_counter()

        results: list[FanOutResult | None] = [None] * len(providers)
        tasks: dict[asyncio.Task[FanOutResult], int] = {}

        for index, name in enumerate(providers):
            provider = self._registry.get(name)
            if provider is None:
                results[index] = FanOutResult(provider=name, error="unknown provider")
            elif not provider.available:
                results[index] = FanOutResult(provider=name, error="provider not configured")
            else:
                task = asyncio.create_task(self._generate(provider, prompt), name=f"fan-out:{name}")
                tasks[task] = index

        pending: set[asyncio.Task[FanOutResult]] = set()
        if tasks:
            try:
                done, pending = await asyncio.wait(set(tasks), timeout=deadline)
            except asyncio.CancelledError:
                # Caller went away; no call may outlive the request
                for task in tasks:
                    task.cancel()
                raise
            for task in done:
                results[tasks[task]] = task.result()

        elapsed_ms = (time.perf_counter() - start) * 1000
        for task in pending:
            # Best-effort: the task is not awaited and any late result is dropped
            task.cancel()
            index = tasks[task]
            results[index] = FanOutResult(
                provider=providers[index],
                error=f"deadline of {deadline:.2f}s exceeded",
                latency_ms=elapsed_ms,
                deadline_exceeded=True,
            )

        response = FanOutResponse(
            results=[r for r in results if r is not None],
            deadline_exceeded=bool(pending),
        )
        logger.info(
            "Fan-out to %d provider(s): %d succeeded, %d abandoned at deadline (%.0fms)",
            len(providers),
            len(response.successful),
            len(pending),
            elapsed_ms,
        )
        return response

    async def _generate(self, provider: Provider, prompt: str) -> FanOutResult:
        """One fan-out call; every failure becomes data."""
        start = time.perf_counter()
        try:
            generation = await self._registry.client_for(provider.name).generate(
                prompt,
                model=provider.model,
                max_tokens=self._max_tokens,
            )
        except ProviderError as e:
            logger.warning("Fan-out call to %s failed: %s", provider.name, e.message)
            return FanOutResult(
                provider=provider.name,
                error=e.message,
                latency_ms=(time.perf_counter() - start) * 1000,
            )
        except Exception as e:
            logger.exception("Unexpected error from provider %s during fan-out", provider.name)
            return FanOutResult(
                provider=provider.name,
                error=f"{type(e).__name__}: {e}",
                latency_ms=(time.perf_counter() - start) * 1000,
            )

        if self._governor is not None:
            self._governor.record_usage(provider, generation.tokens_used)

        return FanOutResult(
            provider=provider.name,
            text=generation.text,
            tokens_used=generation.tokens_used,
            latency_ms=(time.perf_counter() - start) * 1000,
            succeeded=True,
        )

    # -------------------------------------------------------------------------
    # Synthesis
    # -------------------------------------------------------------------------

    async def synthesize(
        self,
        results: Sequence[FanOutResult],
        prompt: str | None = None,
    ) -> str:
        """Merge successful fan-out outputs into one answer.

        No successes gives NO_CONSENSUS; one success is returned verbatim
        without a call; several cost exactly one call to the synthesis
        provider. If that call fails, the first successful output is used.
        """
        successful = [r for r in results if r.succeeded and r.text is not None]

        if not successful:
            return NO_CONSENSUS
        if len(successful) == 1:
            return successful[0].text or ""

        synthesis_prompt = self._build_synthesis_prompt(successful, prompt)
        text = await self._call_synthesis_provider(synthesis_prompt)
        if text is None:
            logger.warning(
                "Synthesis unavailable; returning output from %s", successful[0].provider
            )
            return successful[0].text or ""
        return text

    async def fan_out_and_synthesize(
        self,
        prompt: str,
        providers: Sequence[str],
        deadline: float | None = None,
    ) -> FanOutResponse:
        """Fan out, then merge whatever came back."""
        response = await self.fan_out(prompt, providers, deadline)
        response.synthesized_text = await self.synthesize(response.results, prompt)
        return response

    def _build_synthesis_prompt(
        self,
        results: Sequence[FanOutResult],
        prompt: str | None,
    ) -> str:
        perspectives = "\n---\n".join(
            f"Response {i} (source: {r.provider}):\n{r.text}"
            for i, r in enumerate(results, start=1)
        )
        question = f"ORIGINAL REQUEST:\n{prompt}\n\n" if prompt else ""

        return f"""{question}Synthesize these responses from different AI models into one unified answer.

{perspectives}

Combine the best ideas, resolve conflicts between them, and give a single
comprehensive response."""

    async def _call_synthesis_provider(self, prompt: str) -> str | None:
        provider = self._registry.get(self._synthesis_provider)
        if provider is None or not provider.available:
            logger.warning("Synthesis provider %s is not available", self._synthesis_provider)
            return None

        try:
            generation = await self._registry.client_for(provider.name).generate(
                prompt,
                model=provider.model,
                max_tokens=self._max_tokens,
            )
        except ProviderError as e:
            logger.warning("Synthesis call to %s failed: %s", provider.name, e.message)
            return None
        except Exception:
            logger.exception("Unexpected error from synthesis provider %s", provider.name)
            return None

        if self._governor is not None:
            self._governor.record_usage(provider, generation.tokens_used)
        return generation.text

    # -------------------------------------------------------------------------
    # Parallel validation
    # -------------------------------------------------------------------------

    async def parallel_validate(
        self,
        content: str,
        rubric: str | ValidationType,
        providers: Sequence[str] | None = None,
        deadline: float | None = None,
        predicate: VerdictPredicate | None = None,
        threshold: float | None = None,
        with_consensus: bool = False,
    ) -> ValidationReport:
        """Ask several providers to judge ``content`` and aggregate the votes.

        Args:
            content: The artifact to validate
            rubric: Validation criteria, or a canned ValidationType
            providers: Provider names (defaults to every available provider)
            deadline: Fan-out deadline in seconds
            predicate: Classifies one judgment as pass/fail
            threshold: Minimum pass rate (defaults to the configured one)
            with_consensus: Also summarize the verdicts with one synthesis call

        Returns:
            ValidationReport; providers that errored or timed out count as
            failed votes, not as abstentions
        """
        if isinstance(rubric, ValidationType):
            rubric = rubric_for(rubric)
        predicate = predicate or default_verdict
        threshold = self._validation_threshold if threshold is None else threshold
        if providers is None:
            providers = [p.name for p in self._registry.available()]

        response = await self.fan_out(build_validation_prompt(content, rubric), providers, deadline)

        verdicts = [
            ValidationVerdict(
                provider=r.provider,
                passed=r.succeeded and predicate(r.text or ""),
                feedback=r.text if r.succeeded and r.text is not None else f"Error: {r.error}",
                latency_ms=r.latency_ms,
            )
            for r in response.results
        ]
        passes = sum(1 for v in verdicts if v.passed)
        pass_rate = passes / len(verdicts) if verdicts else 0.0

        report = ValidationReport(
            pass_rate=pass_rate,
            threshold=threshold,
            passed=bool(verdicts) and pass_rate >= threshold,
            verdicts=verdicts,
        )
        logger.info(
            "Parallel validation: %d/%d passed (rate %.2f, threshold %.2f)",
            passes,
            len(verdicts),
            pass_rate,
            threshold,
        )

        if with_consensus:
            report.consensus = await self.build_consensus(verdicts)
        return report

    async def build_consensus(self, verdicts: Sequence[ValidationVerdict]) -> str:
        """Summarize validation feedback into one statement."""
        if not verdicts:
            return NO_CONSENSUS

        feedback = "\n\n".join(
            f"{v.provider} ({'pass' if v.passed else 'fail'}): {v.feedback}" for v in verdicts
        )
        prompt = f"""Build consensus from these validation results:

{feedback}

Provide a unified validation summary."""

        text = await self._call_synthesis_provider(prompt)
        if text is None:
            passes = sum(1 for v in verdicts if v.passed)
            return f"{passes} of {len(verdicts)} validators passed the content."
        return text
