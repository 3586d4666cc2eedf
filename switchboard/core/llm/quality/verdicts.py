"""Verdict classification for parallel validation.

A verdict predicate looks at one provider's free-form judgment and
decides pass or fail. Predicates are plain callables so callers can plug
in their own rule.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from enum import Enum

VerdictPredicate = Callable[[str], bool]

_FAILURE_INDICATOR = re.compile(
    r"\b(error|errors|fail|fails|failed|failure|invalid|reject|rejected)\b",
    re.IGNORECASE,
)


def no_failure_indicator(text: str) -> bool:
    """Pass unless the judgment mentions an error or failure."""
    return bool(text.strip()) and _FAILURE_INDICATOR.search(text) is None


def explicit_verdict(
    pass_token: str = "PASS",
    fail_token: str = "FAIL",
) -> VerdictPredicate:
    """Predicate for judgments that end with an explicit ``VERDICT: PASS|FAIL`` line.

    The last verdict token in the text wins; text without one fails.
    """
    pattern = re.compile(
        rf"VERDICT\s*:\s*({re.escape(pass_token)}|{re.escape(fail_token)})\b",
        re.IGNORECASE,
    )

    def predicate(text: str) -> bool:
        matches = pattern.findall(text)
        return bool(matches) and matches[-1].upper() == pass_token.upper()

    return predicate


_VERDICT_LINE = re.compile(r"VERDICT\s*:\s*(PASS|FAIL)\b", re.IGNORECASE)


def default_verdict(text: str) -> bool:
    """Use an explicit VERDICT line when present, else look for failure words."""
    matches = _VERDICT_LINE.findall(text)
    if matches:
        return matches[-1].upper() == "PASS"
    return no_failure_indicator(text)


class ValidationType(str, Enum):
    """Canned validation rubrics."""

    TECHNICAL = "technical"
    BUSINESS = "business"
    FINANCIAL = "financial"
    STRATEGIC = "strategic"
    FEASIBILITY = "feasibility"


RUBRICS: dict[ValidationType, str] = {
    ValidationType.TECHNICAL: (
        "Validate this technical content for accuracy, feasibility, and best practices."
    ),
    ValidationType.BUSINESS: (
        "Validate this business concept for viability, market fit, and strategic value."
    ),
    ValidationType.FINANCIAL: (
        "Validate this financial plan for soundness, projections, and risk assessment."
    ),
    ValidationType.STRATEGIC: (
        "Validate this strategy for coherence, alignment, and execution feasibility."
    ),
    ValidationType.FEASIBILITY: (
        "Validate the overall feasibility and practicality of implementation."
    ),
}


def rubric_for(validation_type: ValidationType | str) -> str:
    return RUBRICS[ValidationType(validation_type)]


def build_validation_prompt(content: str, rubric: str) -> str:
    """Prompt asking a provider to judge ``content`` against ``rubric``."""
    return f"""{rubric}

CONTENT TO VALIDATE:
{content}

Assess the content against the criteria above. If it has problems, name each
one and state that the content fails validation. Finish with a single line:
VERDICT: PASS or VERDICT: FAIL"""
