"""Verdict classification and rubrics for multi-provider validation."""

from switchboard.core.llm.quality.verdicts import (
    RUBRICS,
    ValidationType,
    VerdictPredicate,
    build_validation_prompt,
    default_verdict,
    explicit_verdict,
    no_failure_indicator,
    rubric_for,
)

__all__ = [
    "RUBRICS",
    "ValidationType",
    "VerdictPredicate",
    "build_validation_prompt",
    "default_verdict",
    "explicit_verdict",
    "no_failure_indicator",
    "rubric_for",
]
