"""
Error types raised at the ingestion and persistence boundaries.

The scoring engine itself never raises for structurally valid input; these
exceptions only surface while validating classifier output, calling the
classifier, or looking up stored records.
"""
from __future__ import annotations

from typing import Mapping, Optional


class EchoBreakerError(Exception):
    """Base class for application errors."""


class MalformedDistribution(EchoBreakerError, ValueError):
    """A stance distribution that is negative or does not sum to one."""

    def __init__(self, message: str, values: Optional[Mapping[str, object]] = None):
        super().__init__(message)
        self.values = dict(values) if values is not None else {}


class ClassificationFailure(EchoBreakerError):
    """The stance classifier errored or timed out for a video."""

    def __init__(self, video_id: str, reason: str):
        super().__init__(f"classification failed for {video_id}: {reason}")
        self.video_id = video_id
        self.reason = reason


class RecommendationNotFound(EchoBreakerError, KeyError):
    """No stored recommendation carries the requested id."""

    def __init__(self, recommendation_id: str):
        super().__init__(recommendation_id)
        self.recommendation_id = recommendation_id

    def __str__(self) -> str:
        return f"recommendation not found: {self.recommendation_id}"


__all__ = [
    "EchoBreakerError",
    "MalformedDistribution",
    "ClassificationFailure",
    "RecommendationNotFound",
]
