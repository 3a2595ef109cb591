"""
File: echobreaker/models.py
Internal value objects used during ingestion and analysis.

Everything here is a frozen dataclass: a new classification, analysis or
watched-state produces a new instance instead of editing an existing one.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from echobreaker.config import DEFAULT_SOURCE_PHASE, DISTRIBUTION_TOLERANCE, HOME_FEED, WATCH_HISTORY
from echobreaker.errors import MalformedDistribution


JsonDict = Dict[str, Any]

# Stance buckets, in tie-break order
PROGRESSIVE = "progressive"
CONSERVATIVE = "conservative"
CENTRIST = "centrist"
NON_POLITICAL = "non_political"

STANCE_BUCKETS: Tuple[str, ...] = (PROGRESSIVE, CONSERVATIVE, CENTRIST, NON_POLITICAL)
POLITICAL_BUCKETS: Tuple[str, ...] = (PROGRESSIVE, CONSERVATIVE, CENTRIST)

# Classifier output may use the camelCase or the hyphenated spelling
_BUCKET_ALIASES = {
    "nonPolitical": NON_POLITICAL,
    "non-political": NON_POLITICAL,
}


@dataclass(frozen=True)
class StanceDistribution:
    """Probability that a video holds each stance; the four values sum to 1."""

    progressive: float
    conservative: float
    centrist: float
    non_political: float

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "StanceDistribution":
        """Validate raw classifier output.

        Raises MalformedDistribution for missing, non-numeric or negative
        values and for sums outside 1.0 +/- DISTRIBUTION_TOLERANCE. The values
        are never renormalized.
        """
        if not isinstance(values, Mapping):
            raise MalformedDistribution(f"expected a mapping, got {type(values).__name__}")

        normalized: Dict[str, Any] = {}
        for key, value in values.items():
            normalized[_BUCKET_ALIASES.get(key, key)] = value

        parsed: Dict[str, float] = {}
        for bucket in STANCE_BUCKETS:
            if bucket not in normalized:
                raise MalformedDistribution(f"missing stance bucket '{bucket}'", values)
            raw = normalized[bucket]
            if isinstance(raw, bool):
                raise MalformedDistribution(f"non-numeric value for '{bucket}'", values)
            try:
                number = float(raw)
            except (TypeError, ValueError):
                raise MalformedDistribution(f"non-numeric value for '{bucket}'", values) from None
            if not math.isfinite(number):
                raise MalformedDistribution(f"non-finite value for '{bucket}'", values)
            if number < 0:
                raise MalformedDistribution(f"negative value for '{bucket}': {number}", values)
            parsed[bucket] = number

        total = sum(parsed.values())
        if abs(total - 1.0) > DISTRIBUTION_TOLERANCE:
            raise MalformedDistribution(f"probabilities sum to {total:.6f}, expected 1.0", values)

        return cls(**parsed)

    def get(self, bucket: str) -> float:
        return getattr(self, bucket)

    def dominant(self) -> Tuple[str, float]:
        """Bucket with the highest probability; earlier buckets win ties."""
        best = STANCE_BUCKETS[0]
        for bucket in STANCE_BUCKETS[1:]:
            if self.get(bucket) > self.get(best):
                best = bucket
        return best, self.get(best)

    @property
    def is_political(self) -> bool:
        return self.dominant()[0] != NON_POLITICAL

    def as_dict(self) -> Dict[str, float]:
        return {bucket: self.get(bucket) for bucket in STANCE_BUCKETS}


@dataclass(frozen=True)
class VideoRecord:
    """A collected video before classification."""

    video_id: str
    title: str = ""
    channel_name: str = ""
    channel_id: Optional[str] = None
    source_phase: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category: Optional[str] = None
    tags: Tuple[str, ...] = ()
    collected_at: Optional[datetime] = None


@dataclass(frozen=True)
class SubscriptionRecord:
    channel_id: str
    channel_name: str = ""
    thumbnail_url: Optional[str] = None


@dataclass(frozen=True)
class ClassifiedVideo:
    """A video with its stance distribution and significance weight."""

    video_id: str
    distribution: StanceDistribution
    source_phase: str = DEFAULT_SOURCE_PHASE
    significance_weight: int = 50

    # Display metadata carried through to recommendations
    title: str = ""
    channel_name: str = ""
    thumbnail_url: Optional[str] = None
    category: Optional[str] = None
    classified_at: Optional[datetime] = None

    @property
    def is_watch_history(self) -> bool:
        return self.source_phase == WATCH_HISTORY

    @property
    def is_home_feed(self) -> bool:
        return self.source_phase == HOME_FEED


@dataclass(frozen=True)
class BucketShare:
    count: float = 0.0
    percentage: int = 0


@dataclass(frozen=True)
class StanceBreakdown:
    """Weighted count and integer percentage per stance bucket."""

    progressive: BucketShare = field(default_factory=BucketShare)
    conservative: BucketShare = field(default_factory=BucketShare)
    centrist: BucketShare = field(default_factory=BucketShare)
    non_political: BucketShare = field(default_factory=BucketShare)

    @classmethod
    def empty(cls) -> "StanceBreakdown":
        return cls()

    @classmethod
    def from_percentages(
        cls,
        progressive: int,
        conservative: int,
        centrist: int,
        non_political: int,
    ) -> "StanceBreakdown":
        """Breakdown whose weighted counts equal its percentages."""
        return cls(
            progressive=BucketShare(float(progressive), progressive),
            conservative=BucketShare(float(conservative), conservative),
            centrist=BucketShare(float(centrist), centrist),
            non_political=BucketShare(float(non_political), non_political),
        )

    def share(self, bucket: str) -> BucketShare:
        return getattr(self, bucket)

    def percentage(self, bucket: str) -> int:
        return self.share(bucket).percentage

    def count(self, bucket: str) -> float:
        return self.share(bucket).count

    @property
    def total_count(self) -> float:
        return sum(self.count(bucket) for bucket in STANCE_BUCKETS)

    @property
    def political_count(self) -> float:
        return sum(self.count(bucket) for bucket in POLITICAL_BUCKETS)


@dataclass(frozen=True)
class SubsetMetrics:
    count: int = 0
    entropy_score: int = 0
    stance_breakdown: StanceBreakdown = field(default_factory=StanceBreakdown)


@dataclass(frozen=True)
class SourceComparison:
    """Diversity of user-driven (watch history) vs. algorithm-driven (home feed) content."""

    watch_history: SubsetMetrics = field(default_factory=SubsetMetrics)
    home_feed: SubsetMetrics = field(default_factory=SubsetMetrics)


@dataclass(frozen=True)
class CategoryShare:
    name: str
    count: int
    percentage: int


@dataclass(frozen=True)
class AnalysisResult:
    """Immutable snapshot of one analysis run."""

    bias_score: int
    entropy_score: int
    stance_breakdown: StanceBreakdown
    source_comparison: SourceComparison
    political_video_count: int
    total_video_count: int
    political_leaning: str
    summary: str
    analyzed_at: datetime
    partial: bool = False
    skipped_count: int = 0
    failed_count: int = 0
    categories: Tuple[CategoryShare, ...] = ()
    top_topics: Tuple[str, ...] = ()
    id: Optional[str] = None  # assigned by storage


@dataclass(frozen=True)
class Recommendation:
    """A counter-leaning video suggested to rebalance the feed."""

    video: ClassifiedVideo
    reason: str
    opposing_viewpoint: str
    corrected_bucket: str
    watched: bool = False
    id: Optional[str] = None  # assigned by storage
    created_at: Optional[datetime] = None

    def mark_watched(self) -> "Recommendation":
        return replace(self, watched=True)


@dataclass(frozen=True)
class SkippedVideo:
    video_id: str
    reason: str


@dataclass(frozen=True)
class IngestionBatch:
    """Outcome of classifying one batch of collected videos."""

    classified: Tuple[ClassifiedVideo, ...] = ()
    skipped: Tuple[SkippedVideo, ...] = ()    # malformed distributions
    failed: Tuple[SkippedVideo, ...] = ()     # classifier errors / timeouts
    cancelled: Tuple[SkippedVideo, ...] = ()  # not classified before cancellation
    subscriptions: Tuple[SubscriptionRecord, ...] = ()
    partial: bool = False

    @property
    def received(self) -> int:
        return len(self.classified) + len(self.skipped) + len(self.failed) + len(self.cancelled)

    @property
    def failure_fraction(self) -> float:
        attempted = len(self.classified) + len(self.skipped) + len(self.failed)
        return len(self.failed) / attempted if attempted else 0.0

    def failed_ids(self) -> Tuple[str, ...]:
        return tuple(item.video_id for item in self.failed)


__all__ = [
    "JsonDict",
    "PROGRESSIVE",
    "CONSERVATIVE",
    "CENTRIST",
    "NON_POLITICAL",
    "STANCE_BUCKETS",
    "POLITICAL_BUCKETS",
    "StanceDistribution",
    "VideoRecord",
    "SubscriptionRecord",
    "ClassifiedVideo",
    "BucketShare",
    "StanceBreakdown",
    "SubsetMetrics",
    "SourceComparison",
    "AnalysisResult",
    "Recommendation",
    "SkippedVideo",
    "IngestionBatch",
]
