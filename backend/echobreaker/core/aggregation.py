"""
Weighted stance aggregation.

Folds (distribution, weight) pairs into a StanceBreakdown whose integer
percentages always sum to exactly 100 when there is any weighted mass.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Tuple

from echobreaker.models import (
    STANCE_BUCKETS,
    BucketShare,
    ClassifiedVideo,
    StanceBreakdown,
    StanceDistribution,
)
from echobreaker.utils import round_half_up

WeightedDistribution = Tuple[StanceDistribution, float]


def apportion_percentages(exact: Dict[str, float]) -> Dict[str, int]:
    """
    Round exact percentages half-up, then push the residual onto the buckets
    with the largest fractional remainders until the total is 100.
    """
    # Trim float noise so 12.4999999 rounds like 12.5
    exact = {bucket: round(value, 9) for bucket, value in exact.items()}
    rounded = {bucket: round_half_up(value) for bucket, value in exact.items()}
    remainders = {bucket: value - math.floor(value) for bucket, value in exact.items()}

    residual = 100 - sum(rounded.values())
    if residual > 0:
        # Largest remainder first; stable sort keeps bucket order on ties
        order = sorted(
            (b for b in exact if rounded[b] <= exact[b]),
            key=lambda b: remainders[b],
            reverse=True,
        )
        for bucket in order[:residual]:
            rounded[bucket] += 1
    elif residual < 0:
        # Take points back from rounded-up buckets that were closest to rounding down
        order = sorted(
            (b for b in exact if rounded[b] > exact[b]),
            key=lambda b: remainders[b],
        )
        for bucket in order[:-residual]:
            rounded[bucket] -= 1

    return rounded


def aggregate(pairs: Iterable[WeightedDistribution]) -> StanceBreakdown:
    """
    Aggregate weighted stance distributions into a breakdown.

    Args:
        pairs: (StanceDistribution, weight) pairs; may be empty

    Returns:
        StanceBreakdown with weighted counts and percentages. An empty input
        or zero total weight yields the all-zero breakdown.
    """
    counts: Dict[str, float] = {bucket: 0.0 for bucket in STANCE_BUCKETS}
    total_mass = 0.0

    for distribution, weight in pairs:
        if weight <= 0:
            continue
        total_mass += weight
        for bucket in STANCE_BUCKETS:
            counts[bucket] += distribution.get(bucket) * weight

    if total_mass <= 0:
        return StanceBreakdown.empty()

    exact = {bucket: counts[bucket] / total_mass * 100 for bucket in STANCE_BUCKETS}
    percentages = apportion_percentages(exact)

    shares = {
        bucket: BucketShare(count=round(counts[bucket], 4), percentage=percentages[bucket])
        for bucket in STANCE_BUCKETS
    }
    return StanceBreakdown(**shares)


def aggregate_videos(videos: Iterable[ClassifiedVideo]) -> StanceBreakdown:
    """
    Aggregate classified videos using their significance weights.

    Args:
        videos: Classified videos

    Returns:
        StanceBreakdown over all given videos
    """
    pairs: List[WeightedDistribution] = [
        (video.distribution, float(video.significance_weight)) for video in videos
    ]
    return aggregate(pairs)
