"""
Counter-recommendation selection.

Picks a bounded set of candidate videos whose dominant stance is
underrepresented in the user's feed, cycling through the underrepresented
buckets so that no single corrective stance crowds out the others.
"""
from __future__ import annotations

from collections import deque
from typing import Deque, Dict, Iterable, List, Tuple

from echobreaker.config import BALANCE_TOLERANCE, CONFIDENCE_FLOOR
from echobreaker.models import (
    POLITICAL_BUCKETS,
    ClassifiedVideo,
    Recommendation,
    StanceBreakdown,
)

EVEN_SPLIT = 100 / len(POLITICAL_BUCKETS)


def underrepresented_buckets(
    breakdown: StanceBreakdown,
    tolerance: float = BALANCE_TOLERANCE,
) -> List[str]:
    """
    Political buckets sitting below an even split, most underrepresented first.

    Args:
        breakdown: Current aggregate breakdown
        tolerance: Percentage points below the even split still treated as balanced

    Returns:
        Bucket names ordered by ascending percentage; empty when the breakdown
        carries no mass at all
    """
    if breakdown.total_count <= 0:
        return []

    short = [
        bucket for bucket in POLITICAL_BUCKETS
        if breakdown.percentage(bucket) < EVEN_SPLIT - tolerance
    ]
    # Stable sort keeps bucket order on equal percentages
    return sorted(short, key=breakdown.percentage)


def describe_gap(bucket: str, percentage: int) -> str:
    """Reason text stating which bucket a pick corrects and by how much."""
    balanced = round(EVEN_SPLIT)
    gap = balanced - percentage
    return (
        f"{bucket} viewpoints are {percentage}% of your feed vs. a balanced {balanced}% "
        f"({gap} point{'' if gap == 1 else 's'} under)"
    )


def opposing_viewpoint_label(bucket: str) -> str:
    return f"{bucket.capitalize()} perspective"


def _eligible_by_bucket(
    candidates: Iterable[ClassifiedVideo],
    buckets: List[str],
    confidence_floor: float,
) -> Dict[str, Deque[ClassifiedVideo]]:
    """Group confident candidates by dominant bucket, strongest signal first."""
    grouped: Dict[str, List[Tuple[float, ClassifiedVideo]]] = {bucket: [] for bucket in buckets}
    seen: set[str] = set()

    for video in candidates:
        if video.video_id in seen:
            continue
        bucket, probability = video.distribution.dominant()
        if bucket not in grouped or probability < confidence_floor:
            continue
        seen.add(video.video_id)
        grouped[bucket].append((probability, video))

    ordered: Dict[str, Deque[ClassifiedVideo]] = {}
    for bucket, entries in grouped.items():
        entries.sort(key=lambda entry: (-entry[0], entry[1].video_id))
        ordered[bucket] = deque(video for _, video in entries)
    return ordered


def select_recommendations(
    breakdown: StanceBreakdown,
    candidates: Iterable[ClassifiedVideo],
    limit: int,
    confidence_floor: float = CONFIDENCE_FLOOR,
) -> List[Recommendation]:
    """
    Select counter-leaning recommendations.

    Args:
        breakdown: Current aggregate breakdown of the user's feed
        candidates: Classified candidate videos
        limit: Maximum number of recommendations
        confidence_floor: Minimum dominant-stance probability for a candidate

    Returns:
        Ordered recommendations, at most ``limit`` long. Empty when the feed
        is already balanced or nothing qualifies; that is a valid outcome.
    """
    if limit <= 0:
        return []

    buckets = underrepresented_buckets(breakdown)
    if not buckets:
        return []

    queues = _eligible_by_bucket(candidates, buckets, confidence_floor)
    picks: List[Recommendation] = []

    # Round-robin, most underrepresented bucket first
    while len(picks) < limit and any(queues[bucket] for bucket in buckets):
        for bucket in buckets:
            if len(picks) >= limit:
                break
            if not queues[bucket]:
                continue
            video = queues[bucket].popleft()
            picks.append(
                Recommendation(
                    video=video,
                    reason=describe_gap(bucket, breakdown.percentage(bucket)),
                    opposing_viewpoint=opposing_viewpoint_label(bucket),
                    corrected_bucket=bucket,
                )
            )

    return picks
