"""
Watch history vs. home feed comparison.

Separates what the user picked (watch history) from what the recommendation
system served unprompted (home feed), so imbalance can be attributed to one
or the other. Other phases still count toward the overall breakdown but are
left out here.
"""
from __future__ import annotations

from typing import Iterable, List

from echobreaker.core.aggregation import aggregate_videos
from echobreaker.core.scoring import entropy_score
from echobreaker.models import ClassifiedVideo, SourceComparison, SubsetMetrics


def subset_metrics(videos: List[ClassifiedVideo]) -> SubsetMetrics:
    """
    Aggregate and score one subset of videos.

    Args:
        videos: Videos of a single source phase (may be empty)

    Returns:
        SubsetMetrics; an empty subset reports count 0 and a zero breakdown
    """
    breakdown = aggregate_videos(videos)
    return SubsetMetrics(
        count=len(videos),
        entropy_score=entropy_score(breakdown),
        stance_breakdown=breakdown,
    )


def compare_sources(videos: Iterable[ClassifiedVideo]) -> SourceComparison:
    """
    Compare diversity of watch-history and home-feed content.

    Args:
        videos: All classified videos of the analysis

    Returns:
        SourceComparison with independent metrics per subset
    """
    watch_history: List[ClassifiedVideo] = []
    home_feed: List[ClassifiedVideo] = []

    for video in videos:
        if video.is_watch_history:
            watch_history.append(video)
        elif video.is_home_feed:
            home_feed.append(video)

    return SourceComparison(
        watch_history=subset_metrics(watch_history),
        home_feed=subset_metrics(home_feed),
    )
