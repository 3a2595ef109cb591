"""
Content-mix metrics: category distribution and most frequent channels.

Storage keeps one entry per (video, phase) observation, so these metrics
first collapse the entries to one per video.
"""
from __future__ import annotations

from collections import Counter
from typing import List, Sequence, Tuple

from echobreaker.config import TOP_TOPICS_LIMIT
from echobreaker.core.aggregation import apportion_percentages
from echobreaker.models import CategoryShare, ClassifiedVideo


def distinct_videos(videos: Sequence[ClassifiedVideo]) -> List[ClassifiedVideo]:
    """
    One entry per video_id; the latest observation wins, first-seen order is kept.
    """
    return list({video.video_id: video for video in videos}.values())


def category_distribution(videos: Sequence[ClassifiedVideo]) -> Tuple[CategoryShare, ...]:
    """
    Share of each category among distinct videos that carry one.

    Args:
        videos: Classified videos, possibly with repeated video ids

    Returns:
        CategoryShare tuples ordered by count, then name. Percentages sum to
        100 when any video has a category; empty otherwise.
    """
    counts = Counter(
        video.category.strip()
        for video in distinct_videos(videos)
        if video.category and video.category.strip()
    )
    total = sum(counts.values())
    if not total:
        return ()

    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    percentages = apportion_percentages({name: count / total * 100 for name, count in ordered})
    return tuple(CategoryShare(name, count, percentages[name]) for name, count in ordered)


def top_topics(videos: Sequence[ClassifiedVideo], limit: int = TOP_TOPICS_LIMIT) -> Tuple[str, ...]:
    """Most frequent channel names among distinct videos, ties in first-seen order."""
    counts = Counter(video.channel_name for video in distinct_videos(videos) if video.channel_name)
    return tuple(name for name, _ in counts.most_common(max(0, limit)))
