"""
Analysis result assembly.

The single entry point of the engine: composes weighting, aggregation,
scoring, source comparison and recommendation selection into one immutable
AnalysisResult plus its recommendations.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from echobreaker.config import DEFAULT_RECOMMENDATION_LIMIT
from echobreaker.core.aggregation import aggregate_videos
from echobreaker.core.comparison import compare_sources
from echobreaker.core.recommendations import select_recommendations
from echobreaker.core.scoring import entropy_score, leaning_label, leaning_score
from echobreaker.core.topics import category_distribution, distinct_videos, top_topics
from echobreaker.models import AnalysisResult, ClassifiedVideo, Recommendation, SourceComparison
from echobreaker.utils import now_utc

logger = logging.getLogger(__name__)


def build_summary(
    total: int,
    political: int,
    entropy: int,
    comparison: SourceComparison,
    partial: bool,
    channel_count: int = 0,
) -> str:
    """
    Build a short plain-text summary of an analysis.

    Args:
        total: Number of analyzed videos
        political: Number of videos with a political dominant stance
        entropy: Overall entropy score
        comparison: Watch history vs. home feed metrics
        partial: Whether the classification batch was cut short
        channel_count: Number of distinct channels among the analyzed videos

    Returns:
        Summary sentence(s)
    """
    if total == 0:
        return "No classified videos to analyze yet."

    parts = [f"Analyzed {total} videos, {political} of them political. Viewpoint diversity {entropy}/100."]
    if channel_count:
        parts.append(f"Videos come from {channel_count} channel{'' if channel_count == 1 else 's'}.")

    history, feed = comparison.watch_history, comparison.home_feed
    if history.count and feed.count:
        if feed.entropy_score < history.entropy_score:
            parts.append(
                f"Your home feed ({feed.entropy_score}) is less diverse than what you choose to watch "
                f"({history.entropy_score})."
            )
        elif feed.entropy_score > history.entropy_score:
            parts.append(
                f"What you choose to watch ({history.entropy_score}) is less diverse than your home feed "
                f"({feed.entropy_score})."
            )
        else:
            parts.append(f"Home feed and watch history are equally diverse ({feed.entropy_score}).")

    if partial:
        parts.append("Classification was interrupted; results cover a partial batch.")

    return " ".join(parts)


def analyze(
    classified_videos: Sequence[ClassifiedVideo],
    candidate_pool: Sequence[ClassifiedVideo] = (),
    recommendation_limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    *,
    partial: bool = False,
    skipped_count: int = 0,
    failed_count: int = 0,
    analyzed_at: Optional[datetime] = None,
) -> Tuple[AnalysisResult, List[Recommendation]]:
    """
    Analyze a snapshot of classified videos.

    Args:
        classified_videos: All active classified videos of the user
        candidate_pool: Classified videos eligible as counter-recommendations
        recommendation_limit: Maximum number of recommendations
        partial: Whether the ingestion batch was cancelled before finishing
        skipped_count: Videos rejected for malformed distributions
        failed_count: Videos whose classification failed
        analyzed_at: Timestamp of the result (defaults to now)

    Returns:
        Tuple of (AnalysisResult, recommendations). Identical inputs and
        timestamp give identical output.
    """
    videos = list(classified_videos)

    breakdown = aggregate_videos(videos)
    entropy = entropy_score(breakdown)
    bias = leaning_score(breakdown)
    comparison = compare_sources(videos)
    political = sum(1 for video in videos if video.distribution.is_political)
    channels = {video.channel_name for video in distinct_videos(videos) if video.channel_name}

    # Don't suggest what the user has already watched
    watched_ids = {video.video_id for video in videos if video.is_watch_history}
    candidates = [video for video in candidate_pool if video.video_id not in watched_ids]
    recommendations = select_recommendations(breakdown, candidates, recommendation_limit)

    result = AnalysisResult(
        bias_score=bias,
        entropy_score=entropy,
        stance_breakdown=breakdown,
        source_comparison=comparison,
        political_video_count=political,
        total_video_count=len(videos),
        political_leaning=leaning_label(bias),
        summary=build_summary(len(videos), political, entropy, comparison, partial, len(channels)),
        analyzed_at=analyzed_at or now_utc(),
        partial=partial,
        skipped_count=skipped_count,
        failed_count=failed_count,
        categories=category_distribution(videos),
        top_topics=top_topics(videos),
    )

    logger.info(
        "Analysis: %d videos (%d political), bias=%d entropy=%d, %d recommendations",
        len(videos), political, bias, entropy, len(recommendations),
    )
    return result, recommendations
