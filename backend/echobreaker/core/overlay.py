"""
Echo-chamber overlay for individual videos.

Given the user's classified videos, flags each requested video as reinforcing
the user's dominant stance (echo chamber) or presenting the opposite pole
(diverse). Centrist content is neither.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from echobreaker.config import DOMINANCE_SHARE, MIN_POLITICAL_FOR_DOMINANCE
from echobreaker.core.topics import distinct_videos
from echobreaker.models import (
    CENTRIST,
    CONSERVATIVE,
    POLITICAL_BUCKETS,
    PROGRESSIVE,
    ClassifiedVideo,
    StanceDistribution,
)

OPPOSITES = {PROGRESSIVE: CONSERVATIVE, CONSERVATIVE: PROGRESSIVE}


@dataclass(frozen=True)
class VideoStance:
    video_id: str
    stance: str
    distribution: StanceDistribution
    is_echo_chamber: bool = False
    is_diverse: bool = False


@dataclass(frozen=True)
class StanceOverlay:
    stances: Dict[str, VideoStance]
    dominant_stance: Optional[str]
    total_analyzed: int
    total_political: int


def political_counts(videos: Iterable[ClassifiedVideo]) -> Dict[str, int]:
    """Distinct videos per political dominant stance."""
    counts = {bucket: 0 for bucket in POLITICAL_BUCKETS}
    for video in distinct_videos(list(videos)):
        bucket, _ = video.distribution.dominant()
        if bucket in counts:
            counts[bucket] += 1
    return counts


def dominant_stance(videos: Sequence[ClassifiedVideo]) -> Optional[str]:
    """
    Political stance held by a strict majority of the user's political videos.

    Returns None below MIN_POLITICAL_FOR_DOMINANCE political videos or when no
    stance exceeds DOMINANCE_SHARE of them.
    """
    counts = political_counts(videos)
    total = sum(counts.values())
    if total < MIN_POLITICAL_FOR_DOMINANCE:
        return None

    leader = max(POLITICAL_BUCKETS, key=lambda bucket: counts[bucket])
    if counts[leader] > total * DOMINANCE_SHARE:
        return leader
    return None


def overlay_stances(videos: Sequence[ClassifiedVideo], video_ids: Iterable[str]) -> StanceOverlay:
    """
    Build the overlay for the requested videos.

    Videos that were never classified are left out of the result.
    """
    unique = distinct_videos(videos)
    dominant = dominant_stance(unique)
    by_id = {video.video_id: video for video in unique}
    stances: Dict[str, VideoStance] = {}

    for video_id in video_ids:
        video = by_id.get(video_id)
        if video is None:
            continue

        stance, _ = video.distribution.dominant()
        echo = diverse = False
        if dominant and stance in POLITICAL_BUCKETS and stance != CENTRIST:
            echo = stance == dominant
            diverse = OPPOSITES.get(dominant) == stance

        stances[video_id] = VideoStance(
            video_id=video_id,
            stance=stance,
            distribution=video.distribution,
            is_echo_chamber=echo,
            is_diverse=diverse,
        )

    counts: List[int] = list(political_counts(unique).values())
    return StanceOverlay(
        stances=stances,
        dominant_stance=dominant,
        total_analyzed=len(unique),
        total_political=sum(counts),
    )
