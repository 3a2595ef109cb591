"""
Persistence for classified videos, analyses and recommendations.

The engine only talks to the Storage protocol; MemoryStorage is the in-process
implementation used by the API and the tests. Storage owns identity: it
assigns ids to analyses and recommendations, and a re-classified video
supersedes the previous entry for the same (video_id, source_phase).
"""
from __future__ import annotations

import threading
import uuid
from dataclasses import asdict, replace
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from echobreaker.errors import RecommendationNotFound
from echobreaker.models import (
    AnalysisResult,
    ClassifiedVideo,
    JsonDict,
    Recommendation,
    SubscriptionRecord,
)
from echobreaker.schemas import DashboardStats
from echobreaker.utils import now_utc

VideoKey = Tuple[str, str]


class Storage(Protocol):
    def load_active_classified_videos(self) -> List[ClassifiedVideo]: ...

    def store_classified_videos(self, videos: Sequence[ClassifiedVideo]) -> None: ...

    def store_candidates(self, videos: Sequence[ClassifiedVideo]) -> None: ...

    def load_candidate_pool(self) -> List[ClassifiedVideo]: ...

    def store_subscriptions(self, subscriptions: Sequence[SubscriptionRecord]) -> None: ...

    def store_analysis_result(self, result: AnalysisResult) -> AnalysisResult: ...

    def latest_analysis(self) -> Optional[AnalysisResult]: ...

    def analysis_history(self) -> List[AnalysisResult]: ...

    def store_recommendations(self, recommendations: Sequence[Recommendation]) -> List[Recommendation]: ...

    def list_recommendations(self) -> List[Recommendation]: ...

    def mark_recommendation_watched(self, recommendation_id: str) -> Recommendation: ...

    def stats(self) -> DashboardStats: ...

    def export_all(self) -> JsonDict: ...

    def delete_all(self) -> None: ...


class MemoryStorage:
    """Thread-safe in-memory storage."""

    def __init__(self):
        self._lock = threading.Lock()
        self._videos: Dict[VideoKey, ClassifiedVideo] = {}
        self._candidates: Dict[str, ClassifiedVideo] = {}
        self._subscriptions: Dict[str, SubscriptionRecord] = {}
        self._analyses: List[AnalysisResult] = []
        self._recommendations: Dict[str, Recommendation] = {}

    # Videos

    def load_active_classified_videos(self) -> List[ClassifiedVideo]:
        with self._lock:
            return list(self._videos.values())

    def store_classified_videos(self, videos: Sequence[ClassifiedVideo]) -> None:
        with self._lock:
            for video in videos:
                self._videos[(video.video_id, video.source_phase)] = video

    def store_candidates(self, videos: Sequence[ClassifiedVideo]) -> None:
        with self._lock:
            for video in videos:
                self._candidates[video.video_id] = video

    def load_candidate_pool(self) -> List[ClassifiedVideo]:
        with self._lock:
            return list(self._candidates.values())

    def store_subscriptions(self, subscriptions: Sequence[SubscriptionRecord]) -> None:
        with self._lock:
            for sub in subscriptions:
                self._subscriptions[sub.channel_id] = sub

    # Analysis

    def store_analysis_result(self, result: AnalysisResult) -> AnalysisResult:
        stored = replace(result, id=str(uuid.uuid4()))
        with self._lock:
            self._analyses.append(stored)
        return stored

    def latest_analysis(self) -> Optional[AnalysisResult]:
        with self._lock:
            return self._analyses[-1] if self._analyses else None

    def analysis_history(self) -> List[AnalysisResult]:
        with self._lock:
            return list(self._analyses)

    # Recommendations

    def store_recommendations(self, recommendations: Sequence[Recommendation]) -> List[Recommendation]:
        created = now_utc()
        stored = [replace(rec, id=str(uuid.uuid4()), created_at=created) for rec in recommendations]
        with self._lock:
            for rec in stored:
                self._recommendations[rec.id] = rec
        return stored

    def list_recommendations(self) -> List[Recommendation]:
        with self._lock:
            return list(self._recommendations.values())

    def mark_recommendation_watched(self, recommendation_id: str) -> Recommendation:
        with self._lock:
            rec = self._recommendations.get(recommendation_id)
            if rec is None:
                raise RecommendationNotFound(recommendation_id)
            watched = rec.mark_watched()
            self._recommendations[recommendation_id] = watched
            return watched

    # Dashboard

    def stats(self) -> DashboardStats:
        with self._lock:
            latest = self._analyses[-1] if self._analyses else None
            recommendations = list(self._recommendations.values())
            return DashboardStats(
                total_videos_analyzed=len({video_id for video_id, _ in self._videos}),
                bias_score=latest.bias_score if latest else 50,
                entropy_score=latest.entropy_score if latest else None,
                recommendations_given=len(recommendations),
                recommendations_watched=sum(1 for rec in recommendations if rec.watched),
                analyses_stored=len(self._analyses),
                skipped_videos=latest.skipped_count if latest else 0,
                failed_videos=latest.failed_count if latest else 0,
            )

    def export_all(self) -> JsonDict:
        with self._lock:
            return {
                "videos": [asdict(video) for video in self._videos.values()],
                "candidates": [asdict(video) for video in self._candidates.values()],
                "subscriptions": [asdict(sub) for sub in self._subscriptions.values()],
                "analysis": [asdict(result) for result in self._analyses],
                "recommendations": [asdict(rec) for rec in self._recommendations.values()],
                "exported_at": now_utc().isoformat(),
            }

    def delete_all(self) -> None:
        with self._lock:
            self._videos.clear()
            self._candidates.clear()
            self._subscriptions.clear()
            self._analyses.clear()
            self._recommendations.clear()
