# echobreaker/schemas.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from echobreaker.models import (
    AnalysisResult,
    BucketShare,
    CategoryShare,
    Recommendation,
    SkippedVideo,
    StanceBreakdown,
    StanceDistribution,
    SubscriptionRecord,
    SubsetMetrics,
    VideoRecord,
)
from echobreaker.utils import normalize_text, parse_utc_datetime


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests

class VideoIn(CamelModel):
    video_id: str = Field(min_length=1)
    title: str = ""
    channel_name: str = ""
    channel_id: Optional[str] = None
    thumbnail_url: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    source_phase: Optional[str] = None          # unknown phases weigh like the home feed
    collected_at: Optional[str] = None

    def to_record(self, default_phase: Optional[str] = None) -> VideoRecord:
        return VideoRecord(
            video_id=self.video_id,
            title=normalize_text(self.title),
            channel_name=normalize_text(self.channel_name),
            channel_id=self.channel_id,
            source_phase=self.source_phase or default_phase,
            thumbnail_url=self.thumbnail_url,
            category=self.category,
            tags=tuple(self.tags),
            collected_at=parse_utc_datetime(self.collected_at),
        )


class SubscriptionIn(CamelModel):
    channel_id: str = Field(min_length=1)
    channel_name: str = ""
    thumbnail_url: Optional[str] = None

    def to_record(self) -> SubscriptionRecord:
        return SubscriptionRecord(
            channel_id=self.channel_id,
            channel_name=normalize_text(self.channel_name),
            thumbnail_url=self.thumbnail_url,
        )


class CrawlPayload(CamelModel):
    videos: List[VideoIn] = Field(default_factory=list)
    subscriptions: List[SubscriptionIn] = Field(default_factory=list)
    recommended_videos: List[VideoIn] = Field(default_factory=list)
    watch_history_videos: List[VideoIn] = Field(default_factory=list)
    candidate_videos: List[VideoIn] = Field(default_factory=list)

    def video_records(self) -> List[VideoRecord]:
        records = [video.to_record() for video in self.videos]
        records += [video.to_record("recommended") for video in self.recommended_videos]
        records += [video.to_record("watch_history") for video in self.watch_history_videos]
        return records

    def candidate_records(self) -> List[VideoRecord]:
        return [video.to_record("recommended") for video in self.candidate_videos]

    def subscription_records(self) -> List[SubscriptionRecord]:
        return [sub.to_record() for sub in self.subscriptions]


class StancesRequest(CamelModel):
    video_ids: List[str]


# Responses

class StanceProbabilitiesOut(CamelModel):
    progressive: float
    conservative: float
    centrist: float
    non_political: float

    @classmethod
    def from_distribution(cls, distribution: StanceDistribution) -> "StanceProbabilitiesOut":
        return cls(**distribution.as_dict())


class BucketShareOut(CamelModel):
    count: float
    percentage: int

    @classmethod
    def from_share(cls, share: BucketShare) -> "BucketShareOut":
        return cls(count=share.count, percentage=share.percentage)


class StanceBreakdownOut(CamelModel):
    progressive: BucketShareOut
    conservative: BucketShareOut
    centrist: BucketShareOut
    non_political: BucketShareOut

    @classmethod
    def from_breakdown(cls, breakdown: StanceBreakdown) -> "StanceBreakdownOut":
        return cls(
            progressive=BucketShareOut.from_share(breakdown.progressive),
            conservative=BucketShareOut.from_share(breakdown.conservative),
            centrist=BucketShareOut.from_share(breakdown.centrist),
            non_political=BucketShareOut.from_share(breakdown.non_political),
        )


class SubsetMetricsOut(CamelModel):
    count: int
    entropy_score: int
    stance_breakdown: StanceBreakdownOut

    @classmethod
    def from_metrics(cls, metrics: SubsetMetrics) -> "SubsetMetricsOut":
        return cls(
            count=metrics.count,
            entropy_score=metrics.entropy_score,
            stance_breakdown=StanceBreakdownOut.from_breakdown(metrics.stance_breakdown),
        )


class SourceComparisonOut(CamelModel):
    watch_history: SubsetMetricsOut
    home_feed: SubsetMetricsOut


class CategoryShareOut(CamelModel):
    name: str
    count: int
    percentage: int

    @classmethod
    def from_share(cls, share: CategoryShare) -> "CategoryShareOut":
        return cls(name=share.name, count=share.count, percentage=share.percentage)


class AnalysisOut(CamelModel):
    id: Optional[str] = None
    bias_score: int
    entropy_score: int
    political_leaning: str
    stance_breakdown: StanceBreakdownOut
    source_comparisons: SourceComparisonOut
    political_video_count: int
    total_video_count: int
    summary: str
    partial: bool
    skipped_count: int
    failed_count: int
    categories: List[CategoryShareOut] = Field(default_factory=list)
    top_topics: List[str] = Field(default_factory=list)
    analyzed_at: datetime

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisOut":
        return cls(
            id=result.id,
            bias_score=result.bias_score,
            entropy_score=result.entropy_score,
            political_leaning=result.political_leaning,
            stance_breakdown=StanceBreakdownOut.from_breakdown(result.stance_breakdown),
            source_comparisons=SourceComparisonOut(
                watch_history=SubsetMetricsOut.from_metrics(result.source_comparison.watch_history),
                home_feed=SubsetMetricsOut.from_metrics(result.source_comparison.home_feed),
            ),
            political_video_count=result.political_video_count,
            total_video_count=result.total_video_count,
            summary=result.summary,
            partial=result.partial,
            skipped_count=result.skipped_count,
            failed_count=result.failed_count,
            categories=[CategoryShareOut.from_share(share) for share in result.categories],
            top_topics=list(result.top_topics),
            analyzed_at=result.analyzed_at,
        )


class RecommendationOut(CamelModel):
    id: Optional[str] = None
    video_id: str
    title: str
    channel_name: str
    thumbnail_url: Optional[str] = None
    category: Optional[str] = None
    reason: str
    opposing_viewpoint: str
    corrected_bucket: str
    stance_probabilities: StanceProbabilitiesOut
    watched: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_recommendation(cls, rec: Recommendation) -> "RecommendationOut":
        video = rec.video
        return cls(
            id=rec.id,
            video_id=video.video_id,
            title=video.title,
            channel_name=video.channel_name,
            thumbnail_url=video.thumbnail_url,
            category=video.category,
            reason=rec.reason,
            opposing_viewpoint=rec.opposing_viewpoint,
            corrected_bucket=rec.corrected_bucket,
            stance_probabilities=StanceProbabilitiesOut.from_distribution(video.distribution),
            watched=rec.watched,
            created_at=rec.created_at,
        )


class AnalysisRunResponse(CamelModel):
    analysis: AnalysisOut
    recommendations: List[RecommendationOut]


class SkippedOut(CamelModel):
    video_id: str
    reason: str

    @classmethod
    def from_skipped(cls, item: SkippedVideo) -> "SkippedOut":
        return cls(video_id=item.video_id, reason=item.reason)


class CrawlResponse(CamelModel):
    success: bool = True
    received: int
    classified: int
    candidates: int = 0
    subscriptions: int = 0
    skipped: List[SkippedOut] = Field(default_factory=list)
    failed: List[SkippedOut] = Field(default_factory=list)
    cancelled: int = 0
    partial: bool = False


class VideoStanceOut(CamelModel):
    stance: str
    stance_probabilities: StanceProbabilitiesOut
    is_echo_chamber: bool
    is_diverse: bool


class StancesResponse(CamelModel):
    stances: Dict[str, VideoStanceOut]
    dominant_stance: Optional[str] = None
    total_analyzed: int
    total_political: int


class DashboardStats(CamelModel):
    total_videos_analyzed: int
    bias_score: int
    entropy_score: Optional[int] = None
    recommendations_given: int
    recommendations_watched: int = 0
    analyses_stored: int = 0
    skipped_videos: int = 0
    failed_videos: int = 0
