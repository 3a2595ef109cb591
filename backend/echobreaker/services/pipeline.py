"""
Sync and analysis orchestration.

Wires ingestion, the analysis engine and storage together. The service keeps
only the handle needed to cancel a running sync and the outcome of the last
sync; the engine itself stays stateless.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from echobreaker.config import DEFAULT_RECOMMENDATION_LIMIT
from echobreaker.core.analysis import analyze
from echobreaker.models import (
    AnalysisResult,
    IngestionBatch,
    Recommendation,
    SubscriptionRecord,
    VideoRecord,
)
from echobreaker.services.classifier import StanceClassifier
from echobreaker.services.ingestion import ingest
from echobreaker.storage import Storage

logger = logging.getLogger(__name__)


class DiversityService:
    """Runs syncs and analyses against one storage backend."""

    def __init__(
        self,
        storage: Storage,
        classifier: Optional[StanceClassifier] = None,
        recommendation_limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ):
        self.storage = storage
        self.classifier = classifier
        self.recommendation_limit = recommendation_limit
        self._cancel_event: Optional[asyncio.Event] = None
        self._last_batch: Optional[IngestionBatch] = None

    @property
    def is_syncing(self) -> bool:
        return self._cancel_event is not None

    async def sync(
        self,
        videos: Sequence[VideoRecord],
        subscriptions: Sequence[SubscriptionRecord] = (),
        candidates: Sequence[VideoRecord] = (),
    ) -> Tuple[IngestionBatch, IngestionBatch]:
        """
        Classify and store a batch of collected videos and candidates.

        Args:
            videos: Videos from the user's feed and history
            subscriptions: The user's subscriptions
            candidates: Videos offered as counter-recommendation candidates

        Returns:
            Tuple of (video batch, candidate batch)
        """
        event = asyncio.Event()
        self._cancel_event = event
        try:
            batch = await ingest(videos, subscriptions, self.classifier, cancel_event=event)
            candidate_batch = IngestionBatch()
            if candidates and not event.is_set():
                candidate_batch = await ingest(candidates, (), self.classifier, cancel_event=event)
        finally:
            self._cancel_event = None

        self.storage.store_subscriptions(batch.subscriptions)
        self.storage.store_classified_videos(batch.classified)
        self.storage.store_candidates(candidate_batch.classified)
        self._last_batch = batch
        return batch, candidate_batch

    def cancel(self) -> bool:
        """Cancel the running sync; returns False when nothing is running."""
        if self._cancel_event is None:
            return False
        logger.info("Cancelling running sync")
        self._cancel_event.set()
        return True

    def run_analysis(self, limit: Optional[int] = None) -> Tuple[AnalysisResult, List[Recommendation]]:
        """
        Analyze all stored videos and store the result and recommendations.

        Candidates that were recommended before are not offered again.
        """
        videos = self.storage.load_active_classified_videos()
        already_recommended = {rec.video.video_id for rec in self.storage.list_recommendations()}
        pool = [
            video for video in self.storage.load_candidate_pool()
            if video.video_id not in already_recommended
        ]

        batch = self._last_batch or IngestionBatch()
        result, recommendations = analyze(
            videos,
            pool,
            self.recommendation_limit if limit is None else limit,
            partial=batch.partial,
            skipped_count=len(batch.skipped),
            failed_count=len(batch.failed),
        )

        stored = self.storage.store_analysis_result(result)
        stored_recommendations = self.storage.store_recommendations(recommendations)
        return stored, stored_recommendations
