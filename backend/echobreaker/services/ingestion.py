"""
Ingestion of collected videos: phase tagging, classification and validation.

Classification calls run concurrently under a fixed-size semaphore, each with
its own timeout and retries. A failing or malformed video is reported and
left out; it never aborts the batch. A batch can be cancelled through an
asyncio.Event, in which case every classification that already finished is
kept and the batch is flagged partial.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from echobreaker.config import (
    CLASSIFIER_CONCURRENCY,
    CLASSIFIER_MAX_RETRIES,
    CLASSIFIER_TIMEOUT,
    INITIAL_RETRY_DELAY,
    MAX_FAILURE_FRACTION,
    SUBSCRIPTIONS,
)
from echobreaker.core.weighting import normalize_phase, significance_weight
from echobreaker.errors import ClassificationFailure, MalformedDistribution
from echobreaker.models import (
    ClassifiedVideo,
    IngestionBatch,
    SkippedVideo,
    StanceDistribution,
    SubscriptionRecord,
    VideoRecord,
)
from echobreaker.services.classifier import StanceClassifier
from echobreaker.utils import now_utc

logger = logging.getLogger(__name__)


def resolve_phase(video: VideoRecord, subscribed_channels: Set[str]) -> str:
    """
    Determine the source phase of a collected video.

    Videos collected without a phase count as subscription content when their
    channel is subscribed to, otherwise as home feed.
    """
    if video.source_phase:
        return normalize_phase(video.source_phase)
    if video.channel_id and video.channel_id in subscribed_channels:
        return SUBSCRIPTIONS
    return normalize_phase(None)


def deduplicate_videos(videos: Iterable[VideoRecord], subscribed_channels: Set[str]) -> List[Tuple[VideoRecord, str]]:
    """
    Drop repeated (video_id, phase) pairs, keeping the first occurrence.

    The same video seen in two phases is two observations and is kept twice.
    """
    seen: Set[Tuple[str, str]] = set()
    unique: List[Tuple[VideoRecord, str]] = []

    for video in videos:
        phase = resolve_phase(video, subscribed_channels)
        key = (video.video_id, phase)
        if not video.video_id or key in seen:
            continue
        seen.add(key)
        unique.append((video, phase))

    return unique


async def classify_with_retry(
    classifier: StanceClassifier,
    video: VideoRecord,
    semaphore: asyncio.Semaphore,
    timeout: float = CLASSIFIER_TIMEOUT,
    max_retries: int = CLASSIFIER_MAX_RETRIES,
    retry_delay: float = INITIAL_RETRY_DELAY,
) -> Mapping[str, float]:
    """
    Classify one video, retrying on errors and timeouts.

    Args:
        classifier: Stance classifier backend
        video: Video to classify
        semaphore: Shared limit on concurrent classifier calls
        timeout: Seconds allowed per attempt
        max_retries: Retries after the first attempt
        retry_delay: Initial backoff, doubled after each failed attempt

    Returns:
        Raw stance probabilities as returned by the classifier

    Raises:
        ClassificationFailure: When every attempt failed
    """
    last_error = "no attempt made"

    for attempt in range(max_retries + 1):
        async with semaphore:
            try:
                return await asyncio.wait_for(classifier.classify(video), timeout)
            except asyncio.TimeoutError:
                last_error = f"timed out after {timeout:g}s"
            except ClassificationFailure as e:
                last_error = e.reason
            except Exception as e:
                # Adapter errors are opaque; any of them only costs this video
                last_error = f"{type(e).__name__}: {e}"

        if attempt < max_retries:
            delay = retry_delay * (2 ** attempt)
            logger.warning(
                "Classification of %s failed (%s); retry %d/%d in %.1fs",
                video.video_id, last_error, attempt + 1, max_retries, delay,
            )
            await asyncio.sleep(delay)

    raise ClassificationFailure(video.video_id, last_error)


def build_classified_video(
    video: VideoRecord,
    phase: str,
    raw: Mapping[str, float],
    classified_at: datetime,
) -> ClassifiedVideo:
    """
    Validate classifier output and build the classified video.

    Raises:
        MalformedDistribution: When the probabilities are invalid
    """
    distribution = StanceDistribution.from_mapping(raw)
    return ClassifiedVideo(
        video_id=video.video_id,
        distribution=distribution,
        source_phase=phase,
        significance_weight=significance_weight(phase),
        title=video.title,
        channel_name=video.channel_name,
        thumbnail_url=video.thumbnail_url,
        category=video.category,
        classified_at=classified_at,
    )


async def _wait_until_done_or_cancelled(
    tasks: Sequence[asyncio.Task],
    cancel_event: Optional[asyncio.Event],
) -> bool:
    """
    Wait for all tasks, or until the cancel event fires.

    Returns:
        True if the wait was cut short by cancellation
    """
    if cancel_event is None:
        await asyncio.wait(tasks)
        return False

    waiter = asyncio.ensure_future(cancel_event.wait())
    pending = set(tasks)
    try:
        while pending:
            done, _ = await asyncio.wait(pending | {waiter}, return_when=asyncio.FIRST_COMPLETED)
            pending -= done
            if waiter in done:
                return bool(pending)
        return False
    finally:
        waiter.cancel()


async def ingest(
    videos: Iterable[VideoRecord],
    subscriptions: Iterable[SubscriptionRecord] = (),
    classifier: Optional[StanceClassifier] = None,
    *,
    concurrency: int = CLASSIFIER_CONCURRENCY,
    timeout: float = CLASSIFIER_TIMEOUT,
    max_retries: int = CLASSIFIER_MAX_RETRIES,
    retry_delay: float = INITIAL_RETRY_DELAY,
    cancel_event: Optional[asyncio.Event] = None,
    classified_at: Optional[datetime] = None,
) -> IngestionBatch:
    """
    Classify a batch of collected videos.

    Args:
        videos: Collected videos
        subscriptions: Channels the user is subscribed to
        classifier: Stance classifier backend
        concurrency: Maximum concurrent classifier calls
        timeout: Seconds allowed per classifier call
        max_retries: Retries per video after the first attempt
        retry_delay: Initial retry backoff in seconds
        cancel_event: Setting this event stops the batch
        classified_at: Timestamp stamped on results (defaults to now)

    Returns:
        IngestionBatch with classified, skipped, failed and cancelled videos
    """
    subscription_list = tuple(subscriptions)
    subscribed = {sub.channel_id for sub in subscription_list if sub.channel_id}
    records = deduplicate_videos(videos, subscribed)
    stamp = classified_at or now_utc()

    if not records:
        return IngestionBatch(subscriptions=subscription_list)

    if cancel_event is not None and cancel_event.is_set():
        cancelled = tuple(SkippedVideo(video.video_id, "cancelled before classification started") for video, _ in records)
        return IngestionBatch(cancelled=cancelled, subscriptions=subscription_list, partial=True)

    if classifier is None:
        logger.warning("No stance classifier configured; %d videos left unclassified", len(records))
        failed = tuple(SkippedVideo(video.video_id, "no classifier configured") for video, _ in records)
        return IngestionBatch(failed=failed, subscriptions=subscription_list)

    semaphore = asyncio.Semaphore(max(1, concurrency))
    tasks: List[asyncio.Task] = [
        asyncio.ensure_future(
            classify_with_retry(classifier, video, semaphore, timeout, max_retries, retry_delay)
        )
        for video, _ in records
    ]

    logger.info("Classifying %d videos with concurrency %d", len(tasks), concurrency)
    try:
        interrupted = await _wait_until_done_or_cancelled(tasks, cancel_event)
    finally:
        unfinished = [task for task in tasks if not task.done()]
        for task in unfinished:
            task.cancel()
        if unfinished:
            await asyncio.gather(*unfinished, return_exceptions=True)

    classified: List[ClassifiedVideo] = []
    skipped: List[SkippedVideo] = []
    failed: List[SkippedVideo] = []
    cancelled: List[SkippedVideo] = []

    # Walk in input order so results are deterministic
    for (video, phase), task in zip(records, tasks):
        if task.cancelled():
            cancelled.append(SkippedVideo(video.video_id, "cancelled before classification finished"))
            continue

        error = task.exception()
        if isinstance(error, ClassificationFailure):
            failed.append(SkippedVideo(video.video_id, error.reason))
            continue
        if error is not None:
            failed.append(SkippedVideo(video.video_id, f"{type(error).__name__}: {error}"))
            continue

        try:
            classified.append(build_classified_video(video, phase, task.result(), stamp))
        except MalformedDistribution as e:
            logger.warning("Skipping %s: malformed stance distribution (%s)", video.video_id, e)
            skipped.append(SkippedVideo(video.video_id, str(e)))

    batch = IngestionBatch(
        classified=tuple(classified),
        skipped=tuple(skipped),
        failed=tuple(failed),
        cancelled=tuple(cancelled),
        subscriptions=subscription_list,
        partial=interrupted and bool(cancelled),
    )

    if batch.partial:
        logger.warning(
            "Ingestion cancelled: kept %d classified videos, %d not finished",
            len(classified), len(cancelled),
        )
    if batch.failure_fraction > MAX_FAILURE_FRACTION:
        logger.warning(
            "%.0f%% of classifications failed (limit %.0f%%); retry ids: %s",
            batch.failure_fraction * 100, MAX_FAILURE_FRACTION * 100, ", ".join(batch.failed_ids()),
        )

    logger.info(
        "Ingested %d videos: %d classified, %d skipped, %d failed, %d cancelled",
        batch.received, len(classified), len(skipped), len(failed), len(cancelled),
    )
    return batch
