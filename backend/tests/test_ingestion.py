import asyncio

import pytest

from echobreaker.errors import ClassificationFailure
from echobreaker.models import SubscriptionRecord, VideoRecord
from echobreaker.services.ingestion import classify_with_retry, deduplicate_videos, ingest, resolve_phase

from conftest import FIXED_TIME, FakeClassifier

PROGRESSIVE = {"progressive": 0.8, "conservative": 0.1, "centrist": 0.05, "nonPolitical": 0.05}
MALFORMED = {"progressive": 0.5, "conservative": 0.5, "centrist": 0.5, "nonPolitical": 0.0}


def run(coro):
    return asyncio.run(coro)


def records(*ids, phase="home_feed"):
    return [VideoRecord(video_id=video_id, title=f"Video {video_id}", source_phase=phase) for video_id in ids]


def test_resolve_phase():
    subscribed = {"chan-1"}
    assert resolve_phase(VideoRecord("a", source_phase="watch_history"), subscribed) == "watch_history"
    assert resolve_phase(VideoRecord("a", source_phase="shorts"), subscribed) == "home_feed"
    assert resolve_phase(VideoRecord("a", channel_id="chan-1"), subscribed) == "subscriptions"
    assert resolve_phase(VideoRecord("a", channel_id="chan-2"), subscribed) == "home_feed"


def test_deduplicate_keeps_distinct_phases():
    videos = records("a", "a", "b") + records("a", phase="watch_history")
    unique = deduplicate_videos(videos, set())
    assert [(video.video_id, phase) for video, phase in unique] == [
        ("a", "home_feed"), ("b", "home_feed"), ("a", "watch_history"),
    ]


def test_ingest_classifies_and_weights():
    classifier = FakeClassifier(results={"a": PROGRESSIVE})
    batch = run(ingest(records("a") + records("b", phase="watch_history"), (), classifier, classified_at=FIXED_TIME))

    assert [video.video_id for video in batch.classified] == ["a", "b"]
    first, second = batch.classified
    assert first.distribution.progressive == pytest.approx(0.8)
    assert first.significance_weight == 50
    assert second.significance_weight == 100
    assert second.distribution.non_political == pytest.approx(1.0)
    assert first.title == "Video a"
    assert first.classified_at == FIXED_TIME
    assert batch.partial is False


def test_subscribed_channels_are_tagged():
    classifier = FakeClassifier()
    video = VideoRecord(video_id="a", channel_id="chan-1")
    batch = run(ingest([video], [SubscriptionRecord("chan-1", "Channel")], classifier))
    assert batch.classified[0].source_phase == "subscriptions"
    assert batch.classified[0].significance_weight == 40
    assert len(batch.subscriptions) == 1


def test_malformed_distribution_is_skipped_and_reported():
    classifier = FakeClassifier(results={"bad": MALFORMED, "good": PROGRESSIVE})
    batch = run(ingest(records("bad", "good"), (), classifier))

    assert [video.video_id for video in batch.classified] == ["good"]
    assert [item.video_id for item in batch.skipped] == ["bad"]
    assert "sum" in batch.skipped[0].reason
    assert batch.failed == ()


def test_failed_classification_does_not_abort_batch():
    classifier = FakeClassifier(fail_ids={"x"})
    batch = run(ingest(records("x", "y"), (), classifier, max_retries=1, retry_delay=0))

    assert [video.video_id for video in batch.classified] == ["y"]
    assert batch.failed_ids() == ("x",)
    assert "RuntimeError" in batch.failed[0].reason
    assert classifier.calls.count("x") == 2


def test_transient_errors_are_retried():
    classifier = FakeClassifier(fail_times={"a": 2})
    batch = run(ingest(records("a"), (), classifier, max_retries=2, retry_delay=0))
    assert len(batch.classified) == 1
    assert classifier.calls == ["a", "a", "a"]


def test_timeouts_become_failures():
    classifier = FakeClassifier(slow_ids={"slow"})
    batch = run(ingest(records("slow", "fast"), (), classifier, timeout=0.05, max_retries=0))
    assert batch.failed_ids() == ("slow",)
    assert "timed out" in batch.failed[0].reason
    assert [video.video_id for video in batch.classified] == ["fast"]


def test_concurrency_is_bounded():
    classifier = FakeClassifier(delay=0.01)
    batch = run(ingest(records(*[str(i) for i in range(12)]), (), classifier, concurrency=3))
    assert len(batch.classified) == 12
    assert classifier.max_active <= 3


def test_no_classifier_fails_every_video():
    batch = run(ingest(records("a", "b"), (), None))
    assert batch.classified == ()
    assert batch.failed_ids() == ("a", "b")


def test_empty_input():
    batch = run(ingest([], (), FakeClassifier()))
    assert batch.received == 0
    assert batch.partial is False


def test_cancellation_keeps_finished_work():
    async def scenario():
        classifier = FakeClassifier(slow_ids={"s1", "s2"})
        event = asyncio.Event()
        task = asyncio.ensure_future(
            ingest(records("f1", "s1", "f2", "s2"), (), classifier, cancel_event=event, timeout=60)
        )
        while len(classifier.calls) < 4:
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.01)
        event.set()
        return await task

    batch = run(scenario())
    assert [video.video_id for video in batch.classified] == ["f1", "f2"]
    assert sorted(item.video_id for item in batch.cancelled) == ["s1", "s2"]
    assert batch.partial is True


def test_cancel_before_start_marks_everything_cancelled():
    async def scenario():
        event = asyncio.Event()
        event.set()
        return await ingest(records("a", "b"), (), FakeClassifier(), cancel_event=event)

    batch = run(scenario())
    assert batch.classified == ()
    assert len(batch.cancelled) == 2
    assert batch.partial is True


def test_classify_with_retry_raises_after_last_attempt():
    async def scenario():
        classifier = FakeClassifier(fail_ids={"a"})
        await classify_with_retry(classifier, VideoRecord("a"), asyncio.Semaphore(1), max_retries=0)

    with pytest.raises(ClassificationFailure) as excinfo:
        run(scenario())
    assert excinfo.value.video_id == "a"
