import asyncio

from echobreaker.config import CLASSIFIER_MAX_RETRIES
from echobreaker.models import VideoRecord
from echobreaker.services.pipeline import DiversityService
from echobreaker.storage import MemoryStorage

from conftest import FakeClassifier

FINISHED = {"progressive": 0.8, "conservative": 0.1, "centrist": 0.1, "nonPolitical": 0.0}
MALFORMED = {"progressive": 0.9, "conservative": 0.9, "centrist": 0.0, "nonPolitical": 0.0}


def test_cancelled_sync_yields_partial_analysis():
    classifier = FakeClassifier(results={"done": FINISHED, "bad": MALFORMED}, fail_ids={"broken"}, slow_ids={"stuck"})
    service = DiversityService(MemoryStorage(), classifier)
    videos = [VideoRecord(video_id=video_id, source_phase="home_feed") for video_id in ("done", "bad", "broken", "stuck")]

    async def scenario():
        sync = asyncio.ensure_future(service.sync(videos))
        # Wait until every video except the stuck one has settled
        while classifier.calls.count("broken") < CLASSIFIER_MAX_RETRIES + 1 or "stuck" not in classifier.calls:
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.05)
        assert service.is_syncing
        assert service.cancel() is True
        return await sync

    batch, _ = asyncio.run(scenario())

    assert batch.partial is True
    assert [item.video_id for item in batch.cancelled] == ["stuck"]
    assert not service.is_syncing

    result, _ = service.run_analysis()
    assert result.partial is True
    assert result.skipped_count == 1
    assert result.failed_count == 1
    assert result.total_video_count == 1
    assert "partial" in result.summary
    assert service.storage.latest_analysis() == result


def test_completed_sync_is_not_partial():
    service = DiversityService(MemoryStorage(), FakeClassifier(results={"done": FINISHED}))
    asyncio.run(service.sync([VideoRecord(video_id="done", source_phase="watch_history")]))

    result, _ = service.run_analysis()
    assert result.partial is False
    assert result.skipped_count == 0
    assert result.failed_count == 0
    assert service.cancel() is False
