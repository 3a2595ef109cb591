import asyncio
from datetime import datetime, timezone

import pytest

from echobreaker.core.weighting import significance_weight
from echobreaker.models import ClassifiedVideo, StanceDistribution, VideoRecord

FIXED_TIME = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def dist(progressive=0.0, conservative=0.0, centrist=0.0, non_political=0.0):
    return StanceDistribution(progressive, conservative, centrist, non_political)


def make_video(video_id, distribution, phase="home_feed", weight=None, **extra):
    return ClassifiedVideo(
        video_id=video_id,
        distribution=distribution,
        source_phase=phase,
        significance_weight=significance_weight(phase) if weight is None else weight,
        **extra,
    )


class FakeClassifier:
    """Returns canned probabilities per video id; can fail, stall or misbehave."""

    def __init__(self, results=None, default=None, fail_ids=(), fail_times=None, slow_ids=(), delay=0.0):
        self.results = dict(results or {})
        self.default = default or {"progressive": 0.0, "conservative": 0.0, "centrist": 0.0, "nonPolitical": 1.0}
        self.fail_ids = set(fail_ids)
        self.fail_times = dict(fail_times or {})
        self.slow_ids = set(slow_ids)
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0

    async def classify(self, video: VideoRecord):
        self.calls.append(video.video_id)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if video.video_id in self.slow_ids:
                await asyncio.sleep(3600)
            if self.delay:
                await asyncio.sleep(self.delay)
            if video.video_id in self.fail_ids:
                raise RuntimeError("classifier unavailable")
            remaining = self.fail_times.get(video.video_id, 0)
            if remaining:
                self.fail_times[video.video_id] = remaining - 1
                raise RuntimeError("transient error")
            return self.results.get(video.video_id, self.default)
        finally:
            self.active -= 1


@pytest.fixture
def mixed_videos():
    """A small feed: progressive-heavy home feed, mixed watch history."""
    return [
        make_video("h1", dist(progressive=0.9, non_political=0.1), "home_feed"),
        make_video("h2", dist(progressive=0.8, centrist=0.2), "home_feed"),
        make_video("h3", dist(non_political=1.0), "home_feed"),
        make_video("w1", dist(progressive=0.6, conservative=0.4), "watch_history"),
        make_video("w2", dist(conservative=0.7, centrist=0.3), "watch_history"),
        make_video("s1", dist(centrist=1.0), "search"),
    ]
