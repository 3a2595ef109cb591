from echobreaker.core.comparison import compare_sources
from echobreaker.models import StanceBreakdown

from conftest import dist, make_video


def test_subsets_are_scored_independently(mixed_videos):
    comparison = compare_sources(mixed_videos)

    assert comparison.home_feed.count == 3
    assert comparison.watch_history.count == 2

    feed = comparison.home_feed.stance_breakdown
    assert feed.percentage("progressive") > 50
    assert feed.percentage("conservative") == 0

    history = comparison.watch_history.stance_breakdown
    assert history.percentage("conservative") > 0
    assert comparison.watch_history.entropy_score > comparison.home_feed.entropy_score


def test_other_phases_are_excluded(mixed_videos):
    comparison = compare_sources(mixed_videos)
    # the search video is pure centrist and must not leak into either subset
    assert comparison.home_feed.stance_breakdown.count("centrist") == 10.0
    assert comparison.watch_history.stance_breakdown.count("centrist") == 30.0


def test_empty_subsets_report_zero():
    comparison = compare_sources([make_video("s", dist(progressive=1.0), "search")])
    for subset in (comparison.watch_history, comparison.home_feed):
        assert subset.count == 0
        assert subset.entropy_score == 0
        assert subset.stance_breakdown == StanceBreakdown.empty()


def test_no_videos():
    comparison = compare_sources([])
    assert comparison.watch_history.count == comparison.home_feed.count == 0
