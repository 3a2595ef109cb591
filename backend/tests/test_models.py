import pytest

from echobreaker.errors import MalformedDistribution
from echobreaker.models import (
    CENTRIST,
    NON_POLITICAL,
    PROGRESSIVE,
    IngestionBatch,
    Recommendation,
    SkippedVideo,
    StanceBreakdown,
    StanceDistribution,
)

from conftest import dist, make_video


def test_from_mapping_accepts_camel_case_key():
    d = StanceDistribution.from_mapping(
        {"progressive": 0.1, "conservative": 0.2, "centrist": 0.3, "nonPolitical": 0.4}
    )
    assert d.non_political == pytest.approx(0.4)
    assert d.as_dict()[NON_POLITICAL] == pytest.approx(0.4)


def test_from_mapping_tolerates_float_noise():
    d = StanceDistribution.from_mapping(
        {"progressive": 0.1, "conservative": 0.2, "centrist": 0.3, "non_political": 0.4 + 5e-7}
    )
    assert d.progressive == pytest.approx(0.1)


@pytest.mark.parametrize(
    "values",
    [
        {"progressive": 0.5, "conservative": 0.5, "centrist": 0.5, "nonPolitical": 0.0},
        {"progressive": 1.2, "conservative": -0.2, "centrist": 0.0, "nonPolitical": 0.0},
        {"progressive": 0.5, "conservative": 0.5, "centrist": 0.0},
        {"progressive": "lots", "conservative": 0.0, "centrist": 0.0, "nonPolitical": 1.0},
        {"progressive": float("nan"), "conservative": 0.0, "centrist": 0.0, "nonPolitical": 1.0},
        {"progressive": True, "conservative": 0.0, "centrist": 0.0, "nonPolitical": 0.0},
    ],
)
def test_from_mapping_rejects_malformed(values):
    with pytest.raises(MalformedDistribution):
        StanceDistribution.from_mapping(values)


def test_malformed_is_not_renormalized():
    values = {"progressive": 0.5, "conservative": 0.5, "centrist": 0.5, "nonPolitical": 0.0}
    with pytest.raises(MalformedDistribution) as excinfo:
        StanceDistribution.from_mapping(values)
    assert "1.5" in str(excinfo.value)
    assert excinfo.value.values == values


def test_from_mapping_rejects_non_mapping():
    with pytest.raises(MalformedDistribution):
        StanceDistribution.from_mapping([0.25, 0.25, 0.25, 0.25])


def test_dominant_prefers_earlier_bucket_on_tie():
    assert dist(progressive=0.4, centrist=0.4, non_political=0.2).dominant() == (PROGRESSIVE, 0.4)
    assert dist(centrist=0.6, non_political=0.4).dominant() == (CENTRIST, 0.6)


def test_is_political():
    assert dist(conservative=0.6, non_political=0.4).is_political
    assert not dist(progressive=0.3, non_political=0.7).is_political


def test_mark_watched_returns_new_instance():
    rec = Recommendation(
        video=make_video("v1", dist(centrist=1.0)),
        reason="r",
        opposing_viewpoint="Centrist perspective",
        corrected_bucket=CENTRIST,
    )
    watched = rec.mark_watched()
    assert watched.watched is True
    assert rec.watched is False


def test_breakdown_totals():
    breakdown = StanceBreakdown.from_percentages(30, 30, 30, 10)
    assert breakdown.total_count == 100
    assert breakdown.political_count == 90
    assert StanceBreakdown.empty().total_count == 0


def test_batch_failure_fraction():
    batch = IngestionBatch(
        classified=(make_video("a", dist(centrist=1.0)),),
        failed=(SkippedVideo("b", "boom"), SkippedVideo("c", "boom")),
        cancelled=(SkippedVideo("d", "cancelled"),),
    )
    assert batch.received == 4
    assert batch.failure_fraction == pytest.approx(2 / 3)
    assert batch.failed_ids() == ("b", "c")
