import pytest

from echobreaker.core.aggregation import aggregate
from echobreaker.core.scoring import entropy_score, leaning_label, leaning_score
from echobreaker.models import BucketShare, StanceBreakdown

from conftest import dist


def test_even_three_way_split_scores_100():
    breakdown = StanceBreakdown(
        progressive=BucketShare(33.33, 33),
        conservative=BucketShare(33.33, 33),
        centrist=BucketShare(33.33, 34),
        non_political=BucketShare(0.01, 0),
    )
    assert entropy_score(breakdown) == 100


@pytest.mark.parametrize(
    "percentages",
    [(100, 0, 0, 0), (0, 100, 0, 0), (0, 0, 100, 0), (0, 0, 60, 40)],
)
def test_single_political_bucket_scores_zero(percentages):
    assert entropy_score(StanceBreakdown.from_percentages(*percentages)) == 0


def test_entropy_ignores_non_political_mass():
    a = StanceBreakdown.from_percentages(30, 30, 30, 10)
    b = StanceBreakdown.from_percentages(27, 27, 27, 19)
    assert entropy_score(a) == entropy_score(b) == 100


def test_no_political_mass_scores_zero():
    assert entropy_score(StanceBreakdown.from_percentages(0, 0, 0, 100)) == 0
    assert entropy_score(StanceBreakdown.empty()) == 0


def test_two_way_split_is_mid_entropy():
    # log2(2) / log2(3) = 0.6309...
    assert entropy_score(StanceBreakdown.from_percentages(50, 50, 0, 0)) == 63


def test_entropy_uses_weighted_counts():
    breakdown = aggregate([(dist(progressive=1.0), 100), (dist(conservative=1.0), 100), (dist(centrist=1.0), 100)])
    assert entropy_score(breakdown) == 100


@pytest.mark.parametrize(
    "percentages, expected",
    [
        ((40, 40, 10, 10), 50),
        ((100, 0, 0, 0), 100),
        ((0, 100, 0, 0), 0),
        ((60, 20, 10, 10), 70),
        ((0, 0, 50, 50), 50),
        ((25, 0, 0, 75), 63),
    ],
)
def test_leaning_score(percentages, expected):
    assert leaning_score(StanceBreakdown.from_percentages(*percentages)) == expected


def test_leaning_and_entropy_are_independent():
    breakdown = StanceBreakdown.from_percentages(50, 50, 0, 0)
    assert leaning_score(breakdown) == 50
    assert entropy_score(breakdown) < 100


@pytest.mark.parametrize(
    "score, label",
    [(100, "left"), (80, "left"), (65, "center-left"), (50, "center"), (30, "center-right"), (0, "right")],
)
def test_leaning_label(score, label):
    assert leaning_label(score) == label
