"""
Diversity and leaning scores derived from a stance breakdown.

The two scores are independent axes:

* ``entropy_score`` measures how evenly political content is spread across
  the progressive, conservative and centrist buckets (0 = monoculture,
  100 = even three-way split). Non-political content is diversity-neutral and
  is left out of the computation entirely.
* ``leaning_score`` places the feed on a progressive/conservative axis
  (0 = entirely conservative, 50 = balanced, 100 = entirely progressive).

A feed split 50/50 between progressive and conservative content is perfectly
balanced on the leaning axis while still scoring below 100 on entropy.
"""
from __future__ import annotations

import math

from echobreaker.models import CONSERVATIVE, POLITICAL_BUCKETS, PROGRESSIVE, StanceBreakdown
from echobreaker.utils import clamp_score, round_half_up

MAX_POLITICAL_ENTROPY = math.log2(len(POLITICAL_BUCKETS))

# (minimum score, label), checked top-down
LEANING_LABELS = (
    (80, "left"),
    (60, "center-left"),
    (41, "center"),
    (21, "center-right"),
    (0, "right"),
)


def entropy_score(breakdown: StanceBreakdown) -> int:
    """
    Normalized Shannon entropy over the political buckets.

    Args:
        breakdown: Weighted stance breakdown

    Returns:
        Integer score between 0 and 100; 0 when there is no political mass
    """
    political_mass = breakdown.political_count
    if political_mass <= 0:
        return 0

    entropy = 0.0
    for bucket in POLITICAL_BUCKETS:
        share = breakdown.count(bucket) / political_mass
        if share > 0:
            entropy -= share * math.log2(share)

    return clamp_score(round_half_up(100 * entropy / MAX_POLITICAL_ENTROPY))


def leaning_score(breakdown: StanceBreakdown) -> int:
    """
    Political-leaning score: 50 + (progressive% - conservative%) / 2.

    Centrist and non-political content pull the score toward 50 simply by
    not counting on either side.

    Args:
        breakdown: Weighted stance breakdown

    Returns:
        Integer score between 0 (conservative) and 100 (progressive)
    """
    left = breakdown.percentage(PROGRESSIVE)
    right = breakdown.percentage(CONSERVATIVE)
    return clamp_score(round_half_up(50 + (left - right) / 2))


def leaning_label(score: int) -> str:
    """Human-readable label for a leaning score."""
    for threshold, label in LEANING_LABELS:
        if score >= threshold:
            return label
    return LEANING_LABELS[-1][1]
