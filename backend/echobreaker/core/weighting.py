"""
Significance weighting by source phase.

A video's weight says how strongly it counts toward aggregate metrics, based
only on where it was collected: something the user chose to watch says more
about their diet than something the home feed merely showed them.
"""
from __future__ import annotations

from typing import Optional

from echobreaker.config import DEFAULT_SOURCE_PHASE, SIGNIFICANCE_WEIGHTS
from echobreaker.utils import clamp_score


def normalize_phase(source_phase: Optional[str]) -> str:
    """
    Map a raw source phase onto a known phase.

    Args:
        source_phase: Phase tag from the collector (may be None or unknown)

    Returns:
        The phase itself when known, otherwise the default phase
    """
    if source_phase and source_phase in SIGNIFICANCE_WEIGHTS:
        return source_phase
    return DEFAULT_SOURCE_PHASE


def significance_weight(source_phase: Optional[str]) -> int:
    """
    Look up the significance weight of a source phase.

    Args:
        source_phase: Phase tag, e.g. "watch_history" or "home_feed"

    Returns:
        Integer weight between 0 and 100; unknown phases weigh like the home feed
    """
    return clamp_score(SIGNIFICANCE_WEIGHTS[normalize_phase(source_phase)])
