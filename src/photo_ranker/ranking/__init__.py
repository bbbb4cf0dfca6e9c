"""Ranking module for the photo ranker.

Provides the uncertainty-scaled rating model and history replay.
"""

from __future__ import annotations

from photo_ranker.ranking.rating import (
    RatingState,
    calculate_expected_score,
    is_upset,
    step_size,
    update,
)
from photo_ranker.ranking.replay import leaderboard, snapshot, sort_events

__all__ = [
    "RatingState",
    "calculate_expected_score",
    "is_upset",
    "leaderboard",
    "snapshot",
    "sort_events",
    "step_size",
    "update",
]
