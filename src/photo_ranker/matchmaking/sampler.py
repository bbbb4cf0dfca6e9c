"""Adaptive pair selection for photo comparisons."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, TypeVar

import structlog

from photo_ranker.core.config import MatchmakingConfig, RatingConfig
from photo_ranker.core.errors import InsufficientItemsError
from photo_ranker.models import Item, RankedItem

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MATCHMAKING_CONFIG = MatchmakingConfig()
DEFAULT_RATING_CONFIG = RatingConfig()

RATIONALE_PLACEMENT = "classifying new asset"
RATIONALE_EXPLORATION = "exploration mode"
RATIONALE_REFINEMENT = "refinement"
RATIONALE_VOLATILE = "refinement: volatile rating"
RATIONALE_EQUIVALENT = "refinement: statistically equivalent"


class RandomSource(Protocol):
    """The subset of ``random.Random`` the sampler draws from."""

    def random(self) -> float: ...

    def choice(self, seq: Sequence[T]) -> T: ...

    def sample(self, population: Sequence[T], k: int) -> list[T]: ...


class Policy(str, Enum):
    """Matchmaking policy that produced a pair."""

    PLACEMENT = "placement"
    EXPLORATION = "exploration"
    REFINEMENT = "refinement"


@dataclass(frozen=True)
class PairSelection:
    """A pair to present, in display order.

    Attributes:
        left: Item shown on the left.
        right: Item shown on the right.
        policy: Policy that chose the pair.
        rationale: Human-readable reason, for display and logs only.
    """

    left: Item
    right: Item
    policy: Policy
    rationale: str

    @property
    def ids(self) -> frozenset[str]:
        return frozenset((self.left.id, self.right.id))


PolicyFn = Callable[
    [Sequence[RankedItem], RandomSource, MatchmakingConfig, RatingConfig],
    tuple[RankedItem, RankedItem, str],
]


def choose_policy(
    ranked: Sequence[RankedItem],
    r: float,
    config: MatchmakingConfig = DEFAULT_MATCHMAKING_CONFIG,
) -> Policy:
    """Map a uniform draw to a policy.

    Placement runs whenever an unplaced item exists, except for a
    ``placement_skip_rate`` slice of draws. Among the remaining draws, the
    lowest ``exploration_rate`` explore and the rest refine.

    Args:
        ranked: Current snapshot.
        r: Uniform draw in [0, 1).
        config: Matchmaking tuning.

    Returns:
        The policy to run.
    """
    if r >= config.placement_skip_rate and any(not item.placed for item in ranked):
        return Policy.PLACEMENT
    if r < config.exploration_rate:
        return Policy.EXPLORATION
    return Policy.REFINEMENT


def placement_pair(
    ranked: Sequence[RankedItem],
    rng: RandomSource,
    config: MatchmakingConfig = DEFAULT_MATCHMAKING_CONFIG,
    rating_config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> tuple[RankedItem, RankedItem, str]:
    """Pair a never-compared item with a stable, near-average anchor.

    Anchors have at least ``anchor_min_matches`` matches and a rating within
    ``anchor_band`` of the prior. Without anchors the opponent comes from any
    other compared item, then from any other item at all.
    """
    unplaced = [item for item in ranked if not item.placed]
    if not unplaced:
        # Only reachable when the branch is forced; fall back to the whole pool.
        unplaced = list(ranked)
    newcomer = rng.choice(unplaced)

    others = [item for item in ranked if item.id != newcomer.id]
    anchors = [
        item
        for item in others
        if item.matches >= config.anchor_min_matches
        and abs(item.rating - rating_config.initial_rating) <= config.anchor_band
    ]
    pool = anchors or [item for item in others if item.placed] or others
    return newcomer, rng.choice(pool), RATIONALE_PLACEMENT


def exploration_pair(
    ranked: Sequence[RankedItem],
    rng: RandomSource,
    config: MatchmakingConfig = DEFAULT_MATCHMAKING_CONFIG,
    rating_config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> tuple[RankedItem, RankedItem, str]:
    """Two distinct items, uniformly at random."""
    a, b = rng.sample(list(ranked), 2)
    return a, b, RATIONALE_EXPLORATION


def refinement_pair(
    ranked: Sequence[RankedItem],
    rng: RandomSource,
    config: MatchmakingConfig = DEFAULT_MATCHMAKING_CONFIG,
    rating_config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> tuple[RankedItem, RankedItem, str]:
    """Compare one of the most uncertain items with its closest-rated neighbour.

    Side A is drawn uniformly from the ``refinement_pool_size`` most uncertain
    items so the single most uncertain one is not retested every time. Side B
    is the item whose rating is numerically closest to A's; the first one seen
    wins ties.
    """
    by_uncertainty = sorted(ranked, key=lambda item: item.uncertainty, reverse=True)
    target = rng.choice(by_uncertainty[: config.refinement_pool_size])

    nearest: RankedItem | None = None
    nearest_gap = float("inf")
    for item in ranked:
        if item.id == target.id:
            continue
        gap = abs(item.rating - target.rating)
        if gap < nearest_gap:
            nearest, nearest_gap = item, gap

    if nearest is None:
        raise InsufficientItemsError(len(ranked))

    if max(target.uncertainty, nearest.uncertainty) > config.volatile_threshold:
        rationale = RATIONALE_VOLATILE
    elif nearest_gap < config.equivalence_gap:
        rationale = RATIONALE_EQUIVALENT
    else:
        rationale = RATIONALE_REFINEMENT
    return target, nearest, rationale


POLICIES: dict[Policy, PolicyFn] = {
    Policy.PLACEMENT: placement_pair,
    Policy.EXPLORATION: exploration_pair,
    Policy.REFINEMENT: refinement_pair,
}


def _orient(a: Item, b: Item, rng: RandomSource) -> tuple[Item, Item]:
    """Randomize left/right so neither side systematically favours an item."""
    if rng.random() < 0.5:
        return b, a
    return a, b


def select_pair(
    ranked: Sequence[RankedItem],
    recent_pair: frozenset[str] | set[str] | None,
    rng: RandomSource,
    config: MatchmakingConfig = DEFAULT_MATCHMAKING_CONFIG,
    rating_config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> PairSelection:
    """Select the next pair of items to compare.

    Each attempt draws a policy and a candidate pair. A candidate identical to
    ``recent_pair`` is redrawn up to ``max_repeat_attempts`` times, after
    which the repeat is accepted rather than looping forever.

    Args:
        ranked: Current snapshot from history replay.
        recent_pair: Ids of the pair presented last, if any.
        rng: Injected randomness; required so selection is reproducible.
        config: Matchmaking tuning.
        rating_config: Rating constants (anchors are measured from the prior).

    Returns:
        The chosen pair in display order, with its policy and rationale.

    Raises:
        InsufficientItemsError: If the snapshot holds fewer than two items.
    """
    min_pair_size = 2
    if len(ranked) < min_pair_size:
        raise InsufficientItemsError(len(ranked))

    previous = frozenset(recent_pair or ())
    for attempt in range(1, config.max_repeat_attempts + 1):
        policy = choose_policy(ranked, rng.random(), config)
        a, b, rationale = POLICIES[policy](ranked, rng, config, rating_config)
        if frozenset((a.id, b.id)) != previous:
            break
        logger.debug("repeat_pair_redraw", attempt=attempt, pair=sorted(previous))
    else:
        logger.debug("repeat_pair_accepted", pair=sorted(previous))

    left, right = _orient(a.item, b.item, rng)
    logger.debug(
        "pair_selected",
        policy=policy.value,
        rationale=rationale,
        left=left.id,
        right=right.id,
    )
    return PairSelection(left=left, right=right, policy=policy, rationale=rationale)
