"""Simulated voting for exercising the ranker without a human."""

from __future__ import annotations

import itertools
import random
from collections.abc import Mapping, Sequence

import structlog

from photo_ranker.models import Item, RankedItem
from photo_ranker.ranking import calculate_expected_score
from photo_ranker.services.session import RankingSession

logger = structlog.get_logger()


class SimulatedVoter:
    """Votes according to hidden "true" ratings.

    The preferred item is drawn from the logistic win probability of the true
    ratings, flattened toward a coin flip by ``noise`` (0 = follows the model,
    1 = pure coin flip).
    """

    def __init__(
        self,
        true_ratings: Mapping[str, float],
        noise: float = 0.1,
        seed: int | None = None,
    ) -> None:
        self.true_ratings = dict(true_ratings)
        self.noise = max(0.0, min(1.0, noise))
        self._rng = random.Random(seed)  # noqa: S311

    @classmethod
    def spread(
        cls,
        items: Sequence[Item],
        low: float = 700.0,
        high: float = 1300.0,
        noise: float = 0.1,
        seed: int | None = None,
    ) -> SimulatedVoter:
        """Voter whose true ratings are a shuffled, evenly spaced ladder."""
        rng = random.Random(seed)  # noqa: S311
        step = (high - low) / max(len(items) - 1, 1)
        ladder = [low + i * step for i in range(len(items))]
        rng.shuffle(ladder)
        true_ratings = {item.id: rating for item, rating in zip(items, ladder, strict=True)}
        return cls(true_ratings, noise, seed)

    def win_probability(self, left_id: str, right_id: str) -> float:
        """Chance that the left item is preferred."""
        p = calculate_expected_score(self.true_ratings[left_id], self.true_ratings[right_id])
        return (1.0 - self.noise) * p + self.noise * 0.5

    def choose(self, left: Item, right: Item) -> tuple[str, str]:
        """Return (winner_id, loser_id) for a presented pair."""
        if self._rng.random() < self.win_probability(left.id, right.id):
            return left.id, right.id
        return right.id, left.id


def run_simulation(session: RankingSession, voter: SimulatedVoter, votes: int) -> None:
    """Alternate pair selection and voting ``votes`` times."""
    for n in range(votes):
        pair = session.next_pair()
        winner_id, loser_id = voter.choose(pair.left, pair.right)
        session.vote(winner_id, loser_id)
        logger.debug("simulated_vote", n=n, policy=pair.policy.value, winner=winner_id)


def rank_agreement(ranked: Sequence[RankedItem], true_ratings: Mapping[str, float]) -> float:
    """Fraction of item pairs ordered the same way as the hidden ratings.

    1.0 is a perfect ordering, about 0.5 is no better than chance.
    """
    scored = [(r.rating, true_ratings[r.id]) for r in ranked if r.id in true_ratings]
    total = 0
    concordant = 0
    for (est_a, true_a), (est_b, true_b) in itertools.combinations(scored, 2):
        if true_a == true_b:
            continue
        total += 1
        if (est_a - est_b) * (true_a - true_b) > 0:
            concordant += 1
    if total == 0:
        return 1.0
    return concordant / total
