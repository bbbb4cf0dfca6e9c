"""Uncertainty-scaled Elo updates for pairwise photo votes."""

from __future__ import annotations

from dataclasses import dataclass, replace

from photo_ranker.core.config import RatingConfig

DEFAULT_RATING_CONFIG = RatingConfig()


@dataclass(frozen=True)
class RatingState:
    """Rating of one participant before or after a match.

    Attributes:
        rating: Current skill estimate.
        uncertainty: Current confidence-interval proxy.
        matches: Number of matches played.
        wins: Number of wins.
        losses: Number of losses.
    """

    rating: float
    uncertainty: float
    matches: int = 0
    wins: int = 0
    losses: int = 0

    @classmethod
    def initial(cls, config: RatingConfig = DEFAULT_RATING_CONFIG) -> RatingState:
        """Prior state of an item that has never been compared."""
        return cls(rating=config.initial_rating, uncertainty=config.initial_uncertainty)


def calculate_expected_score(rating_a: float, rating_b: float) -> float:
    """Calculate expected score for player A against player B.

    Uses the logistic (Bradley-Terry) form of the Elo formula:
    E_A = 1 / (1 + 10^((R_B - R_A) / 400))

    Args:
        rating_a: Rating of player A.
        rating_b: Rating of player B.

    Returns:
        Probability that A wins (0.0 to 1.0).
    """
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400))


def step_size(uncertainty: float, config: RatingConfig = DEFAULT_RATING_CONFIG) -> float:
    """K-factor for a participant, proportional to its uncertainty.

    At the default scale an item at 300 uncertainty moves with K = 60,
    one at the 30 floor with K = 6.
    """
    return uncertainty / 400 * config.k_scale


def is_upset(
    winner_rating: float,
    loser_rating: float,
    config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> bool:
    """Whether the winner was judged unlikely to win before the match."""
    return calculate_expected_score(winner_rating, loser_rating) < config.upset_threshold


def _next_uncertainty(uncertainty: float, upset: bool, config: RatingConfig) -> float:
    if upset:
        return min(config.initial_uncertainty, uncertainty + config.upset_penalty)
    return max(config.min_uncertainty, uncertainty * config.decay_rate)


def update(
    winner: RatingState,
    loser: RatingState,
    config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> tuple[RatingState, RatingState]:
    """Apply one match outcome to both participants.

    Ratings move by K * (actual - expected), where each side's K follows its
    own pre-match uncertainty. Uncertainty shrinks geometrically after an
    expected result and grows back (capped at the prior) after an upset, so
    surprising outcomes reopen an item for comparison.

    Args:
        winner: State of the preferred item before the match.
        loser: State of the other item before the match.
        config: Rating constants.

    Returns:
        Tuple of (new_winner, new_loser).
    """
    expected_winner = calculate_expected_score(winner.rating, loser.rating)
    expected_loser = 1.0 - expected_winner
    upset = expected_winner < config.upset_threshold

    new_winner = replace(
        winner,
        rating=winner.rating + step_size(winner.uncertainty, config) * (1.0 - expected_winner),
        uncertainty=_next_uncertainty(winner.uncertainty, upset, config),
        matches=winner.matches + 1,
        wins=winner.wins + 1,
    )
    new_loser = replace(
        loser,
        rating=loser.rating + step_size(loser.uncertainty, config) * (0.0 - expected_loser),
        uncertainty=_next_uncertainty(loser.uncertainty, upset, config),
        matches=loser.matches + 1,
        losses=loser.losses + 1,
    )
    return new_winner, new_loser
