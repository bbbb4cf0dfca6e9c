"""History replay: rebuild every item's rating from the full vote log."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog

from photo_ranker.core.config import RatingConfig
from photo_ranker.models import Item, MatchEvent, RankedItem
from photo_ranker.ranking.rating import DEFAULT_RATING_CONFIG, RatingState, is_upset, update

logger = structlog.get_logger()


def sort_events(events: Iterable[MatchEvent]) -> list[MatchEvent]:
    """Order events for replay: timestamp ascending, insertion order on ties."""
    return sorted(events, key=lambda e: e.timestamp)


def snapshot(
    items: Sequence[Item],
    events: Iterable[MatchEvent],
    config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> list[RankedItem]:
    """Replay the vote log from the prior and return the resulting state.

    The fold is strictly sequential: each update reads the ratings left by
    every earlier event, so events are sorted by timestamp first and never
    applied out of order. Events naming an id outside ``items`` (stale logs,
    partial imports) or pairing an item with itself are skipped without
    touching either side.

    Args:
        items: Catalog items, in the order the result should follow.
        events: Vote log, in insertion order.
        config: Rating constants.

    Returns:
        One RankedItem per distinct item id, in input order. Sort by rating
        for a leaderboard.
    """
    states: dict[str, RatingState] = {}
    catalog: dict[str, Item] = {}
    for item in items:
        if item.id in catalog:
            logger.warning("duplicate_item_skipped", item_id=item.id)
            continue
        catalog[item.id] = item
        states[item.id] = RatingState.initial(config)

    skipped = 0
    for event in sort_events(events):
        winner = states.get(event.winner_id)
        loser = states.get(event.loser_id)
        if winner is None or loser is None:
            skipped += 1
            logger.debug(
                "unknown_participant_skipped",
                winner=event.winner_id,
                loser=event.loser_id,
                timestamp=event.timestamp,
            )
            continue
        if event.winner_id == event.loser_id:
            skipped += 1
            logger.debug("self_match_skipped", item_id=event.winner_id, timestamp=event.timestamp)
            continue

        if is_upset(winner.rating, loser.rating, config):
            logger.debug("upset", winner=event.winner_id, loser=event.loser_id)
        states[event.winner_id], states[event.loser_id] = update(winner, loser, config)

    if skipped:
        logger.info("replay_skipped_events", count=skipped)

    return [
        RankedItem(
            item=item,
            rating=states[item_id].rating,
            uncertainty=states[item_id].uncertainty,
            matches=states[item_id].matches,
            wins=states[item_id].wins,
            losses=states[item_id].losses,
        )
        for item_id, item in catalog.items()
    ]


def leaderboard(ranked: Iterable[RankedItem]) -> list[RankedItem]:
    """Sort a snapshot by rating descending; equal ratings keep snapshot order."""
    return sorted(ranked, key=lambda r: r.rating, reverse=True)
