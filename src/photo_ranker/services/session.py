"""Ranking session: the single writer of a vote log."""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable, Iterable, Sequence

import structlog

from photo_ranker.core.config import RankerConfig
from photo_ranker.core.errors import MalformedEventError, UnknownParticipantError
from photo_ranker.matchmaking import PairSelection, RandomSource, select_pair
from photo_ranker.models import Item, MatchEvent, RankedItem
from photo_ranker.ranking import leaderboard, snapshot
from photo_ranker.services.storage import EventStore

logger = structlog.get_logger()


def _last_pair(events: Sequence[MatchEvent]) -> frozenset[str]:
    """Ids of the most recently logged vote; resumed sessions avoid re-suggesting it."""
    return events[-1].pair if events else frozenset()


class RankingSession:
    """Owns one context's vote log and keeps its snapshot current.

    Every mutation (vote, undo, import) changes the log and then replays it
    from scratch, both under one lock, so readers never observe a snapshot
    computed from a half-written log. When a store is attached each mutation
    is persisted before the snapshot is rebuilt.
    """

    def __init__(
        self,
        items: Sequence[Item],
        config: RankerConfig | None = None,
        *,
        events: Iterable[MatchEvent] = (),
        store: EventStore | None = None,
        context: str | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize a session.

        Args:
            items: Catalog items for this session.
            config: Ranker configuration (defaults when None).
            events: Existing vote log, in insertion order.
            store: Optional persistence for the log.
            context: Storage key; required when a store is given.
            rng: Random source for pair selection (seeded from config when None).
            clock: Wall clock in seconds, used to timestamp new votes.
        """
        if store is not None and context is None:
            msg = "a context is required when a store is attached"
            raise ValueError(msg)
        self.items = list(items)
        self.config = config or RankerConfig()
        self.store = store
        self.context = context
        self.rng: RandomSource = rng or random.Random(self.config.seed)  # noqa: S311
        self._clock = clock
        self._item_ids = {item.id for item in self.items}
        self._events: list[MatchEvent] = list(events)
        self._recent_pair = _last_pair(self._events)
        self._lock = threading.Lock()
        self._snapshot: list[RankedItem] = []
        self._recompute()

    @classmethod
    def open(
        cls,
        items: Sequence[Item],
        store: EventStore,
        context: str,
        config: RankerConfig | None = None,
        rng: RandomSource | None = None,
    ) -> RankingSession:
        """Resume a session from the log persisted under ``context``."""
        events = store.load_events(context)
        logger.info("session_opened", context=context, events=len(events), items=len(items))
        return cls(items, config, events=events, store=store, context=context, rng=rng)

    @property
    def events(self) -> list[MatchEvent]:
        """Copy of the vote log in insertion order."""
        with self._lock:
            return list(self._events)

    @property
    def snapshot(self) -> list[RankedItem]:
        """Current per-item state, in catalog order."""
        with self._lock:
            return list(self._snapshot)

    def leaderboard(self) -> list[RankedItem]:
        """Current state sorted by rating descending."""
        return leaderboard(self.snapshot)

    def _recompute(self) -> None:
        self._snapshot = snapshot(self.items, self._events, self.config.rating)

    def vote(self, winner_id: str, loser_id: str, timestamp: float | None = None) -> MatchEvent:
        """Record that ``winner_id`` was preferred over ``loser_id``.

        Args:
            winner_id: Id of the preferred item.
            loser_id: Id of the other item.
            timestamp: Event time in milliseconds (defaults to the clock).

        Returns:
            The appended event.

        Raises:
            UnknownParticipantError: If either id is not in the catalog.
            MalformedEventError: If both ids are the same item.
        """
        for item_id in (winner_id, loser_id):
            if item_id not in self._item_ids:
                raise UnknownParticipantError(item_id)
        if winner_id == loser_id:
            raise MalformedEventError("winner and loser must differ")

        event = MatchEvent(
            winner_id=winner_id,
            loser_id=loser_id,
            timestamp=timestamp if timestamp is not None else self._clock() * 1000,
        )
        with self._lock:
            if self.store is not None and self.context is not None:
                self.store.append_event(self.context, event)
            self._events.append(event)
            self._recent_pair = event.pair
            self._recompute()
            total = len(self._events)
        logger.info("vote_recorded", winner=winner_id, loser=loser_id, total=total)
        return event

    def undo(self) -> MatchEvent | None:
        """Drop the most recent vote.

        Returns:
            The removed event, or None when the log is empty.
        """
        with self._lock:
            if not self._events:
                return None
            if self.store is not None and self.context is not None:
                self.store.drop_last(self.context)
            event = self._events.pop()
            self._recompute()
        logger.info("vote_undone", winner=event.winner_id, loser=event.loser_id)
        return event

    def replace_events(self, events: Iterable[MatchEvent]) -> None:
        """Replace the whole log, as after an import."""
        new_events = list(events)
        with self._lock:
            if self.store is not None and self.context is not None:
                self.store.replace_events(self.context, new_events)
            self._events = new_events
            self._recent_pair = _last_pair(new_events)
            self._recompute()
        logger.info("events_imported", count=len(new_events))

    def next_pair(self) -> PairSelection:
        """Pick the next pair, avoiding an immediate repeat of the previous one.

        Raises:
            InsufficientItemsError: If the catalog holds fewer than two items.
        """
        with self._lock:
            selection = select_pair(
                self._snapshot,
                self._recent_pair,
                self.rng,
                self.config.matchmaking,
                self.config.rating,
            )
            self._recent_pair = selection.ids
        logger.debug("next_pair", policy=selection.policy.value, rationale=selection.rationale)
        return selection
