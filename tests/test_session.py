"""Tests for the ranking session."""

import itertools
import random
import threading

import pytest

from photo_ranker.core.config import RankerConfig
from photo_ranker.core.errors import (
    InsufficientItemsError,
    MalformedEventError,
    UnknownParticipantError,
)
from photo_ranker.models import MatchEvent
from photo_ranker.ranking import snapshot
from photo_ranker.services import session as session_module
from photo_ranker.services.session import RankingSession
from photo_ranker.services.storage import EventStore, context_key

from .conftest import make_items


def fake_clock(start=1000.0):
    """Clock advancing one second per call."""
    counter = itertools.count()
    return lambda: start + next(counter)


@pytest.fixture
def store(tmp_path):
    event_store = EventStore(tmp_path / "votes.duckdb")
    yield event_store
    event_store.close()


class TestVote:
    """Tests for recording votes."""

    def test_vote_updates_snapshot(self, abc_items):
        session = RankingSession(abc_items, clock=fake_clock())
        event = session.vote("A", "B")

        assert event == MatchEvent("A", "B", 1_000_000.0)
        ranked = {r.id: r for r in session.snapshot}
        assert ranked["A"].rating > ranked["C"].rating > ranked["B"].rating
        assert session.events == [event]

    def test_explicit_timestamp(self, abc_items):
        session = RankingSession(abc_items)
        assert session.vote("A", "B", timestamp=5.0).timestamp == 5.0

    def test_unknown_id_rejected(self, abc_items):
        session = RankingSession(abc_items)
        with pytest.raises(UnknownParticipantError, match="ghost"):
            session.vote("A", "ghost")
        assert session.events == []

    def test_self_match_rejected(self, abc_items):
        session = RankingSession(abc_items)
        with pytest.raises(MalformedEventError):
            session.vote("A", "A")
        assert session.events == []

    def test_snapshot_matches_replay(self, ten_items):
        """Test the cached snapshot always equals a fresh replay."""
        session = RankingSession(ten_items, clock=fake_clock())
        ids = [item.id for item in ten_items]
        gen = random.Random(1)
        for _ in range(30):
            session.vote(*gen.sample(ids, 2))

        assert session.snapshot == snapshot(ten_items, session.events)

    def test_leaderboard_sorted(self, abc_items):
        session = RankingSession(abc_items, clock=fake_clock())
        session.vote("C", "A")
        session.vote("C", "B")

        assert session.leaderboard()[0].id == "C"

    def test_concurrent_votes_all_recorded(self, ten_items):
        session = RankingSession(ten_items)
        ids = [item.id for item in ten_items]

        def worker(seed):
            gen = random.Random(seed)
            for _ in range(25):
                session.vote(*gen.sample(ids, 2))

        threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(session.events) == 100
        assert sum(r.matches for r in session.snapshot) == 200

    def test_logged_totals_match_log_length(self, ten_items, monkeypatch):
        """Test each vote logs the log length it produced, even under contention."""
        recorded = []

        class RecordingLogger:
            def info(self, event, **kw):
                if event == "vote_recorded":
                    recorded.append(kw["total"])

            def debug(self, event, **kw):
                pass

        monkeypatch.setattr(session_module, "logger", RecordingLogger())
        session = RankingSession(ten_items)
        ids = [item.id for item in ten_items]

        def worker(seed):
            gen = random.Random(seed)
            for _ in range(25):
                session.vote(*gen.sample(ids, 2))

        threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(recorded) == list(range(1, 101))


class TestUndo:
    """Tests for undo."""

    def test_undo_restores_previous_snapshot(self, abc_items):
        session = RankingSession(abc_items, clock=fake_clock())
        session.vote("A", "B")
        before = session.snapshot
        session.vote("C", "A")

        removed = session.undo()

        assert removed.winner_id == "C"
        assert session.snapshot == before

    def test_undo_empty_log(self, abc_items):
        assert RankingSession(abc_items).undo() is None


class TestReplaceEvents:
    def test_replaces_log(self, abc_items):
        session = RankingSession(abc_items, clock=fake_clock())
        session.vote("A", "B")
        imported = [MatchEvent("C", "B", 1.0), MatchEvent("C", "A", 2.0)]

        session.replace_events(imported)

        assert session.events == imported
        assert session.leaderboard()[0].id == "C"


class TestNextPair:
    """Tests for pair selection through the session."""

    def test_insufficient_items(self):
        session = RankingSession(make_items("solo"))
        with pytest.raises(InsufficientItemsError):
            session.next_pair()

    def test_seeded_sessions_agree(self, ten_items):
        config = RankerConfig(seed=5)
        first = RankingSession(ten_items, config)
        second = RankingSession(ten_items, config)

        assert [first.next_pair() for _ in range(10)] == [second.next_pair() for _ in range(10)]

    def test_pairs_are_distinct_items(self, ten_items):
        session = RankingSession(ten_items, rng=random.Random(0), clock=fake_clock())
        for _ in range(50):
            pair = session.next_pair()
            assert pair.left.id != pair.right.id
            session.vote(pair.left.id, pair.right.id)


class TestPersistence:
    """Tests for sessions backed by an EventStore."""

    def test_store_requires_context(self, abc_items, store):
        with pytest.raises(ValueError, match="context"):
            RankingSession(abc_items, store=store)

    def test_resume_from_store(self, abc_items, store):
        context = context_key("42")
        session = RankingSession.open(abc_items, store, context)
        session.vote("A", "B", timestamp=1.0)
        session.vote("B", "C", timestamp=2.0)
        session.undo()
        session.vote("C", "A", timestamp=3.0)

        resumed = RankingSession.open(abc_items, store, context)

        assert resumed.events == [MatchEvent("A", "B", 1.0), MatchEvent("C", "A", 3.0)]
        assert resumed.snapshot == session.snapshot

    def test_replace_persists(self, abc_items, store):
        session = RankingSession.open(abc_items, store, "album_1")
        session.vote("A", "B", timestamp=1.0)
        session.replace_events([MatchEvent("B", "C", 7.0)])

        assert store.load_events("album_1") == [MatchEvent("B", "C", 7.0)]

    def test_contexts_do_not_mix(self, abc_items, store):
        RankingSession.open(abc_items, store, "album_1").vote("A", "B", timestamp=1.0)

        assert RankingSession.open(abc_items, store, "album_2").events == []

    def test_reopen_after_out_of_order_import(self, abc_items, store):
        """Test a log whose insertion order differs from time order replays identically."""
        base = 1760000000000.0
        imported = [
            MatchEvent("B", "A", base + 50),
            MatchEvent("A", "B", base + 10),
            MatchEvent("A", "C", base + 20),
        ]
        session = RankingSession.open(abc_items, store, "album_1")
        session.replace_events(imported)

        resumed = RankingSession.open(abc_items, store, "album_1")

        assert resumed.events == imported
        assert resumed.snapshot == session.snapshot

    def test_clock_timestamps_survive_reload(self, abc_items, store):
        session = RankingSession(
            abc_items, store=store, context="album_1", clock=lambda: 1760000000.123
        )
        event = session.vote("A", "B")

        assert event.timestamp == pytest.approx(1760000000123.0)
        assert store.load_events("album_1") == [event]

    def test_resumed_session_avoids_last_voted_pair(self, abc_items, store):
        RankingSession.open(abc_items, store, "album_1").vote("A", "B", timestamp=1.0)

        for seed in range(20):
            resumed = RankingSession.open(abc_items, store, "album_1", rng=random.Random(seed))
            assert resumed.next_pair().ids != {"A", "B"}


class TestRecentPair:
    def test_vote_counts_as_previous_pair(self, abc_items):
        """Test a pair just voted on is not suggested straight away."""
        for seed in range(20):
            session = RankingSession(abc_items, rng=random.Random(seed))
            session.vote("B", "C", timestamp=1.0)
            assert session.next_pair().ids != {"B", "C"}

    def test_import_sets_previous_pair(self, abc_items):
        for seed in range(20):
            session = RankingSession(abc_items, rng=random.Random(seed))
            session.replace_events([MatchEvent("A", "C", 1.0)])
            assert session.next_pair().ids != {"A", "C"}

    def test_event_pair(self):
        assert MatchEvent("A", "B", 1.0).pair == frozenset({"A", "B"})
