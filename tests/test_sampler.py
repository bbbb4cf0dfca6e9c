"""Tests for adaptive pair selection."""

import random

import pytest

from photo_ranker.core.config import MatchmakingConfig
from photo_ranker.core.errors import InsufficientItemsError
from photo_ranker.matchmaking import (
    POLICIES,
    Policy,
    choose_policy,
    exploration_pair,
    placement_pair,
    refinement_pair,
    select_pair,
)
from photo_ranker.matchmaking.sampler import (
    RATIONALE_EQUIVALENT,
    RATIONALE_EXPLORATION,
    RATIONALE_PLACEMENT,
    RATIONALE_REFINEMENT,
    RATIONALE_VOLATILE,
)
from photo_ranker.models import Item, MatchEvent, RankedItem
from photo_ranker.ranking import snapshot

from .conftest import make_items


class ScriptedRng:
    """Deterministic stand-in for ``random.Random``.

    ``random()`` replays a fixed draw, ``choice()`` takes the first element and
    ``sample()`` slides a window over the population on each call.
    """

    def __init__(self, draw=0.0, rotate_samples=True):
        self.draw = draw
        self.rotate_samples = rotate_samples
        self.sample_calls = 0

    def random(self):
        return self.draw

    def choice(self, seq):
        return seq[0]

    def sample(self, population, k):
        offset = self.sample_calls if self.rotate_samples else 0
        self.sample_calls += 1
        return [population[(offset + i) % len(population)] for i in range(k)]


def ranked_item(item_id, rating=1000.0, uncertainty=300.0, matches=0):
    item = Item(id=item_id, url=f"https://example.com/{item_id}.jpg", title=item_id)
    return RankedItem(
        item=item, rating=rating, uncertainty=uncertainty, matches=matches, wins=matches
    )


class TestChoosePolicy:
    """Tests for mapping a draw to a policy."""

    def test_placement_when_unplaced_exist(self):
        ranked = [ranked_item("a"), ranked_item("b", matches=3)]
        assert choose_policy(ranked, 0.5) is Policy.PLACEMENT

    def test_placement_skipped_for_low_draws(self):
        """Test the skip slice falls through to exploration."""
        ranked = [ranked_item("a"), ranked_item("b", matches=3)]
        assert choose_policy(ranked, 0.05) is Policy.EXPLORATION

    def test_exploration_when_all_placed(self):
        ranked = [ranked_item("a", matches=1), ranked_item("b", matches=1)]
        assert choose_policy(ranked, 0.1) is Policy.EXPLORATION

    def test_refinement_when_all_placed(self):
        ranked = [ranked_item("a", matches=1), ranked_item("b", matches=1)]
        assert choose_policy(ranked, 0.15) is Policy.REFINEMENT
        assert choose_policy(ranked, 0.99) is Policy.REFINEMENT

    def test_rates_are_configurable(self):
        ranked = [ranked_item("a", matches=1), ranked_item("b", matches=1)]
        config = MatchmakingConfig(exploration_rate=0.0)
        assert choose_policy(ranked, 0.0, config) is Policy.REFINEMENT

    def test_every_policy_has_a_handler(self):
        assert set(POLICIES) == set(Policy)


class TestPlacementPair:
    """Tests for placing never-compared items."""

    def test_prefers_anchor(self):
        """Test a stable near-average item is the opponent."""
        ranked = [
            ranked_item("new"),
            ranked_item("far", rating=1300, uncertainty=60, matches=9),
            ranked_item("green", rating=1000, uncertainty=200, matches=2),
            ranked_item("anchor", rating=1060, uncertainty=80, matches=6),
        ]
        for seed in range(20):
            a, b, rationale = placement_pair(ranked, random.Random(seed))
            assert a.id == "new"
            assert b.id == "anchor"
            assert rationale == RATIONALE_PLACEMENT

    def test_falls_back_to_placed_items(self):
        ranked = [
            ranked_item("new"),
            ranked_item("other-new"),
            ranked_item("placed", rating=1400, matches=1),
        ]
        _, opponent, _ = placement_pair(ranked, ScriptedRng())
        assert opponent.id == "placed"

    def test_falls_back_to_any_other_item(self):
        """Test a fresh catalog still yields two distinct items."""
        ranked = [ranked_item("a"), ranked_item("b")]
        newcomer, opponent, _ = placement_pair(ranked, ScriptedRng())
        assert (newcomer.id, opponent.id) == ("a", "b")


class TestExplorationPair:
    def test_distinct_items(self):
        ranked = [ranked_item(f"p{i}", matches=1) for i in range(5)]
        for seed in range(50):
            a, b, rationale = exploration_pair(ranked, random.Random(seed))
            assert a.id != b.id
            assert rationale == RATIONALE_EXPLORATION


class TestRefinementPair:
    """Tests for refining uncertain items against close neighbours."""

    def test_volatile_label(self):
        ranked = [
            ranked_item("a", rating=1000, uncertainty=200, matches=3),
            ranked_item("b", rating=1010, uncertainty=100, matches=3),
            ranked_item("c", rating=1200, uncertainty=50, matches=3),
        ]
        a, b, rationale = refinement_pair(ranked, ScriptedRng())
        assert (a.id, b.id) == ("a", "b")
        assert rationale == RATIONALE_VOLATILE

    def test_equivalent_label(self):
        ranked = [
            ranked_item("a", rating=1000, uncertainty=100, matches=3),
            ranked_item("b", rating=1010, uncertainty=80, matches=3),
            ranked_item("c", rating=1200, uncertainty=50, matches=3),
        ]
        _, _, rationale = refinement_pair(ranked, ScriptedRng())
        assert rationale == RATIONALE_EQUIVALENT

    def test_plain_label(self):
        ranked = [
            ranked_item("a", rating=1000, uncertainty=100, matches=3),
            ranked_item("b", rating=1100, uncertainty=80, matches=3),
            ranked_item("c", rating=1300, uncertainty=50, matches=3),
        ]
        _, b, rationale = refinement_pair(ranked, ScriptedRng())
        assert b.id == "b"
        assert rationale == RATIONALE_REFINEMENT

    def test_first_seen_wins_gap_ties(self):
        ranked = [
            ranked_item("a", rating=1000, uncertainty=100, matches=3),
            ranked_item("above", rating=1050, uncertainty=80, matches=3),
            ranked_item("below", rating=950, uncertainty=50, matches=3),
        ]
        _, b, _ = refinement_pair(ranked, ScriptedRng())
        assert b.id == "above"

    def test_target_drawn_from_most_uncertain(self):
        """Test side A always comes from the top-N uncertainty pool."""
        ranked = [
            ranked_item(f"p{i}", rating=1000 + i, uncertainty=30 + i * 10, matches=4)
            for i in range(12)
        ]
        pool = {f"p{i}" for i in range(4, 12)}
        for seed in range(40):
            a, b, _ = refinement_pair(ranked, random.Random(seed))
            assert a.id in pool
            assert a.id != b.id


class TestSelectPair:
    """Tests for the full selection loop."""

    def test_fewer_than_two_items(self):
        with pytest.raises(InsufficientItemsError):
            select_pair([], None, random.Random(0))
        with pytest.raises(InsufficientItemsError):
            select_pair([ranked_item("solo")], None, random.Random(0))

    def test_two_items_always_pair_each_other(self):
        ranked = [ranked_item("a"), ranked_item("b")]
        for seed in range(20):
            selection = select_pair(ranked, None, random.Random(seed))
            assert selection.ids == {"a", "b"}

    def test_never_a_self_match(self, ten_items):
        ids = [item.id for item in ten_items]
        gen = random.Random(7)
        events = []
        for t in range(40):
            winner, loser = gen.sample(ids, 2)
            events.append(MatchEvent(winner, loser, float(t)))
        ranked = snapshot(ten_items, events)

        rng = random.Random(11)
        recent = None
        for _ in range(300):
            selection = select_pair(ranked, recent, rng)
            assert selection.left.id != selection.right.id
            recent = selection.ids

    def test_redraws_repeat(self):
        """Test a candidate equal to the previous pair is redrawn."""
        ranked = [ranked_item(i, matches=1) for i in ("p0", "p1", "p2")]
        rng = ScriptedRng(draw=0.0)

        selection = select_pair(ranked, {"p0", "p1"}, rng)

        assert selection.policy is Policy.EXPLORATION
        assert selection.ids == {"p1", "p2"}
        assert rng.sample_calls == 2

    def test_accepts_repeat_after_max_attempts(self):
        ranked = [ranked_item("p0", matches=1), ranked_item("p1", matches=1)]
        rng = ScriptedRng(draw=0.0, rotate_samples=False)

        selection = select_pair(ranked, {"p0", "p1"}, rng, MatchmakingConfig(max_repeat_attempts=3))

        assert selection.ids == {"p0", "p1"}
        assert rng.sample_calls == 3

    def test_orientation_follows_draw(self):
        ranked = [ranked_item("p0", matches=1), ranked_item("p1", matches=1)]

        swapped = select_pair(ranked, None, ScriptedRng(draw=0.0))
        assert (swapped.left.id, swapped.right.id) == ("p1", "p0")

        kept = select_pair(ranked, None, ScriptedRng(draw=0.9))
        assert kept.policy is Policy.REFINEMENT
        assert (kept.left.id, kept.right.id) == ("p0", "p1")

    def test_reproducible_with_seed(self):
        items = make_items(*(f"p{i}" for i in range(6)))
        ranked = snapshot(items, [])

        first = [select_pair(ranked, None, random.Random(42)) for _ in range(3)]
        second = [select_pair(ranked, None, random.Random(42)) for _ in range(3)]

        assert first == second

    def test_placement_reaches_every_new_item(self):
        """Test repeated selection eventually shows every unplaced item."""
        items = make_items(*(f"p{i}" for i in range(6)))
        ranked = snapshot(items, [])
        rng = random.Random(3)
        seen = set()
        for _ in range(200):
            seen |= select_pair(ranked, None, rng).ids
        assert seen == {item.id for item in items}
