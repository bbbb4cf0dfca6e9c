"""Value types shared by the rating engine and matchmaking."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Item:
    """A photo in the catalog.

    Attributes:
        id: Catalog identifier, unique within a catalog load.
        url: Display URL of the image.
        title: Human-readable title.
        width: Optional pixel width.
        height: Optional pixel height.
    """

    id: str
    url: str
    title: str = "Untitled"
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class MatchEvent:
    """One recorded vote: the user preferred ``winner_id`` over ``loser_id``.

    ``timestamp`` is in milliseconds (wall clock or monotonic); replay order
    is by timestamp, not by arrival.
    """

    winner_id: str
    loser_id: str
    timestamp: float

    @property
    def pair(self) -> frozenset[str]:
        return frozenset((self.winner_id, self.loser_id))


@dataclass(frozen=True)
class RankedItem:
    """Derived per-item state produced by history replay.

    Attributes:
        item: The catalog item.
        rating: Current skill estimate.
        uncertainty: Current confidence-interval proxy.
        matches: Number of comparisons played.
        wins: Number of comparisons won.
        losses: Number of comparisons lost.
    """

    item: Item
    rating: float
    uncertainty: float
    matches: int = 0
    wins: int = 0
    losses: int = 0

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def placed(self) -> bool:
        """Whether the item has been compared at least once."""
        return self.matches > 0
