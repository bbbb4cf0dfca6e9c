"""Photo Ranker.

Rank a photo catalog from pairwise preference votes with an
uncertainty-aware Elo model and adaptive pair selection.
"""

from photo_ranker.matchmaking import PairSelection, Policy, select_pair
from photo_ranker.models import Item, MatchEvent, RankedItem
from photo_ranker.ranking import snapshot, update

__version__ = "0.1.0"
__all__ = [
    "Item",
    "MatchEvent",
    "PairSelection",
    "Policy",
    "RankedItem",
    "__version__",
    "select_pair",
    "snapshot",
    "update",
]
