from photo_ranker.models.item import Item, MatchEvent, RankedItem
from photo_ranker.models.match import MatchRecord

__all__ = ["Item", "MatchEvent", "MatchRecord", "RankedItem"]
