"""Leaderboard reporting for the photo ranker."""

from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path
from typing import TypedDict

from tabulate import tabulate

from photo_ranker.models import RankedItem
from photo_ranker.ranking import leaderboard

LEADERBOARD_HEADERS = ("Rank", "ID", "Title", "Rating", "±", "W-L")
CSV_FIELDS = ("rank", "id", "title", "url", "rating", "uncertainty", "matches", "wins", "losses")
MAX_TITLE_LENGTH = 40


class LeaderboardSummary(TypedDict):
    """Headline numbers for a snapshot."""

    comparisons: int
    max_rating: float
    total_items: int
    placed_items: int


def summary(ranked: Sequence[RankedItem]) -> LeaderboardSummary:
    """Summarize a snapshot.

    Every comparison is counted once per participant, so the number of
    comparisons is half the total match count.
    """
    return {
        "comparisons": sum(r.matches for r in ranked) // 2,
        "max_rating": max((r.rating for r in ranked), default=0.0),
        "total_items": len(ranked),
        "placed_items": sum(1 for r in ranked if r.placed),
    }


def _truncate(value: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 1] + "…"


def render_leaderboard(ranked: Sequence[RankedItem], top: int | None = None) -> str:
    """Render a snapshot as a GitHub-flavoured markdown table.

    Args:
        ranked: Snapshot in any order.
        top: Only show the first N rows.

    Returns:
        Markdown table sorted by rating descending.
    """
    ordered = leaderboard(ranked)
    if top is not None:
        ordered = ordered[:top]
    rows = [
        (
            rank,
            r.id,
            _truncate(r.item.title),
            f"{r.rating:.0f}",
            f"{r.uncertainty:.0f}",
            f"{r.wins}-{r.losses}",
        )
        for rank, r in enumerate(ordered, start=1)
    ]
    return tabulate(rows, headers=LEADERBOARD_HEADERS, tablefmt="github")


def write_leaderboard_csv(ranked: Sequence[RankedItem], path: str | Path) -> Path:
    """Export the leaderboard to CSV.

    Args:
        ranked: Snapshot in any order.
        path: Destination file.

    Returns:
        Path of the written file.
    """
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for rank, r in enumerate(leaderboard(ranked), start=1):
            writer.writerow(
                {
                    "rank": rank,
                    "id": r.id,
                    "title": r.item.title,
                    "url": r.item.url,
                    "rating": round(r.rating, 2),
                    "uncertainty": round(r.uncertainty, 2),
                    "matches": r.matches,
                    "wins": r.wins,
                    "losses": r.losses,
                }
            )
    return csv_path
