"""Shared fixtures for photo ranker tests."""

import pytest

from photo_ranker.models import Item


def make_items(*ids: str) -> list[Item]:
    return [
        Item(id=item_id, url=f"https://example.com/{item_id}.jpg", title=item_id)
        for item_id in ids
    ]


@pytest.fixture
def abc_items():
    """Three catalog items A, B and C."""
    return make_items("A", "B", "C")


@pytest.fixture
def ten_items():
    """Ten catalog items p0..p9."""
    return make_items(*(f"p{i}" for i in range(10)))
