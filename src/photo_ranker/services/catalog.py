"""Catalog loading: turn a manifest file into immutable Items."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pydantic
import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field

from photo_ranker.core.errors import CatalogError
from photo_ranker.models import Item

logger = structlog.get_logger()

DEMO_CATALOG_SIZE = 20


class CatalogEntry(BaseModel):
    """One photo in a catalog manifest.

    Flickr-style ids are often written unquoted in YAML, so numbers are
    accepted and kept as their string form.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = Field(min_length=1)
    url: str = Field(min_length=1)
    title: str | None = None
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)

    def to_item(self) -> Item:
        return Item(
            id=self.id,
            url=self.url,
            title=self.title or "Untitled",
            width=self.width,
            height=self.height,
        )


def _read_manifest(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Could not parse catalog {path}: {e}"
        raise CatalogError(msg) from e


def load_catalog(path: str | Path) -> list[Item]:
    """Load catalog items from a YAML or JSON manifest.

    The manifest is either a list of entries or a mapping with an ``items``
    list. Each entry needs ``id`` and ``url``; ``title`` defaults to
    "Untitled".

    Args:
        path: Path to the manifest.

    Returns:
        Items in manifest order.

    Raises:
        FileNotFoundError: If the manifest doesn't exist.
        CatalogError: If the manifest is malformed or repeats an id.
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        msg = f"Catalog file not found: {catalog_path}"
        raise FileNotFoundError(msg)

    data = _read_manifest(catalog_path)
    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        msg = f"Catalog {catalog_path} must be a list of items or contain an 'items' list"
        raise CatalogError(msg)

    items: list[Item] = []
    seen: set[str] = set()
    for index, raw in enumerate(data):
        try:
            entry = CatalogEntry.model_validate(raw)
        except pydantic.ValidationError as e:
            msg = f"Invalid catalog entry at index {index}: {e.errors()[0]['msg']}"
            raise CatalogError(msg) from e
        if entry.id in seen:
            msg = f"Duplicate catalog id {entry.id!r} at index {index}"
            raise CatalogError(msg)
        seen.add(entry.id)
        items.append(entry.to_item())

    logger.info("catalog_loaded", path=str(catalog_path), items=len(items))
    return items


def demo_catalog(count: int = DEMO_CATALOG_SIZE) -> list[Item]:
    """Placeholder landscapes for trying the ranker without a real catalog."""
    return [
        Item(
            id=f"demo-{i}",
            url=f"https://picsum.photos/seed/{i + 123}/800/600",
            title=f"Demo Landscape {i + 1}",
        )
        for i in range(count)
    ]
