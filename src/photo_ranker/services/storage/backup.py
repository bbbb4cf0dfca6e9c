"""Versioned JSON backups of a context's vote log."""

from __future__ import annotations

import json
import time
from collections.abc import Iterable, Mapping
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

from photo_ranker.core.errors import MalformedEventError
from photo_ranker.models import MatchEvent

BACKUP_TYPE = "portfolio_ranker_backup"
BACKUP_VERSION = 1
GLOBAL_BACKUP_CONTEXT = "global"


class EventPayload(BaseModel):
    """Wire shape of a single vote.

    Numbers are strict so a string timestamp is rejected rather than coerced.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    winner_id: str = Field(alias="winnerId", min_length=1)
    loser_id: str = Field(alias="loserId", min_length=1)
    timestamp: StrictInt | StrictFloat

    @field_validator("loser_id")
    @classmethod
    def validate_distinct(cls, v: str, info: pydantic.ValidationInfo) -> str:
        if v == info.data.get("winner_id"):
            msg = "winner and loser must differ"
            raise ValueError(msg)
        return v

    def to_event(self) -> MatchEvent:
        return MatchEvent(
            winner_id=self.winner_id,
            loser_id=self.loser_id,
            timestamp=float(self.timestamp),
        )


class BackupDocument(BaseModel):
    """Top-level backup file."""

    version: Literal[1] = BACKUP_VERSION
    type: Literal["portfolio_ranker_backup"] = BACKUP_TYPE
    context: str = GLOBAL_BACKUP_CONTEXT
    timestamp: StrictInt | StrictFloat
    data: list[EventPayload]


def _describe(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    return f"{location}: {first['msg']}"


def parse_event(raw: Mapping[str, Any]) -> MatchEvent:
    """Validate one raw event at the ingestion boundary.

    Args:
        raw: Mapping with ``winnerId``, ``loserId`` and ``timestamp``.

    Returns:
        The validated MatchEvent.

    Raises:
        MalformedEventError: If a field is missing, empty, or of the wrong type,
            or if the event pairs an item with itself.
    """
    try:
        return EventPayload.model_validate(raw).to_event()
    except pydantic.ValidationError as e:
        raise MalformedEventError(_describe(e)) from e


def export_backup(
    events: Iterable[MatchEvent],
    album_id: str | None = None,
    now: float | None = None,
) -> str:
    """Serialize a vote log to an indented JSON backup.

    Timestamps are written unchanged so an import replays identically.

    Args:
        events: Vote log in insertion order.
        album_id: Album the log belongs to, or None for the global stream.
        now: Export time in milliseconds (defaults to the wall clock).

    Returns:
        JSON document text.
    """
    document = {
        "version": BACKUP_VERSION,
        "type": BACKUP_TYPE,
        "context": album_id or GLOBAL_BACKUP_CONTEXT,
        "timestamp": now if now is not None else int(time.time() * 1000),
        "data": [
            {"winnerId": e.winner_id, "loserId": e.loser_id, "timestamp": e.timestamp}
            for e in events
        ],
    }
    return json.dumps(document, indent=2)


def import_backup(text: str) -> tuple[str | None, list[MatchEvent]]:
    """Parse a backup produced by :func:`export_backup`.

    Args:
        text: JSON document text.

    Returns:
        Tuple of (album_id or None for the global stream, events in file order).

    Raises:
        MalformedEventError: If the text is not a valid backup document.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"backup is not valid JSON ({e.msg})") from e

    if not isinstance(raw, dict):
        raise MalformedEventError("backup must be a JSON object")
    if raw.get("type") != BACKUP_TYPE:
        raise MalformedEventError(f"unsupported backup type {raw.get('type')!r}")

    try:
        document = BackupDocument.model_validate(raw)
    except pydantic.ValidationError as e:
        raise MalformedEventError(_describe(e)) from e

    album_id = None if document.context == GLOBAL_BACKUP_CONTEXT else document.context
    return album_id, [payload.to_event() for payload in document.data]
