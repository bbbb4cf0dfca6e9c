"""Event log persistence using SQLModel on DuckDB."""

from __future__ import annotations

import gc
from collections.abc import Iterable
from pathlib import Path

import structlog
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, col, create_engine, func, select

from photo_ranker.models import MatchEvent, MatchRecord

logger = structlog.get_logger()

GLOBAL_CONTEXT = "global_stream"


def context_key(album_id: str | None = None) -> str:
    """Storage key for an album's log, or the global photostream log."""
    return f"album_{album_id}" if album_id else GLOBAL_CONTEXT


def _to_event(record: MatchRecord) -> MatchEvent:
    return MatchEvent(
        winner_id=record.winner_id,
        loser_id=record.loser_id,
        timestamp=record.timestamp,
    )


class EventStore:
    """Persistence layer for vote logs, one log per ranking context.

    Only the raw events are stored. Ratings are always recomputed from them,
    so nothing derived is ever written here.
    """

    def __init__(self, db_path: str | Path) -> None:
        """Open (or create) the event database.

        Args:
            db_path: Path to the DuckDB file.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # NullPool avoids holding the DuckDB file open between calls
        self._engine = create_engine(f"duckdb:///{self.db_path}", poolclass=NullPool)
        SQLModel.metadata.create_all(self._engine)
        logger.info("store_init", path=str(self.db_path))

    def load_events(self, context: str) -> list[MatchEvent]:
        """Load a context's events in insertion order."""
        with Session(self._engine) as session:
            statement = (
                select(MatchRecord)
                .where(MatchRecord.context == context)
                .order_by(col(MatchRecord.seq))
            )
            return [_to_event(r) for r in session.exec(statement).all()]

    def count(self, context: str) -> int:
        """Number of events stored for a context."""
        with Session(self._engine) as session:
            statement = select(func.count()).select_from(MatchRecord).where(
                MatchRecord.context == context
            )
            return int(session.exec(statement).one())

    def contexts(self) -> list[str]:
        """All contexts with at least one stored event."""
        with Session(self._engine) as session:
            statement = select(MatchRecord.context).distinct().order_by(col(MatchRecord.context))
            return list(session.exec(statement).all())

    def append_event(self, context: str, event: MatchEvent) -> None:
        """Append one event to the end of a context's log."""
        with Session(self._engine) as session:
            last_seq = session.exec(
                select(func.max(MatchRecord.seq)).where(MatchRecord.context == context)
            ).one()
            seq = 0 if last_seq is None else last_seq + 1
            session.add(
                MatchRecord(
                    context=context,
                    seq=seq,
                    winner_id=event.winner_id,
                    loser_id=event.loser_id,
                    timestamp=event.timestamp,
                )
            )
            session.commit()
        logger.debug("event_appended", context=context, seq=seq)

    def drop_last(self, context: str) -> MatchEvent | None:
        """Remove and return the most recently appended event, if any."""
        with Session(self._engine) as session:
            statement = (
                select(MatchRecord)
                .where(MatchRecord.context == context)
                .order_by(col(MatchRecord.seq).desc())
                .limit(1)
            )
            record = session.exec(statement).first()
            if record is None:
                return None
            event = _to_event(record)
            session.delete(record)
            session.commit()
        logger.debug("event_dropped", context=context)
        return event

    def replace_events(self, context: str, events: Iterable[MatchEvent]) -> int:
        """Replace a context's whole log, keeping the given insertion order.

        Returns:
            Number of events written.
        """
        with Session(self._engine) as session:
            existing = session.exec(select(MatchRecord).where(MatchRecord.context == context))
            for record in existing.all():
                session.delete(record)
            written = 0
            for seq, event in enumerate(events):
                session.add(
                    MatchRecord(
                        context=context,
                        seq=seq,
                        winner_id=event.winner_id,
                        loser_id=event.loser_id,
                        timestamp=event.timestamp,
                    )
                )
                written += 1
            session.commit()
        logger.info("events_replaced", context=context, count=written)
        return written

    def close(self) -> None:
        """Dispose the engine and release the database file."""
        self._engine.dispose()
        gc.collect()
