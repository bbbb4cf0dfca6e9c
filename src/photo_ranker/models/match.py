import uuid

from sqlalchemy import Column, Double
from sqlmodel import Field, SQLModel


class MatchRecord(SQLModel, table=True):
    """A persisted vote within one ranking context."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    context: str = Field(index=True)
    seq: int = Field(index=True)  # insertion order within the context
    winner_id: str
    loser_id: str
    # Milliseconds since the epoch need double precision
    timestamp: float = Field(sa_column=Column(Double, nullable=False))
