"""SQLModel tables."""

# SQLModel evaluates annotations at runtime, so no `from __future__ import annotations`.

from datetime import datetime

from sqlmodel import Field, SQLModel


class SessionSlot(SQLModel, table=True):
    """Durable slot holding the serialized view state of one logical session."""

    __tablename__ = "session_slots"

    key: str = Field(primary_key=True, max_length=200)
    payload: str = Field(default="")
    updated_at: datetime = Field(default_factory=datetime.now)
