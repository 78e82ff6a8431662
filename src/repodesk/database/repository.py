"""Session slot repository with async session management."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from repodesk.database.engine import create_db_engine, create_db_tables
from repodesk.database.models import SessionSlot

if TYPE_CHECKING:
    from pathlib import Path


class SessionSlotRepository:
    """Load, save and delete serialized session payloads by key."""

    def __init__(self, db_path: str | Path = ".repodesk/state.db") -> None:
        self.db_path = db_path
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize engine and create tables."""
        self._engine = await create_db_engine(self.db_path)
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        await create_db_tables(self._engine)

    async def close(self) -> None:
        """Close engine and release resources."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _get_session(self) -> AsyncSession:
        assert self._session_factory, "Repository not initialized"
        return self._session_factory()

    async def load(self, key: str) -> str | None:
        async with self._get_session() as session:
            slot = await session.get(SessionSlot, key)
            return slot.payload if slot else None

    async def save(self, key: str, payload: str) -> None:
        async with self._lock:
            async with self._get_session() as session:
                slot = await session.get(SessionSlot, key)
                if slot is None:
                    slot = SessionSlot(key=key, payload=payload)
                else:
                    slot.payload = payload
                    slot.updated_at = datetime.now()
                session.add(slot)
                await session.commit()

    async def delete(self, key: str) -> bool:
        async with self._lock:
            async with self._get_session() as session:
                slot = await session.get(SessionSlot, key)
                if slot is None:
                    return False
                await session.delete(slot)
                await session.commit()
                return True
