"""Durable storage for session state."""

from repodesk.database.models import SessionSlot
from repodesk.database.repository import SessionSlotRepository

__all__ = ["SessionSlot", "SessionSlotRepository"]
