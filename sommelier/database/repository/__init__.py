"""
Database access layer for the sommelier store.

Provides high-level interface for database operations without exposing SQL queries.
Follows repository pattern for clean separation of concerns.
"""
from .cellar import CellarRepository
from .conversation import ConversationRepository
from .friend import FriendRepository
from .holding import HoldingRepository
from .rating import RatingRepository
from .wine import WineRepository

__all__ = [
    "CellarRepository",
    "ConversationRepository",
    "FriendRepository",
    "HoldingRepository",
    "RatingRepository",
    "WineRepository",
]
