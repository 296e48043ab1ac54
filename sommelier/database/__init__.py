"""Database package for the sommelier store."""

from .db import get_db_connection, initialize_database, drop_all_tables
from .models import (
    WineType, HoldingStatus, PreferenceType, MessageRole,
    WineRecord, Cellar, CellarLocation, InventoryHolding, Rating, TasteProfile,
    Friend, FoodPreference, Conversation, ConversationTurn,
)

__all__ = [
    'get_db_connection',
    'initialize_database',
    'drop_all_tables',
    'WineType',
    'HoldingStatus',
    'PreferenceType',
    'MessageRole',
    'WineRecord',
    'Cellar',
    'CellarLocation',
    'InventoryHolding',
    'Rating',
    'TasteProfile',
    'Friend',
    'FoodPreference',
    'Conversation',
    'ConversationTurn',
]
