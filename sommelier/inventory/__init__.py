"""Read-only views over the user's inventory and contacts."""

from .index import InventoryIndex, SQLiteInventoryIndex
from .contacts import ContactDirectory, SQLiteContactDirectory

__all__ = [
    "InventoryIndex",
    "SQLiteInventoryIndex",
    "ContactDirectory",
    "SQLiteContactDirectory",
]
