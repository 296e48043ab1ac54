"""
Inventory Index: read-only view of a user's catalog and holdings.

The matcher and the agent tools only depend on the InventoryIndex protocol;
SQLiteInventoryIndex implements it over the repositories.
"""
from typing import Protocol, runtime_checkable

from sommelier.database.models import InventoryHolding, Rating, TasteProfile, WineRecord
from sommelier.database.repository import CellarRepository, HoldingRepository, RatingRepository, WineRepository


@runtime_checkable
class InventoryIndex(Protocol):
    """Read-only queries over a user's wines and holdings."""

    def holdings_for(self, user_id: str) -> list[InventoryHolding]: ...

    def wine_by_id(self, wine_id: str) -> WineRecord | None: ...

    def wine_set_for(self, user_id: str) -> list[WineRecord]: ...

    def rating_for(self, user_id: str, wine_id: str) -> Rating | None: ...

    def taste_profile_for(self, user_id: str, wine_id: str) -> TasteProfile | None: ...

    def cellar_count_for(self, user_id: str) -> int: ...


class SQLiteInventoryIndex:
    """InventoryIndex backed by the SQLite repositories."""

    def __init__(self, db_path: str | None = None):
        self.wines = WineRepository(db_path)
        self.holdings = HoldingRepository(db_path)
        self.ratings = RatingRepository(db_path)
        self.cellars = CellarRepository(db_path)

    def holdings_for(self, user_id: str) -> list[InventoryHolding]:
        return self.holdings.get_for_user(user_id)

    def wine_by_id(self, wine_id: str) -> WineRecord | None:
        return self.wines.get_by_id(wine_id)

    def wine_set_for(self, user_id: str) -> list[WineRecord]:
        return self.wines.get_for_user(user_id)

    def rating_for(self, user_id: str, wine_id: str) -> Rating | None:
        return self.ratings.get(user_id, wine_id)

    def taste_profile_for(self, user_id: str, wine_id: str) -> TasteProfile | None:
        return self.ratings.get_taste_profile(user_id, wine_id)

    def cellar_count_for(self, user_id: str) -> int:
        return len(self.cellars.get_for_user(user_id))
