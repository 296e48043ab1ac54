"""Contact directory: a user's friends and their food preferences."""
from typing import Protocol, runtime_checkable

from sommelier.database.models import FoodPreference, Friend
from sommelier.database.repository import FriendRepository


@runtime_checkable
class ContactDirectory(Protocol):
    """Read-only queries over a user's contacts."""

    def friends_for(self, user_id: str) -> list[Friend]: ...

    def preferences_for(self, friend_id: str) -> list[FoodPreference]: ...


class SQLiteContactDirectory:
    """ContactDirectory backed by the friend repository."""

    def __init__(self, db_path: str | None = None):
        self.friends = FriendRepository(db_path)

    def friends_for(self, user_id: str) -> list[Friend]:
        return self.friends.get_for_user(user_id)

    def preferences_for(self, friend_id: str) -> list[FoodPreference]:
        return self.friends.get_preferences(friend_id)
