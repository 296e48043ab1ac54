"""Friend repository"""
from sommelier.database import get_db_connection
from sommelier.database.models import FoodPreference, Friend
from sommelier.utils import get_default_db_path, logger, new_id


class FriendRepository:
    """Repository for a user's contacts and their food preferences."""

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or get_default_db_path()

    def get_for_user(self, user_id: str) -> list[Friend]:
        """Get all friends of a user ordered by name."""
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM friends WHERE user_id = ? ORDER BY name, id",
                (user_id,)
            )
            return [Friend(**dict(row)) for row in cursor.fetchall()]

    def get_preferences(self, friend_id: str) -> list[FoodPreference]:
        """Get all food preferences of a friend."""
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM food_preferences WHERE friend_id = ? ORDER BY type, category",
                (friend_id,)
            )
            return [FoodPreference(**dict(row)) for row in cursor.fetchall()]

    def create(self, friend: Friend) -> str:
        """
        Create new friend record.

        Returns:
            ID of created friend
        """
        friend_id = friend.id or new_id()
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "INSERT INTO friends (id, user_id, name, foodie_level, notes) VALUES (?, ?, ?, ?, ?)",
                (friend_id, friend.user_id, friend.name, friend.foodie_level, friend.notes)
            )
            conn.commit()
            logger.debug(f"Created friend: {friend.name} (ID: {friend_id})")
            return friend_id

    def add_preference(self, preference: FoodPreference) -> str:
        """
        Add a food preference to a friend.

        Returns:
            ID of created preference
        """
        preference_id = preference.id or new_id()
        with get_db_connection(self.db_path) as conn:
            conn.execute("""
                INSERT INTO food_preferences (id, friend_id, type, category, severity, notes)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                preference_id, preference.friend_id, preference.type.value,
                preference.category, preference.severity, preference.notes,
            ))
            conn.commit()
            return preference_id
