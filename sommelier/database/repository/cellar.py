"""Cellar repository"""
from sommelier.database import get_db_connection
from sommelier.database.models import Cellar, CellarLocation
from sommelier.database.utils import to_db_timestamp
from sommelier.utils import get_default_db_path, logger, new_id, utc_now


class CellarRepository:
    """Repository for cellars, their members and storage locations."""

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or get_default_db_path()

    def get_for_user(self, user_id: str) -> list[Cellar]:
        """Get all cellars the user is a member of."""
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT c.id, c.name, c.description, c.created_at
                FROM cellars c
                JOIN cellar_members m ON m.cellar_id = c.id
                WHERE m.user_id = ?
                ORDER BY c.name
            """, (user_id,))
            return [Cellar(**dict(row)) for row in cursor.fetchall()]

    def create(self, name: str, owner_id: str, description: str | None = None) -> str:
        """
        Create a cellar and register its owner as member.

        Returns:
            ID of created cellar
        """
        cellar_id = new_id()
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO cellars (id, name, description, created_at) VALUES (?, ?, ?, ?)",
                (cellar_id, name, description, to_db_timestamp(utc_now()))
            )
            cursor.execute(
                "INSERT INTO cellar_members (cellar_id, user_id, role) VALUES (?, ?, 'owner')",
                (cellar_id, owner_id)
            )
            conn.commit()
            logger.debug(f"Created cellar: {name} (ID: {cellar_id})")
            return cellar_id

    def add_member(self, cellar_id: str, user_id: str, role: str = "family") -> None:
        """Share a cellar with another user."""
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO cellar_members (cellar_id, user_id, role) VALUES (?, ?, ?)",
                (cellar_id, user_id, role)
            )
            conn.commit()

    def create_location(self, location: CellarLocation) -> str:
        """
        Create a storage location inside a cellar.

        Returns:
            ID of created location
        """
        location_id = location.id or new_id()
        with get_db_connection(self.db_path) as conn:
            conn.execute("""
                INSERT INTO locations (id, cellar_id, name, shelf, shelf_row, capacity)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                location_id, location.cellar_id, location.name, location.shelf,
                location.shelf_row, location.capacity,
            ))
            conn.commit()
            return location_id
