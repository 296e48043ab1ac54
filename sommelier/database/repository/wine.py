"""Wine repository"""
from sommelier.database import get_db_connection
from sommelier.database.models import WineRecord
from sommelier.database.utils import row_to_dict, to_db_json, to_db_timestamp
from sommelier.utils import get_default_db_path, logger, new_id, utc_now


class WineRepository:
    """Repository for wine catalog database operations."""

    def __init__(self, db_path: str | None = None):
        """
        Initialize wine repository.

        Args:
            db_path: Optional path to database file
        """
        self.db_path = db_path or get_default_db_path()

    @staticmethod
    def _to_model(row) -> WineRecord:
        data = row_to_dict(row, json_fields=("grapes",))
        data["grapes"] = data.get("grapes") or []
        return WineRecord(**data)

    def get_by_id(self, wine_id: str) -> WineRecord | None:
        """
        Get wine by ID.

        Args:
            wine_id: Wine ID

        Returns:
            WineRecord or None if not found
        """
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM wines WHERE id = ?", (wine_id,))

            row = cursor.fetchone()
            if row:
                return self._to_model(row)
            return None

    def get_for_user(self, user_id: str) -> list[WineRecord]:
        """
        Get the wine set of a user: wines held in any cellar the user is a member of,
        plus wines the user created.

        Args:
            user_id: User ID

        Returns:
            List of WineRecord models ordered by name
        """
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT w.*
                FROM wines w
                WHERE w.created_by = ?
                   OR w.id IN (
                        SELECT h.wine_id
                        FROM holdings h
                        JOIN cellar_members m ON m.cellar_id = h.cellar_id
                        WHERE m.user_id = ?
                   )
                ORDER BY w.name, w.id
            """, (user_id, user_id))
            return [self._to_model(row) for row in cursor.fetchall()]

    def create(self, wine: WineRecord) -> str:
        """
        Create new wine record.

        Args:
            wine: Wine record; a new ID is generated when empty

        Returns:
            ID of created wine
        """
        wine_id = wine.id or new_id()
        now = utc_now()

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO wines (
                    id, name, producer, vintage, wine_type, region, country, appellation,
                    grapes, alcohol, description, created_by, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                wine_id, wine.name, wine.producer, wine.vintage, wine.wine_type.value,
                wine.region, wine.country, wine.appellation, to_db_json(wine.grapes),
                wine.alcohol, wine.description, wine.created_by,
                to_db_timestamp(wine.created_at or now), to_db_timestamp(wine.updated_at or now),
            ))

            conn.commit()
            logger.debug(f"Created wine: {wine.name} (ID: {wine_id})")
            return wine_id
