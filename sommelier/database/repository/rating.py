"""Rating and taste profile repository"""
from sommelier.database import get_db_connection
from sommelier.database.models import Rating, TasteProfile
from sommelier.database.utils import row_to_dict, to_db_json, to_db_timestamp
from sommelier.utils import get_default_db_path, logger, new_id, utc_now


class RatingRepository:
    """Repository for personal ratings and taste profiles."""

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or get_default_db_path()

    def get(self, user_id: str, wine_id: str) -> Rating | None:
        """Get the rating a user gave to a wine."""
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM ratings WHERE user_id = ? AND wine_id = ?",
                (user_id, wine_id)
            )
            row = cursor.fetchone()
            if row:
                return Rating(**dict(row))
            return None

    def get_for_user(self, user_id: str) -> dict[str, Rating]:
        """Get all ratings of a user keyed by wine ID."""
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM ratings WHERE user_id = ?", (user_id,))
            return {row["wine_id"]: Rating(**dict(row)) for row in cursor.fetchall()}

    def upsert(self, rating: Rating) -> str:
        """
        Create or replace the rating of a user for a wine.

        Returns:
            ID of the stored rating
        """
        rating_id = rating.id or new_id()
        with get_db_connection(self.db_path) as conn:
            conn.execute("""
                INSERT INTO ratings (id, user_id, wine_id, rating, is_favorite, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, wine_id) DO UPDATE SET
                    rating = excluded.rating,
                    is_favorite = excluded.is_favorite,
                    notes = excluded.notes
            """, (
                rating_id, rating.user_id, rating.wine_id, rating.rating,
                rating.is_favorite, rating.notes, to_db_timestamp(rating.created_at or utc_now()),
            ))
            conn.commit()
            logger.debug(f"Stored rating {rating.rating} for wine_id={rating.wine_id}")
            return rating_id

    def get_taste_profile(self, user_id: str, wine_id: str) -> TasteProfile | None:
        """Get the taste profile a user recorded for a wine."""
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM taste_profiles WHERE user_id = ? AND wine_id = ?",
                (user_id, wine_id)
            )
            row = cursor.fetchone()
            if row:
                data = row_to_dict(row, json_fields=("aromas", "flavors"))
                data["aromas"] = data.get("aromas") or []
                data["flavors"] = data.get("flavors") or []
                return TasteProfile(**data)
            return None

    def upsert_taste_profile(self, profile: TasteProfile) -> str:
        """
        Create or replace the taste profile of a user for a wine.

        Returns:
            ID of the stored taste profile
        """
        profile_id = profile.id or new_id()
        with get_db_connection(self.db_path) as conn:
            conn.execute("""
                INSERT OR REPLACE INTO taste_profiles (
                    id, user_id, wine_id, acidity, tannin, body, sweetness, effervescence,
                    aromas, flavors, finish
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                profile_id, profile.user_id, profile.wine_id, profile.acidity, profile.tannin,
                profile.body, profile.sweetness, profile.effervescence,
                to_db_json(profile.aromas), to_db_json(profile.flavors), profile.finish,
            ))
            conn.commit()
            return profile_id
