"""Holding repository"""
from sommelier.database import get_db_connection
from sommelier.database.models import HoldingStatus, InventoryHolding
from sommelier.database.utils import to_db_timestamp
from sommelier.utils import get_default_db_path, logger, new_id, utc_now

_SELECT_HOLDINGS = """
    SELECT
        h.*,
        c.name as cellar_name,
        l.name as location_name,
        l.shelf as location_shelf,
        l.shelf_row as location_row
    FROM holdings h
    JOIN cellars c ON h.cellar_id = c.id
    LEFT JOIN locations l ON h.location_id = l.id
"""


class HoldingRepository:
    """Repository for inventory holdings (bottles of a wine at a location)."""

    def __init__(self, db_path: str | None = None):
        """
        Initialize holding repository.

        Args:
            db_path: Optional path to database file
        """
        self.db_path = db_path or get_default_db_path()

    def get_by_id(self, holding_id: str) -> InventoryHolding | None:
        """Get holding by ID."""
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(_SELECT_HOLDINGS + " WHERE h.id = ?", (holding_id,))
            row = cursor.fetchone()
            if row:
                return InventoryHolding(**dict(row))
            return None

    def get_for_user(self, user_id: str, status: HoldingStatus | None = None) -> list[InventoryHolding]:
        """
        Get all holdings in the cellars a user is a member of.

        Args:
            user_id: User ID
            status: Optional status filter (available, consumed)

        Returns:
            List of InventoryHolding models
        """
        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()

            query = _SELECT_HOLDINGS + """
                JOIN cellar_members m ON m.cellar_id = h.cellar_id
                WHERE m.user_id = ?
            """
            params = [user_id]

            if status:
                query += " AND h.status = ?"
                params.append(status.value)

            query += " ORDER BY c.name, l.name, h.created_at, h.id"

            cursor.execute(query, params)
            return [InventoryHolding(**dict(row)) for row in cursor.fetchall()]

    def create(self, holding: InventoryHolding) -> str:
        """
        Create new holding record.

        Args:
            holding: Holding model; a new ID is generated when empty

        Returns:
            ID of created holding
        """
        holding_id = holding.id or new_id()
        now = utc_now()

        with get_db_connection(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO holdings (
                    id, wine_id, cellar_id, location_id, quantity, status,
                    acquired_price, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                holding_id, holding.wine_id, holding.cellar_id, holding.location_id,
                holding.quantity, holding.status.value, holding.acquired_price,
                to_db_timestamp(holding.created_at or now), to_db_timestamp(holding.updated_at or now),
            ))

            conn.commit()
            logger.debug(f"Created holding for wine_id={holding.wine_id} (ID: {holding_id})")
            return holding_id

    def consume(self, holding_id: str, count: int = 1) -> InventoryHolding:
        """
        Consume bottles from a holding. The status becomes 'consumed' when the quantity reaches zero.

        Args:
            holding_id: Holding ID
            count: Number of bottles consumed

        Returns:
            The updated holding

        Raises:
            ValueError: If the holding does not exist or holds fewer bottles than requested
        """
        if count < 1:
            raise ValueError("Consumed bottle count must be positive")

        holding = self.get_by_id(holding_id)
        if holding is None:
            raise ValueError(f"Holding {holding_id} not found")
        if not holding.is_available or holding.quantity < count:
            raise ValueError(f"Holding {holding_id} has only {holding.quantity} available bottles")

        quantity = holding.quantity - count
        status = HoldingStatus.CONSUMED if quantity == 0 else HoldingStatus.AVAILABLE

        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "UPDATE holdings SET quantity = ?, status = ?, updated_at = ? WHERE id = ?",
                (quantity, status.value, to_db_timestamp(utc_now()), holding_id)
            )
            conn.commit()

        logger.debug(f"Consumed {count} bottle(s) from holding {holding_id}, {quantity} left")
        return holding.model_copy(update={"quantity": quantity, "status": status})
