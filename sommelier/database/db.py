"""Database connection and initialization."""
import sqlite3
from pathlib import Path
from contextlib import contextmanager

from sommelier.utils import logger


@contextmanager
def get_db_connection(db_path: str):
    """
    Context manager for database connections.

    Args:
        db_path: Path to SQLite database file

    Yields:
        sqlite3.Connection: Database connection
    """
    conn = None
    try:
        conn = sqlite3.connect(db_path)
        conn.execute('PRAGMA foreign_keys = ON')
        conn.row_factory = sqlite3.Row
        yield conn
    finally:
        if conn:
            conn.close()


def initialize_database(db_path: str) -> bool:
    """
    Initialize the sommelier database with schema.

    Args:
        db_path: Path to SQLite database file

    Returns:
        bool: True if successful, False otherwise
    """
    try:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initializing database at: {db_path}")

        with get_db_connection(db_path) as conn:
            cursor = conn.cursor()

            # Create tables in order of dependencies
            _create_wines_table(cursor)
            _create_cellars_tables(cursor)
            _create_holdings_table(cursor)
            _create_ratings_tables(cursor)
            _create_friends_tables(cursor)
            _create_conversations_tables(cursor)

            conn.commit()

        logger.info(f"Database initialized successfully at: {db_path}")
        return True

    except sqlite3.Error as e:
        logger.error(f"Failed to initialize database: {e}")
        return False


def _create_wines_table(cursor: sqlite3.Cursor):
    """Create wines table."""
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS wines (
            id                      TEXT PRIMARY KEY,
            name                    TEXT NOT NULL,
            producer                TEXT,
            vintage                 INTEGER,
            wine_type               TEXT NOT NULL
                                    CHECK(wine_type IN ('red', 'white', 'rose', 'sparkling', 'dessert', 'fortified')),
            region                  TEXT,
            country                 TEXT,
            appellation             TEXT,
            grapes                  TEXT,
            alcohol                 REAL,
            description             TEXT,
            created_by              TEXT,
            created_at              TEXT,
            updated_at              TEXT
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_wines_name ON wines(name)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_wines_type ON wines(wine_type)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_wines_created_by ON wines(created_by)")


def _create_cellars_tables(cursor: sqlite3.Cursor):
    """Create cellars, cellar members and locations tables."""
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS cellars (
            id                      TEXT PRIMARY KEY,
            name                    TEXT NOT NULL,
            description             TEXT,
            created_at              TEXT
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS cellar_members (
            cellar_id               TEXT NOT NULL REFERENCES cellars(id) ON DELETE CASCADE,
            user_id                 TEXT NOT NULL,
            role                    TEXT NOT NULL DEFAULT 'owner'
                                    CHECK(role IN ('owner', 'family', 'guest')),
            PRIMARY KEY (cellar_id, user_id)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS locations (
            id                      TEXT PRIMARY KEY,
            cellar_id               TEXT NOT NULL REFERENCES cellars(id) ON DELETE CASCADE,
            name                    TEXT,
            shelf                   TEXT,
            shelf_row               INTEGER,
            capacity                INTEGER
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_cellar_members_user ON cellar_members(user_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_locations_cellar ON locations(cellar_id)")


def _create_holdings_table(cursor: sqlite3.Cursor):
    """Create holdings table."""
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS holdings (
            id                      TEXT PRIMARY KEY,
            wine_id                 TEXT NOT NULL REFERENCES wines(id) ON DELETE CASCADE,
            cellar_id               TEXT NOT NULL REFERENCES cellars(id) ON DELETE CASCADE,
            location_id             TEXT REFERENCES locations(id) ON DELETE SET NULL,
            quantity                INTEGER NOT NULL DEFAULT 1 CHECK(quantity >= 0),
            status                  TEXT NOT NULL DEFAULT 'available'
                                    CHECK(status IN ('available', 'consumed')),
            acquired_price          REAL,
            created_at              TEXT,
            updated_at              TEXT
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_holdings_wine ON holdings(wine_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_holdings_cellar_status ON holdings(cellar_id, status)")


def _create_ratings_tables(cursor: sqlite3.Cursor):
    """Create ratings and taste profiles tables."""
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS ratings (
            id                      TEXT PRIMARY KEY,
            user_id                 TEXT NOT NULL,
            wine_id                 TEXT NOT NULL REFERENCES wines(id) ON DELETE CASCADE,
            rating                  INTEGER NOT NULL CHECK(rating >= 1 AND rating <= 5),
            is_favorite             BOOLEAN NOT NULL DEFAULT 0,
            notes                   TEXT,
            created_at              TEXT,
            UNIQUE(user_id, wine_id)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS taste_profiles (
            id                      TEXT PRIMARY KEY,
            user_id                 TEXT NOT NULL,
            wine_id                 TEXT NOT NULL REFERENCES wines(id) ON DELETE CASCADE,
            acidity                 INTEGER,
            tannin                  INTEGER,
            body                    INTEGER,
            sweetness               INTEGER,
            effervescence           INTEGER,
            aromas                  TEXT,
            flavors                 TEXT,
            finish                  TEXT,
            UNIQUE(user_id, wine_id)
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_ratings_user ON ratings(user_id)")


def _create_friends_tables(cursor: sqlite3.Cursor):
    """Create friends and food preferences tables."""
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS friends (
            id                      TEXT PRIMARY KEY,
            user_id                 TEXT NOT NULL,
            name                    TEXT NOT NULL,
            foodie_level            TEXT,
            notes                   TEXT
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS food_preferences (
            id                      TEXT PRIMARY KEY,
            friend_id               TEXT NOT NULL REFERENCES friends(id) ON DELETE CASCADE,
            type                    TEXT NOT NULL
                                    CHECK(type IN ('allergy', 'intolerance', 'diet', 'dislike', 'preference')),
            category                TEXT NOT NULL,
            severity                TEXT,
            notes                   TEXT
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_friends_user ON friends(user_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_food_preferences_friend ON food_preferences(friend_id)")


def _create_conversations_tables(cursor: sqlite3.Cursor):
    """Create conversations and messages tables."""
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS conversations (
            id                      TEXT PRIMARY KEY,
            user_id                 TEXT NOT NULL,
            title                   TEXT,
            created_at              TEXT,
            last_message_at         TEXT
        )
    """)

    # seq keeps insertion order for turns sharing the same timestamp
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            seq                     INTEGER PRIMARY KEY AUTOINCREMENT,
            id                      TEXT NOT NULL UNIQUE,
            conversation_id         TEXT NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            role                    TEXT NOT NULL CHECK(role IN ('user', 'assistant')),
            content                 TEXT NOT NULL,
            tool_calls              TEXT,
            tool_results            TEXT,
            created_at              TEXT NOT NULL
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_conversations_user ON conversations(user_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(conversation_id, created_at)")


def drop_all_tables(db_path: str) -> bool:
    """
    Drop all tables (for testing/reset purposes).

    Args:
        db_path: Path to SQLite database file

    Returns:
        bool: True if successful
    """
    try:
        with get_db_connection(db_path) as conn:
            cursor = conn.cursor()

            for table in (
                "messages", "conversations", "food_preferences", "friends", "taste_profiles",
                "ratings", "holdings", "locations", "cellar_members", "cellars", "wines",
            ):
                cursor.execute(f"DROP TABLE IF EXISTS {table}")

            conn.commit()

        logger.info("All tables dropped successfully")
        return True

    except sqlite3.Error as e:
        logger.error(f"Failed to drop tables: {e}")
        return False
