"""Conversation repository"""
import sqlite3
from datetime import datetime

from sommelier.database import get_db_connection
from sommelier.database.models import Conversation, ConversationTurn
from sommelier.database.utils import row_to_dict, to_db_json, to_db_timestamp
from sommelier.exceptions import PersistenceError
from sommelier.utils import get_default_db_path, logger, new_id, utc_now


class ConversationRepository:
    """
    SQLite conversation store.

    Turns are append-only; `load_recent` returns the newest turns in chronological order.
    Storage failures are raised as PersistenceError.
    """

    def __init__(self, db_path: str | None = None):
        """
        Initialize conversation repository.

        Args:
            db_path: Optional path to database file
        """
        self.db_path = db_path or get_default_db_path()

    def get(self, conversation_id: str) -> Conversation | None:
        """
        Get conversation by ID.

        Args:
            conversation_id: Conversation ID

        Returns:
            Conversation or None if not found
        """
        try:
            with get_db_connection(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM conversations WHERE id = ?", (conversation_id,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot load conversation {conversation_id}: {e}") from e

        if row:
            return Conversation(**dict(row))
        return None

    def create_conversation(self, user_id: str, title: str | None = None, conversation_id: str | None = None) -> str:
        """
        Create a new conversation.

        Args:
            user_id: Conversation owner
            title: Optional title
            conversation_id: Optional pre-allocated ID

        Returns:
            ID of created conversation
        """
        conversation_id = conversation_id or new_id()
        now = to_db_timestamp(utc_now())
        try:
            with get_db_connection(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO conversations (id, user_id, title, created_at, last_message_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (conversation_id, user_id, title, now, now))
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot create conversation: {e}") from e

        logger.debug(f"Created conversation {conversation_id} for user {user_id}")
        return conversation_id

    def create_with_turns(
        self,
        user_id: str,
        title: str | None,
        conversation_id: str | None,
        turns: list[ConversationTurn],
    ) -> str:
        """
        Create a conversation together with its first turns, in a single transaction.

        Nothing is left behind when any insert fails.

        Args:
            user_id: Conversation owner
            title: Optional title
            conversation_id: Optional pre-allocated ID
            turns: Turns to store, in order

        Returns:
            ID of created conversation
        """
        conversation_id = conversation_id or new_id()
        now = utc_now()
        try:
            with get_db_connection(self.db_path) as conn:
                try:
                    cursor = conn.cursor()
                    cursor.execute("""
                        INSERT INTO conversations (id, user_id, title, created_at, last_message_at)
                        VALUES (?, ?, ?, ?, ?)
                    """, (conversation_id, user_id, title, to_db_timestamp(now), to_db_timestamp(now)))
                    self._insert_turns(cursor, conversation_id, turns, now)
                    conn.commit()
                except (sqlite3.Error, PersistenceError):
                    conn.rollback()
                    raise
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot save conversation {conversation_id}: {e}") from e

        logger.debug(f"Created conversation {conversation_id} for user {user_id} with {len(turns)} turn(s)")
        return conversation_id

    def load_recent(
self, conversation_id: str, limit: int) -> list[ConversationTurn]:
        """
        Load the last turns of a conversation.

        Args:
            conversation_id: Conversation ID
            limit: Maximum number of turns

        Returns:
            Up to `limit` most recent turns, oldest first
        """
        try:
            with get_db_connection(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT id, conversation_id, role, content, tool_calls, tool_results, created_at
                    FROM messages
                    WHERE conversation_id = ?
                    ORDER BY created_at DESC, seq DESC
                    LIMIT ?
                """, (conversation_id, limit))
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot load history of conversation {conversation_id}: {e}") from e

        turns = [
            ConversationTurn(**row_to_dict(row, json_fields=("tool_calls", "tool_results")))
            for row in rows
        ]
        turns.reverse()
        return turns

    def _insert_turns(
        self, cursor: sqlite3.Cursor, conversation_id: str, turns: list[ConversationTurn], now: datetime
    ) -> None:
        """Insert turns and bump the last-modified marker, inside the caller's transaction."""
        rows = [
            (
                turn.id or new_id(), conversation_id, turn.role.value, turn.content,
                to_db_json(turn.tool_calls), to_db_json(turn.tool_results),
                to_db_timestamp(turn.created_at or now),
            )
            for turn in turns
        ]
        cursor.executemany("""
            INSERT INTO messages (
                id, conversation_id, role, content, tool_calls, tool_results, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """, rows)
        cursor.execute(
            "UPDATE conversations SET last_message_at = ? WHERE id = ?",
            (to_db_timestamp(now), conversation_id)
        )
        if cursor.rowcount == 0:
            raise PersistenceError(f"Conversation {conversation_id} does not exist")

    def append_turns(self, conversation_id: str, turns: list[ConversationTurn]) -> None:
        """
        Append turns to a conversation and bump its last-modified marker, in a single transaction.

        Args:
            conversation_id: Conversation ID
            turns: Turns to append, in order
        """
        try:
            with get_db_connection(self.db_path) as conn:
                try:
                    self._insert_turns(conn.cursor(), conversation_id, turns, utc_now())
                    conn.commit()
                except (sqlite3.Error, PersistenceError):
                    conn.rollback()
                    raise
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot append turns to conversation {conversation_id}: {e}") from e

        logger.debug(f"Appended {len(turns)} turn(s) to conversation {conversation_id}")

    def touch(self, conversation_id: str) -> None:
        """Update the last-modified marker of a conversation."""
        try:
            with get_db_connection(self.db_path) as conn:
                conn.execute(
                    "UPDATE conversations SET last_message_at = ? WHERE id = ?",
                    (to_db_timestamp(utc_now()), conversation_id)
                )
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot update conversation {conversation_id}: {e}") from e
