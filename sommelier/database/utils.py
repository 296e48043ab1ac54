"""Database utility functions."""
import json
import unicodedata
from datetime import datetime


def normalize_string(s: str | None) -> str:
    """
    Normalize string for comparison by removing accents and extra whitespace.

    Args:
        s: String to normalize

    Returns:
        Normalized string (lowercase, no accents, single spaces)
    """
    if not s:
        return ""

    # Remove accents
    s = "".join(
        c for c in unicodedata.normalize('NFD', s)
        if unicodedata.category(c) != 'Mn'
    )

    # Lowercase and remove extra spaces
    s = " ".join(s.lower().split())

    return s


def to_db_timestamp(value: datetime | None) -> str | None:
    """Serialize a timestamp as an ISO-8601 string (sortable as text)."""
    return value.isoformat() if value else None


def to_db_json(value) -> str | None:
    """Serialize a JSON column, keeping NULL for empty values."""
    if value is None:
        return None
    return json.dumps(value, default=str)


def from_db_json(value: str | None):
    """Deserialize a JSON column."""
    if value is None:
        return None
    return json.loads(value)


def row_to_dict(row, json_fields: tuple[str, ...] = ()) -> dict:
    """Convert a sqlite3.Row to a dict, decoding the given JSON columns."""
    data = dict(row)
    for field in json_fields:
        if field in data:
            data[field] = from_db_json(data[field])
    return data
