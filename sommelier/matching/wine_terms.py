"""Lexical wine terminology used to infer a wine type from appellation or varietal names.

Loads the keyword table from the JSON file in the data/ directory.
"""
import re
from pathlib import Path

from sommelier.database.models import WineType
from sommelier.database.utils import normalize_string
from sommelier.utils import load_json

_DATA_DIR = Path(__file__).parent / "data"


def _load_type_keywords() -> list[tuple[WineType, list[re.Pattern]]]:
    """Load the keyword groups, keeping file order (the first matching group wins)."""
    groups = []
    for group in load_json(_DATA_DIR / "type_keywords.json"):
        patterns = [
            re.compile(rf"\b{re.escape(normalize_string(keyword))}\b")
            for keyword in group["keywords"]
        ]
        groups.append((WineType(group["type"]), patterns))
    return groups


TYPE_KEYWORDS: list[tuple[WineType, list[re.Pattern]]] = _load_type_keywords()


def infer_wine_type(*texts: str | None, ignore: str | None = None) -> WineType | None:
    """
    Infer a wine type from appellation/varietal keywords.

    Texts are tried in order; within a text, keyword groups are checked in table order
    (sparkling, rose, white, dessert, fortified, red).

    Args:
        texts: Free texts, e.g. a wine name followed by its grapes
        ignore: Keywords that also occur in this text are skipped

    Returns:
        The inferred WineType or None if no keyword matches
    """
    ignored = normalize_string(ignore)
    for text in texts:
        normalized = normalize_string(text)
        if not normalized:
            continue
        for wine_type, patterns in TYPE_KEYWORDS:
            for pattern in patterns:
                if pattern.search(normalized) and not (ignored and pattern.search(ignored)):
                    return wine_type
    return None
