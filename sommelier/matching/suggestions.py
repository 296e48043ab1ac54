"""Parsing and resolution of wine suggestions embedded in sommelier replies.

The model is asked to append its picks as
`[WINE_SUGGESTIONS]{"suggestions": [...]}[/WINE_SUGGESTIONS]` after the prose answer.
"""
import json
import re
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sommelier.database.models import WineRecord, WineType
from sommelier.matching.matcher import EntityMatcher
from sommelier.matching.models import MatchCandidate, WineMention
from sommelier.utils import logger

SUGGESTIONS_BLOCK = re.compile(r"\[WINE_SUGGESTIONS\](.*?)\[/WINE_SUGGESTIONS\]", re.DOTALL)
MAX_SUGGESTION_ALTERNATIVES = 3


class WineSuggestion(BaseModel):
    """A wine recommended by the model."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="wine_name")
    producer: str | None = None
    wine_type: WineType | None = None
    region: str | None = None
    grapes: list[str] = Field(default_factory=list)
    reason: str | None = None

    @field_validator("wine_type", mode="before")
    @classmethod
    def _parse_wine_type(cls, value):
        return WineType.parse(value) if isinstance(value, str) else value

    def to_mention(self) -> WineMention:
        return WineMention(
            name=self.name,
            producer=self.producer,
            wine_type=self.wine_type,
            region=self.region,
            grapes=self.grapes,
        )


class ParsedReply(BaseModel):
    """A reply split into its display text and structured suggestions."""
    text: str
    suggestions: list[WineSuggestion] = Field(default_factory=list)


class SuggestionMatch(BaseModel):
    """A suggestion resolved against the user's inventory."""
    suggestion: WineSuggestion
    best: MatchCandidate | None = None
    alternatives: list[MatchCandidate] = Field(default_factory=list)

    @property
    def in_cellar(self) -> bool:
        return self.best is not None


def _normalize_keys(raw: dict) -> dict:
    data = dict(raw)
    # Accept both snake_case and camelCase keys
    for alias, key in (("wineName", "wine_name"), ("wineType", "wine_type"), ("type", "wine_type")):
        if alias in data and key not in data:
            data[key] = data.pop(alias)
    if "name" in data and "wine_name" not in data:
        data["wine_name"] = data.pop("name")
    return data


def parse_reply(reply: str) -> ParsedReply:
    """
    Split a model reply into prose and wine suggestions.

    A missing or malformed block is not an error: the reply text is returned with no suggestions.

    Args:
        reply: Raw model reply

    Returns:
        ParsedReply with the block removed from the text
    """
    match = SUGGESTIONS_BLOCK.search(reply)
    if not match:
        return ParsedReply(text=reply.strip())

    text = SUGGESTIONS_BLOCK.sub("", reply).strip()
    try:
        payload = json.loads(match.group(1))
        suggestions = [
            WineSuggestion.model_validate(_normalize_keys(item))
            for item in payload.get("suggestions", [])
        ]
    except (json.JSONDecodeError, AttributeError, TypeError, ValidationError) as e:
        logger.warning(f"Failed to parse wine suggestions: {e}")
        return ParsedReply(text=text)

    return ParsedReply(text=text, suggestions=suggestions)


def match_suggestions(
    suggestions: list[WineSuggestion],
    candidates: Iterable[WineRecord],
    matcher: EntityMatcher,
) -> list[SuggestionMatch]:
    """
    Resolve each suggestion against the user's wine set.

    Args:
        suggestions: Parsed suggestions
        candidates: The user's wine records
        matcher: Entity matcher

    Returns:
        One SuggestionMatch per suggestion, same order, at most 3 alternatives each
    """
    candidates = list(candidates)
    matches = []
    for suggestion in suggestions:
        result = matcher.resolve(suggestion.to_mention(), candidates)
        matches.append(SuggestionMatch(
            suggestion=suggestion,
            best=result.best,
            alternatives=result.alternatives[:MAX_SUGGESTION_ALTERNATIVES],
        ))
    return matches
