"""Data models for wine entity matching."""
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from sommelier.database.models import WineRecord, WineType


class MatchSignal(str, Enum):
    """Scoring rule that contributed to a match, in evaluation order."""
    NAME_EXACT = "name_exact"
    NAME_CONTAINS = "name_contains"
    NAME_TOKENS = "name_tokens"
    PRODUCER_EXACT = "producer_exact"
    PRODUCER_CONTAINS = "producer_contains"
    TYPE_DECLARED = "type_declared"
    TYPE_INFERRED = "type_inferred"
    REGION = "region"
    GRAPES = "grapes"


class WineMention(BaseModel):
    """Partial, untrusted description of a wine awaiting resolution."""
    name: str | None = Field(None, description="Wine name as written")
    producer: str | None = Field(None, description="Producer as written")
    wine_type: WineType | None = Field(None, description="Declared wine type")
    region: str | None = Field(None, description="Region as written")
    grapes: list[str] = Field(default_factory=list, description="Grape varieties")

    @field_validator("wine_type", mode="before")
    @classmethod
    def _parse_wine_type(cls, value: Any) -> Any:
        # Unknown free-text types are treated as undeclared
        if isinstance(value, str):
            return WineType.parse(value)
        return value

    @field_validator("name", "producer", "region", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class MatchCandidate(BaseModel):
    """A scored inventory record."""
    wine: WineRecord
    score: float = Field(..., ge=0.0, le=1.0)
    matched_signals: list[MatchSignal] = Field(default_factory=list)

    def to_dict(self) -> dict:
        """Compact representation used in tool results."""
        return {
            **self.wine.summary(),
            "score": self.score,
            "matched_signals": [signal.value for signal in self.matched_signals],
        }


class MatchResult(BaseModel):
    """Outcome of resolving a mention against a candidate set."""
    mention: WineMention
    best: MatchCandidate | None = None
    alternatives: list[MatchCandidate] = Field(default_factory=list)

    @property
    def is_match(self) -> bool:
        return self.best is not None
