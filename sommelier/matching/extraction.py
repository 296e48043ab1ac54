"""Conversion of label-extraction output into wine mentions."""
import re
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sommelier.database.models import WineRecord
from sommelier.matching.matcher import EntityMatcher
from sommelier.matching.models import MatchResult, WineMention

_GRAPE_SEPARATORS = re.compile(r"\s*(?:,|;|/|\+|&|\band\b|\be\b|\by\b)\s*", re.IGNORECASE)


def split_grapes(value: str | list[str] | None) -> list[str]:
    """
    Split a free-text grape list (e.g. 'Sangiovese, Merlot e Cabernet') into varieties.

    Args:
        value: Grape text or an already split list

    Returns:
        Non-empty grape names, original order, without duplicates
    """
    if not value:
        return []
    parts = value if isinstance(value, list) else _GRAPE_SEPARATORS.split(value)
    grapes = []
    for part in parts:
        grape = part.strip()
        if grape and grape.lower() not in (g.lower() for g in grapes):
            grapes.append(grape)
    return grapes


class ExtractedField(BaseModel):
    """A single field read from a label, with the extractor's confidence."""
    value: Any
    confidence: float = Field(..., ge=0.0, le=1.0)


class ExtractedWine(BaseModel):
    """Structured label-extraction output."""
    model_config = ConfigDict(populate_by_name=True)

    name: ExtractedField | None = None
    producer: ExtractedField | None = None
    vintage: ExtractedField | None = None
    wine_type: ExtractedField | None = Field(None, alias="type")
    region: ExtractedField | None = None
    country: ExtractedField | None = None
    alcohol: ExtractedField | None = Field(None, alias="alcoholContent")
    grapes: ExtractedField | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _drop_empty_fields(cls, value: Any) -> Any:
        if isinstance(value, dict) and value.get("value") in (None, "", []):
            return None
        return value

    @property
    def overall_confidence(self) -> float:
        """Mean confidence of the extracted fields, 0 when nothing was read."""
        confidences = [
            getattr(self, field).confidence
            for field in type(self).model_fields
            if getattr(self, field) is not None
        ]
        if not confidences:
            return 0.0
        return round(sum(confidences) / len(confidences), 4)


def _value(extracted: ExtractedField | None, min_confidence: float) -> Any:
    if extracted is None or extracted.confidence < min_confidence:
        return None
    return extracted.value


def mention_from_extraction(extracted: ExtractedWine, min_confidence: float = 0.0) -> WineMention:
    """
    Build a wine mention from label-extraction output.

    Args:
        extracted: Extraction output
        min_confidence: Fields read with a lower confidence are ignored

    Returns:
        WineMention carrying the matcher-relevant fields
    """
    name = _value(extracted.name, min_confidence)
    producer = _value(extracted.producer, min_confidence)
    wine_type = _value(extracted.wine_type, min_confidence)
    region = _value(extracted.region, min_confidence)
    grapes = _value(extracted.grapes, min_confidence)
    return WineMention(
        name=str(name) if name is not None else None,
        producer=str(producer) if producer is not None else None,
        wine_type=str(wine_type) if wine_type is not None else None,
        region=str(region) if region is not None else None,
        grapes=split_grapes(grapes),
    )


def resolve_extraction(
    extracted: ExtractedWine,
    candidates: Iterable[WineRecord],
    matcher: EntityMatcher,
    min_confidence: float = 0.0,
) -> MatchResult:
    """
    Resolve a scanned label against the user's wine set.

    Args:
        extracted: Extraction output
        candidates: The user's wine records
        matcher: Entity matcher
        min_confidence: Per-field confidence floor

    Returns:
        MatchResult for the extracted mention
    """
    return matcher.resolve(mention_from_extraction(extracted, min_confidence), candidates)
