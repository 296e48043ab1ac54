"""Data models for the sommelier database."""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sommelier.database.utils import normalize_string


class WineType(str, Enum):
    """Wine type."""
    RED = "red"
    WHITE = "white"
    ROSE = "rose"
    SPARKLING = "sparkling"
    DESSERT = "dessert"
    FORTIFIED = "fortified"

    @classmethod
    def parse(cls, value: "str | WineType | None") -> "WineType | None":
        """Parse a free-text wine type (e.g. 'Rosé', 'RED', 'rosato'), None if unknown."""
        if value is None or isinstance(value, WineType):
            return value
        key = normalize_string(value)
        key = _WINE_TYPE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None


_WINE_TYPE_ALIASES = {
    "rosato": "rose",
    "rosado": "rose",
    "rosso": "red",
    "bianco": "white",
    "spumante": "sparkling",
    "sweet": "dessert",
}


class HoldingStatus(str, Enum):
    """Status of an inventory holding."""
    AVAILABLE = "available"
    CONSUMED = "consumed"


class PreferenceType(str, Enum):
    """Category of a friend's food preference."""
    ALLERGY = "allergy"
    INTOLERANCE = "intolerance"
    DIET = "diet"
    DISLIKE = "dislike"
    PREFERENCE = "preference"


class MessageRole(str, Enum):
    """Conversation turn author."""
    USER = "user"
    ASSISTANT = "assistant"


class WineRecord(BaseModel):
    """Canonical wine catalog record."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Stable wine identifier")
    name: str = Field(..., description="Wine name (e.g., Barolo Francia)")
    producer: str | None = Field(None, description="Producer/winery name")
    vintage: int | None = Field(None, description="Vintage year (empty for non-vintage wines)")
    wine_type: WineType = Field(WineType.RED, description="Wine type")
    region: str | None = Field(None, description="Region or denomination (e.g., Piemonte)")
    country: str | None = Field(None, description="Country of origin")
    appellation: str | None = Field(None, description="Specific appellation")
    grapes: list[str] = Field(default_factory=list, description="Grape varieties")
    alcohol: float | None = Field(None, description="Alcohol content (percentage)")
    description: str | None = Field(None, description="Free-text description")
    created_by: str | None = Field(None, description="User who created the record")
    created_at: datetime | None = Field(None, description="Record creation timestamp")
    updated_at: datetime | None = Field(None, description="Record last update timestamp")

    @field_validator("wine_type", mode="before")
    @classmethod
    def _parse_wine_type(cls, value: Any) -> Any:
        return WineType.parse(value) or value

    def summary(self) -> dict:
        """Compact representation used in tool results."""
        return {
            "wine_id": self.id,
            "name": self.name,
            "producer": self.producer,
            "vintage": self.vintage,
            "type": self.wine_type.value,
            "region": self.region,
        }


class Cellar(BaseModel):
    """A physical cellar shared by one or more users."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    name: str = Field(..., description="Cellar name")
    description: str | None = Field(None, description="Additional notes")
    created_at: datetime | None = Field(None, description="Record creation timestamp")


class CellarLocation(BaseModel):
    """A storage position inside a cellar."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    cellar_id: str = Field(..., description="Foreign key to cellar table")
    name: str | None = Field(None, description="Location name (e.g., Rack A)")
    shelf: str | None = Field(None, description="Shelf identifier")
    shelf_row: int | None = Field(None, description="Row number on the shelf")
    capacity: int | None = Field(None, description="Number of bottles the location holds")


class InventoryHolding(BaseModel):
    """A quantity of a specific wine at a specific location."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    wine_id: str = Field(..., description="Foreign key to wine table")
    cellar_id: str = Field(..., description="Foreign key to cellar table")
    location_id: str | None = Field(None, description="Foreign key to location table")
    quantity: int = Field(1, ge=0, description="Number of bottles")
    status: HoldingStatus = Field(HoldingStatus.AVAILABLE, description="available or consumed")
    acquired_price: float | None = Field(None, description="Purchase price per bottle")
    created_at: datetime | None = Field(None, description="Record creation timestamp")
    updated_at: datetime | None = Field(None, description="Record last update timestamp")

    # Related objects (not in DB, populated via joins)
    cellar_name: str | None = Field(None, description="Cellar name (populated via join)")
    location_name: str | None = Field(None, description="Location name (populated via join)")
    location_shelf: str | None = Field(None, description="Location shelf (populated via join)")
    location_row: int | None = Field(None, description="Location row (populated via join)")

    @property
    def is_available(self) -> bool:
        return self.status == HoldingStatus.AVAILABLE and self.quantity > 0

    @property
    def location_label(self) -> str:
        """Human-readable position of the holding."""
        if self.location_name:
            return self.location_name
        if self.location_shelf or self.location_row is not None:
            return f"Shelf {self.location_shelf or '?'}, Row {self.location_row if self.location_row is not None else '?'}"
        return "Unspecified location"


class Rating(BaseModel):
    """Personal rating of a wine."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    user_id: str = Field(..., description="Rating author")
    wine_id: str = Field(..., description="Foreign key to wine table")
    rating: int = Field(..., ge=1, le=5, description="Personal rating on a 1-5 scale")
    is_favorite: bool = Field(False, description="Marked as favorite")
    notes: str | None = Field(None, description="Personal tasting notes")
    created_at: datetime | None = Field(None, description="Record creation timestamp")


class TasteProfile(BaseModel):
    """Structured tasting profile of a wine for a user."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    user_id: str = Field(..., description="Taster")
    wine_id: str = Field(..., description="Foreign key to wine table")
    acidity: int | None = Field(None, ge=1, le=5)
    tannin: int | None = Field(None, ge=1, le=5)
    body: int | None = Field(None, ge=1, le=5)
    sweetness: int | None = Field(None, ge=1, le=5)
    effervescence: int | None = Field(None, ge=1, le=5)
    aromas: list[str] = Field(default_factory=list)
    flavors: list[str] = Field(default_factory=list)
    finish: str | None = Field(None, description="Finish length/description")


class Friend(BaseModel):
    """A contact of the user."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    user_id: str = Field(..., description="Owner of the contact")
    name: str = Field(..., description="Friend name")
    foodie_level: str | None = Field(None, description="casual, enthusiast or expert")
    notes: str | None = Field(None, description="Free-text notes")


class FoodPreference(BaseModel):
    """A dietary restriction or preference of a friend."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    friend_id: str = Field(..., description="Foreign key to friend table")
    type: PreferenceType = Field(..., description="Preference category")
    category: str = Field(..., description="What the preference is about (e.g., shellfish)")
    severity: str | None = Field(None, description="Severity (e.g., mild, severe)")
    notes: str | None = Field(None, description="Free-text notes")


class Conversation(BaseModel):
    """A chat conversation between a user and the sommelier."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    user_id: str = Field(..., description="Conversation owner")
    title: str | None = Field(None, description="Conversation title")
    created_at: datetime | None = Field(None, description="Record creation timestamp")
    last_message_at: datetime | None = Field(None, description="Last-modified marker")


class ConversationTurn(BaseModel):
    """A single append-only message in a conversation."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field("", description="Unique identifier")
    conversation_id: str = Field(..., description="Foreign key to conversation table")
    role: MessageRole = Field(..., description="user or assistant")
    content: str = Field("", description="Message text")
    tool_calls: list[dict] | None = Field(None, description="Tool calls requested while producing this turn")
    tool_results: list[dict] | None = Field(None, description="Tool results received while producing this turn")
    created_at: datetime | None = Field(None, description="Record creation timestamp")
