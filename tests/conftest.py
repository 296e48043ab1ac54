"""Shared pytest fixtures for the sommelier tests."""
from typing import Any, Callable

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from sommelier.agents.tools import build_default_registry
from sommelier.database import (
    CellarLocation,
    FoodPreference,
    Friend,
    InventoryHolding,
    PreferenceType,
    Rating,
    TasteProfile,
    WineRecord,
    initialize_database,
)
from sommelier.database.repository import (
    CellarRepository,
    ConversationRepository,
    FriendRepository,
    HoldingRepository,
    RatingRepository,
    WineRepository,
)
from sommelier.inventory import SQLiteContactDirectory, SQLiteInventoryIndex
from sommelier.matching import EntityMatcher

USER_ID = "alice"
OTHER_USER_ID = "bob"


class ScriptedChatModel(BaseChatModel):
    """Chat model replaying scripted replies, for driving the agent loop without a provider.

    Each entry of `responses` is an AIMessage, a callable building one from the received
    messages, or an exception to raise. When the script is exhausted, `repeat` (a callable)
    builds every further reply.
    """
    responses: list = Field(default_factory=list)
    repeat: Callable[[], AIMessage] | None = None
    calls: list = Field(default_factory=list)
    bound_tools: list = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs: Any) -> ChatResult:
        self.calls.append(list(messages))
        if self.responses:
            response = self.responses.pop(0)
        elif self.repeat is not None:
            response = self.repeat()
        else:
            raise AssertionError("No scripted response left")

        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(messages)
        return ChatResult(generations=[ChatGeneration(message=response)])

    def bind_tools(self, tools, **kwargs):
        self.bound_tools.extend(tools)
        return self


def tool_call(name: str, args: dict | None = None, call_id: str = "call_1", text: str = "") -> AIMessage:
    """A fresh model reply requesting one tool call."""
    return tool_calls([(name, args or {}, call_id)], text=text)


def tool_calls(calls: list[tuple[str, dict, str]], text: str = "") -> AIMessage:
    """A fresh model reply requesting several tool calls."""
    return AIMessage(
        content=text,
        tool_calls=[
            {"name": name, "args": args, "id": call_id, "type": "tool_call"}
            for name, args, call_id in calls
        ],
    )


def text_reply(text: str) -> AIMessage:
    return AIMessage(content=text)


@pytest.fixture
def db_path(tmp_path):
    """Create a temporary database with the full schema."""
    db_file = tmp_path / "sommelier.db"
    assert initialize_database(str(db_file))
    return str(db_file)


@pytest.fixture
def seeded(db_path):
    """
    Seed a cellar for alice and one for bob.

    alice holds 5 wines in 6 available holdings (10 bottles) plus one consumed holding:
    3 red wines rated 5, 3 and unrated, and 2 white wines.
    """
    wines = WineRepository(db_path)
    cellars = CellarRepository(db_path)
    holdings = HoldingRepository(db_path)
    ratings = RatingRepository(db_path)
    friends = FriendRepository(db_path)

    ids = {}
    ids["barolo"] = wines.create(WineRecord(
        name="Barolo Francia", producer="Giacomo Conterno", vintage=2016, wine_type="red",
        region="Piemonte", country="Italia", grapes=["Nebbiolo"], alcohol=14.5,
    ))
    ids["brunello"] = wines.create(WineRecord(
        name="Brunello di Montalcino", producer="Biondi-Santi", vintage=2015, wine_type="red",
        region="Toscana", country="Italia", grapes=["Sangiovese"],
    ))
    ids["chianti"] = wines.create(WineRecord(
        name="Chianti Classico", producer="Fontodi", vintage=2019, wine_type="red",
        region="Toscana", country="Italia", grapes=["Sangiovese"],
    ))
    ids["soave"] = wines.create(WineRecord(
        name="Soave Classico", producer="Pieropan", vintage=2021, wine_type="white",
        region="Veneto", country="Italia", grapes=["Garganega"],
    ))
    ids["verdicchio"] = wines.create(WineRecord(
        name="Verdicchio dei Castelli di Jesi", producer="Bucci", vintage=2020, wine_type="white",
        region="Marche", country="Italia", grapes=["Verdicchio"],
    ))
    ids["amarone"] = wines.create(WineRecord(
        name="Amarone della Valpolicella", producer="Quintarelli", vintage=2012, wine_type="red",
        region="Veneto", country="Italia", grapes=["Corvina"],
    ))

    ids["cellar"] = cellars.create("Casa", owner_id=USER_ID)
    ids["rack"] = cellars.create_location(CellarLocation(cellar_id=ids["cellar"], name="Rack A"))
    ids["shelf"] = cellars.create_location(CellarLocation(cellar_id=ids["cellar"], shelf="B", shelf_row=2))
    ids["bob_cellar"] = cellars.create("Cantina di Bob", owner_id=OTHER_USER_ID)

    for wine, location, quantity in (
        ("barolo", "rack", 2),
        ("barolo", "shelf", 1),
        ("brunello", "rack", 1),
        ("chianti", None, 3),
        ("soave", "shelf", 2),
        ("verdicchio", "rack", 1),
    ):
        holdings.create(InventoryHolding(
            wine_id=ids[wine], cellar_id=ids["cellar"],
            location_id=ids[location] if location else None, quantity=quantity,
        ))
    ids["consumed_holding"] = holdings.create(InventoryHolding(
        wine_id=ids["soave"], cellar_id=ids["cellar"], location_id=ids["rack"], quantity=1,
    ))
    holdings.consume(ids["consumed_holding"])
    holdings.create(InventoryHolding(wine_id=ids["amarone"], cellar_id=ids["bob_cellar"], quantity=4))

    ratings.upsert(Rating(user_id=USER_ID, wine_id=ids["barolo"], rating=5, is_favorite=True, notes="Stunning"))
    ratings.upsert(Rating(user_id=USER_ID, wine_id=ids["brunello"], rating=3))
    ratings.upsert(Rating(user_id=OTHER_USER_ID, wine_id=ids["amarone"], rating=5))
    ratings.upsert_taste_profile(TasteProfile(
        user_id=USER_ID, wine_id=ids["barolo"], tannin=5, acidity=4, body=5,
        aromas=["rose", "tar"], flavors=["cherry"], finish="long",
    ))

    ids["giulia"] = friends.create(Friend(user_id=USER_ID, name="Giulia Rossi", foodie_level="enthusiast"))
    ids["marco"] = friends.create(Friend(user_id=USER_ID, name="Marco Bianchi"))
    friends.create(Friend(user_id=OTHER_USER_ID, name="Giulia Verdi"))
    friends.add_preference(FoodPreference(
        friend_id=ids["giulia"], type=PreferenceType.ALLERGY, category="shellfish", severity="severe",
    ))
    friends.add_preference(FoodPreference(
        friend_id=ids["giulia"], type=PreferenceType.DIET, category="pescatarian",
    ))
    return ids


@pytest.fixture
def index(db_path, seeded):
    return SQLiteInventoryIndex(db_path)


@pytest.fixture
def contacts(db_path, seeded):
    return SQLiteContactDirectory(db_path)


@pytest.fixture
def matcher():
    return EntityMatcher()


@pytest.fixture
def registry(index, contacts, matcher):
    return build_default_registry(index, contacts, matcher)


@pytest.fixture
def store(db_path):
    return ConversationRepository(db_path)
