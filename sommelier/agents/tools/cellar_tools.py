"""
Sommelier tools over the user's cellar inventory.

The tools are built by `build_cellar_tools` around an InventoryIndex and an EntityMatcher,
so that every handler only reads through the index and resolves wine names through the matcher.
"""
from collections import Counter
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, model_validator

from sommelier.agents.tools.base import ToolErrorType, ToolName, ToolSpec, match_not_found, tool_error
from sommelier.database.models import HoldingStatus, InventoryHolding, WineRecord, WineType
from sommelier.database.utils import normalize_string
from sommelier.inventory import InventoryIndex
from sommelier.matching import EntityMatcher, MatchCandidate, MatchSignal, WineMention
from sommelier.utils import logger

WineTypeName = Literal["red", "white", "rose", "sparkling", "dessert", "fortified"]

TOP_RATED_LIMIT = 5
MAX_SEARCH_LIMIT = 50


def _parse_wine_type(value: Any) -> Any:
    # 'Rosé', 'RED', 'rosato'... are mapped to their canonical value, unknown values fail validation
    if isinstance(value, str):
        parsed = WineType.parse(value)
        return parsed.value if parsed else value
    return value


WineTypeArg = Annotated[WineTypeName | None, BeforeValidator(_parse_wine_type)]


def _cap_limit(value):
    # larger limits are reduced to the cap instead of rejected
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return min(value, MAX_SEARCH_LIMIT)
    return value


SearchLimit = Annotated[int, BeforeValidator(_cap_limit)]


class SearchWinesArgs(BaseModel):
    """Arguments of search_wines."""
    wine_type: WineTypeArg = Field(
        None,
        validation_alias=AliasChoices("wine_type", "type"),
        description="Wine type: red, white, rose, sparkling, dessert or fortified",
    )
    region: str | None = Field(None, description="Region of origin (partial match, e.g. 'Piem')")
    min_rating: int | None = Field(
        None, ge=1, le=5,
        validation_alias=AliasChoices("min_rating", "minRating"),
        description="Minimum personal rating on a 1-5 scale; unrated wines are excluded",
    )
    query: str | None = Field(None, description="Free text matched against name, producer and region")
    limit: SearchLimit = Field(
        5, ge=1, description=f"Maximum number of wines to return, at most {MAX_SEARCH_LIMIT}"
    )


class WineLookupArgs(BaseModel):
    """Arguments of the tools working on a single wine."""
    wine_id: str | None = Field(
        None, validation_alias=AliasChoices("wine_id", "wineId"), description="Wine ID"
    )
    wine_name: str | None = Field(
        None, validation_alias=AliasChoices("wine_name", "wineName"),
        description="Wine name, used when the ID is unknown",
    )
    producer: str | None = Field(None, description="Producer, helps to resolve wine_name")
    wine_type: WineTypeArg = Field(
        None, validation_alias=AliasChoices("wine_type", "type"), description="Wine type, helps to resolve wine_name"
    )
    region: str | None = Field(None, description="Region, helps to resolve wine_name")

    @model_validator(mode="after")
    def _check_lookup_key(self) -> "WineLookupArgs":
        if not (self.wine_id and self.wine_id.strip()) and not (self.wine_name and self.wine_name.strip()):
            raise ValueError("either wine_id or wine_name is required")
        return self


class CellarStatsArgs(BaseModel):
    """get_cellar_stats takes no arguments."""


def _wine_row(wine: WineRecord, quantity: int, rating: int | None) -> dict:
    return {**wine.summary(), "quantity": quantity, "rating": rating}


def _wine_details(wine: WineRecord) -> dict:
    return {
        **wine.summary(),
        "country": wine.country,
        "appellation": wine.appellation,
        "grapes": wine.grapes,
        "alcohol": wine.alcohol,
        "description": wine.description,
    }


def _available_quantities(holdings: list[InventoryHolding]) -> dict[str, int]:
    """Available bottles per wine ID, first-seen order."""
    quantities: dict[str, int] = {}
    for holding in holdings:
        if holding.is_available:
            quantities[holding.wine_id] = quantities.get(holding.wine_id, 0) + holding.quantity
    return quantities


def _contains(needle: str | None, *haystacks: str | None) -> bool:
    needle = normalize_string(needle)
    return any(needle in normalize_string(haystack) for haystack in haystacks if haystack)


def build_cellar_tools(index: InventoryIndex, matcher: EntityMatcher) -> list[ToolSpec]:
    """
    Build the cellar tools.

    Args:
        index: Read-only inventory index
        matcher: Entity matcher used to resolve wine names

    Returns:
        ToolSpecs for search_wines, get_wine_details, get_bottle_location and get_cellar_stats
    """

    def resolve_wine(args: WineLookupArgs, user_id: str) -> tuple[WineRecord | None, MatchCandidate | None, dict | None]:
        """Resolve a wine by ID, or by name through the matcher, within the user's wine set."""
        wine_set = index.wine_set_for(user_id)
        if args.wine_id:
            wine = next((w for w in wine_set if w.id == args.wine_id), None)
            if wine is None:
                return None, None, tool_error(f"Wine with ID '{args.wine_id}' not found", ToolErrorType.NOT_FOUND)
            return wine, None, None

        mention = WineMention(
            name=args.wine_name, producer=args.producer, wine_type=args.wine_type, region=args.region
        )
        result = matcher.resolve(mention, wine_set)
        if result.best is None:
            # a name-only lookup tops out below acceptance, so a unique exact name is enough
            exact = [c for c in result.alternatives if MatchSignal.NAME_EXACT in c.matched_signals]
            if len(exact) == 1:
                return exact[0].wine, exact[0], None
            logger.info(f"No confident match for '{args.wine_name}' ({len(result.alternatives)} alternatives)")
            return None, None, match_not_found(args.wine_name, result)
        return result.best.wine, result.best, None

    def search_wines(args: SearchWinesArgs, user_id: str) -> dict:
        quantities = _available_quantities(index.holdings_for(user_id))

        matches = []
        for wine_id, quantity in quantities.items():
            wine = index.wine_by_id(wine_id)
            if wine is None:
                logger.warning(f"Holding references missing wine {wine_id}")
                continue
            if args.wine_type and wine.wine_type.value != args.wine_type:
                continue
            if args.region and not _contains(args.region, wine.region):
                continue
            if args.query and not _contains(args.query, wine.name, wine.producer, wine.region):
                continue
            rating = index.rating_for(user_id, wine_id)
            score = rating.rating if rating else None
            if args.min_rating is not None and (score is None or score < args.min_rating):
                continue
            matches.append((wine, quantity, score))

        # rating desc with unrated last, then name asc
        matches.sort(key=lambda m: (m[2] is None, -(m[2] or 0), normalize_string(m[0].name), m[0].id))
        return {
            "wines": [_wine_row(wine, quantity, score) for wine, quantity, score in matches[:args.limit]],
            "total_found": len(matches),
        }

    def get_wine_details(args: WineLookupArgs, user_id: str) -> dict:
        wine, match, error = resolve_wine(args, user_id)
        if error:
            return error

        rating = index.rating_for(user_id, wine.id)
        profile = index.taste_profile_for(user_id, wine.id)
        details = {
            "wine": _wine_details(wine),
            "rating": {
                "rating": rating.rating,
                "is_favorite": rating.is_favorite,
                "notes": rating.notes,
            } if rating else None,
            "taste_profile": profile.model_dump(exclude={"id", "user_id", "wine_id"}) if profile else None,
        }
        if match is not None:
            details["match"] = {
                "score": match.score,
                "matched_signals": [signal.value for signal in match.matched_signals],
            }
        return details

    def get_bottle_location(args: WineLookupArgs, user_id: str) -> dict:
        wine, _, error = resolve_wine(args, user_id)
        if error:
            return error

        locations: dict[tuple[str, str], int] = {}
        for holding in index.holdings_for(user_id):
            if holding.wine_id != wine.id or not holding.is_available:
                continue
            key = (holding.cellar_name or "", holding.location_label)
            locations[key] = locations.get(key, 0) + holding.quantity

        result = {
            "wine": wine.summary(),
            "locations": [
                {"cellar": cellar, "location": location, "count": count}
                for (cellar, location), count in sorted(locations.items())
            ],
            "total_bottles": sum(locations.values()),
        }
        if not locations:
            result["message"] = "No bottles of this wine are available"
        return result

    def get_cellar_stats(args: CellarStatsArgs, user_id: str) -> dict:
        holdings = index.holdings_for(user_id)
        by_status = Counter({status.value: 0 for status in HoldingStatus})
        by_status.update(holding.status.value for holding in holdings)

        quantities = _available_quantities(holdings)
        by_type: Counter = Counter()
        rated = []
        for wine_id, quantity in quantities.items():
            wine = index.wine_by_id(wine_id)
            if wine is None:
                continue
            by_type[wine.wine_type.value] += quantity
            rating = index.rating_for(user_id, wine_id)
            if rating:
                rated.append((wine, quantity, rating.rating))

        rated.sort(key=lambda r: (-r[2], normalize_string(r[0].name), r[0].id))
        return {
            "holdings_by_status": dict(by_status),
            "bottles_by_type": dict(by_type),
            "total_bottles": sum(quantities.values()),
            "unique_wines": len(quantities),
            "cellar_count": index.cellar_count_for(user_id),
            "top_rated": [_wine_row(wine, quantity, score) for wine, quantity, score in rated[:TOP_RATED_LIMIT]],
        }

    return [
        ToolSpec(
            name=ToolName.SEARCH_WINES,
            description=(
                "Search the wines available in the user's cellar by type, region, minimum rating or free text. "
                "Results are sorted by personal rating (best first); total_found counts all matches."
            ),
            args_schema=SearchWinesArgs,
            handler=search_wines,
        ),
        ToolSpec(
            name=ToolName.GET_WINE_DETAILS,
            description=(
                "Get full details of a wine, including the user's rating and taste profile. "
                "Pass wine_id when known, otherwise wine_name."
            ),
            args_schema=WineLookupArgs,
            handler=get_wine_details,
        ),
        ToolSpec(
            name=ToolName.GET_BOTTLE_LOCATION,
            description=(
                "Find where the available bottles of a wine are stored, with counts per cellar location. "
                "Pass wine_id when known, otherwise wine_name."
            ),
            args_schema=WineLookupArgs,
            handler=get_bottle_location,
        ),
        ToolSpec(
            name=ToolName.GET_CELLAR_STATS,
            description="Get cellar statistics: bottles by type, holdings by status, cellar count and top rated wines.",
            args_schema=CellarStatsArgs,
            handler=get_cellar_stats,
        ),
    ]
