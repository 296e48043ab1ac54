"""
Base tool declaration and result helpers.

Every tool is a ToolSpec: a closed name, a pydantic argument schema and a handler
returning a JSON-serialisable dict. Handlers report failures as error payloads
instead of raising.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel

from sommelier.matching import MatchResult


class ToolName(str, Enum):
    """Closed set of tools the model may call."""
    SEARCH_WINES = "search_wines"
    GET_WINE_DETAILS = "get_wine_details"
    GET_BOTTLE_LOCATION = "get_bottle_location"
    GET_CELLAR_STATS = "get_cellar_stats"
    GET_FRIEND_PREFERENCES = "get_friend_preferences"


class ToolErrorType(str, Enum):
    """Error codes carried by tool error payloads."""
    UNKNOWN_TOOL = "unknown_tool"
    INVALID_TOOL_CALL = "invalid_tool_call"
    INVALID_ARGUMENTS = "invalid_arguments"
    NOT_FOUND = "not_found"
    EXECUTION_ERROR = "execution_error"


ToolHandler = Callable[[Any, str], dict]


@dataclass(frozen=True)
class ToolSpec:
    """
    Declaration of a tool.

    Attributes:
        name: Tool identifier
        description: What the tool does, shown to the model
        args_schema: Pydantic model validating the call arguments
        handler: Callable taking the validated arguments and the user ID
    """
    name: ToolName
    description: str
    args_schema: type[BaseModel]
    handler: ToolHandler

    @property
    def required(self) -> list[str]:
        return [
            field_info.alias or name
            for name, field_info in self.args_schema.model_fields.items()
            if field_info.is_required()
        ]

    def input_schema(self) -> dict:
        """JSON schema of the arguments, as shown to the model."""
        schema = self.args_schema.model_json_schema()
        schema.setdefault("properties", {})
        schema["required"] = self.required
        return schema


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one dispatched tool call."""
    call_id: str
    name: str
    args: dict
    result: dict

    @property
    def is_error(self) -> bool:
        return "error" in self.result


def tool_error(message: str, error_type: ToolErrorType, **extra) -> dict:
    """Build a tool error payload."""
    return {"error": message, "error_type": error_type.value, **extra}


def match_not_found(wine_name: str, result: MatchResult) -> dict:
    """
    Build the payload for a wine name that could not be resolved.

    Args:
        wine_name: Name asked by the model
        result: Matcher result (without an accepted best candidate)

    Returns:
        Error payload listing the closest alternatives, if any
    """
    return tool_error(
        f"Wine '{wine_name}' not found in the cellar",
        ToolErrorType.NOT_FOUND,
        alternatives=[candidate.to_dict() for candidate in result.alternatives],
    )
