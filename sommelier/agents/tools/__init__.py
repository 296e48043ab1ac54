"""Sommelier agent tools."""
from sommelier.inventory import ContactDirectory, InventoryIndex
from sommelier.matching import EntityMatcher

from .base import ToolErrorType, ToolName, ToolOutcome, ToolSpec, match_not_found, tool_error
from .cellar_tools import build_cellar_tools
from .friend_tools import build_friend_tools
from .registry import USER_ID_KEY, RegisteredTool, ToolRegistry


def build_default_registry(
    index: InventoryIndex, contacts: ContactDirectory, matcher: EntityMatcher | None = None
) -> ToolRegistry:
    """
    Build the registry with every sommelier tool.

    Args:
        index: Read-only inventory index
        contacts: Contact directory
        matcher: Entity matcher, a default one if None

    Returns:
        The immutable ToolRegistry
    """
    matcher = matcher or EntityMatcher()
    return ToolRegistry([*build_cellar_tools(index, matcher), *build_friend_tools(contacts)])


__all__ = [
    "USER_ID_KEY",
    "RegisteredTool",
    "ToolErrorType",
    "ToolName",
    "ToolOutcome",
    "ToolSpec",
    "ToolRegistry",
    "build_cellar_tools",
    "build_friend_tools",
    "build_default_registry",
    "match_not_found",
    "tool_error",
]
