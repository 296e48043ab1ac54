"""Sommelier agent package with the agent loop, tools and LLM utilities."""

from sommelier.agents.agent import SommelierAgent, create_sommelier_agent
from sommelier.agents.session import AgentSession, ChatRequest, ConversationStore, ConverseResult
from sommelier.agents.tools import ToolName, ToolRegistry, ToolSpec, build_default_registry

__all__ = [
    "SommelierAgent",
    "create_sommelier_agent",
    "AgentSession",
    "ChatRequest",
    "ConversationStore",
    "ConverseResult",
    "ToolName",
    "ToolRegistry",
    "ToolSpec",
    "build_default_registry",
]
