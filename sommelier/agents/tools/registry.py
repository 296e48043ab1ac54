"""
Tool registration and dispatch.

The registry is built once from a fixed set of ToolSpecs and cannot be changed afterwards.
Dispatch never raises: unknown tools, invalid arguments and handler failures all come
back as error payloads the model can read.

Each spec is also exposed as a LangChain tool, so that tool runs are reported to the
callbacks (e.g. Langfuse) of the agent run. The user ID travels in the run config.
"""
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool
from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import ValidationError

from sommelier.agents.tools.base import ToolErrorType, ToolName, ToolSpec, tool_error
from sommelier.exceptions import ToolExecutionError
from sommelier.utils import logger

USER_ID_KEY = "user_id"


class RegisteredTool(BaseTool):
    """
    LangChain tool running a registered spec through the registry.

    The JSON args schema is only shown to the model, the raw arguments are validated by
    the registry so that errors come back as payloads.
    """
    registry: Any
    handle_tool_error: bool = False

    def _run(self, run_config: RunnableConfig, **kwargs: Any) -> dict:
        user_id = (run_config.get("configurable") or {}).get(USER_ID_KEY)
        if not user_id:
            raise ValueError(f"Tool '{self.name}' called without '{USER_ID_KEY}' in the run config")
        return self.registry.dispatch(self.name, kwargs, user_id)


class ToolRegistry:
    """Immutable name to ToolSpec mapping."""

    def __init__(self, specs: Iterable[ToolSpec]):
        tools = {}
        for spec in specs:
            if spec.name in tools:
                raise ValueError(f"Tool '{spec.name.value}' registered twice")
            tools[spec.name] = spec
        self._tools: Mapping[ToolName, ToolSpec] = MappingProxyType(tools)
        self._lc_tools: Mapping[ToolName, RegisteredTool] = MappingProxyType({
            name: RegisteredTool(
                name=name.value, description=spec.description, args_schema=spec.input_schema(), registry=self
            )
            for name, spec in tools.items()
        })
        logger.debug(f"Tool registry built with {len(self._tools)} tools: {self.names()}")

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def tools(self) -> Mapping[ToolName, ToolSpec]:
        return self._tools

    def names(self) -> list[str]:
        """Return all registered tool names."""
        return [name.value for name in self._tools]

    def get(self, name: str) -> ToolSpec | None:
        """Get a tool by name, None if the name is not a registered tool."""
        try:
            return self._tools.get(ToolName(name))
        except ValueError:
            return None

    def as_tool(self, name: str) -> RegisteredTool | None:
        """Get the LangChain tool of a registered name, None if the name is unknown."""
        spec = self.get(name)
        return self._lc_tools[spec.name] if spec else None

    def tool_schemas(self) -> list[dict]:
        """Return the OpenAI-style function schemas of all tools, to bind to the chat model."""
        return [convert_to_openai_tool(tool) for tool in self._lc_tools.values()]

    def dispatch(self, name: str, raw_args: dict | None, user_id: str) -> dict:
        """
        Validate the arguments and run a tool.

        Args:
            name: Tool name requested by the model
            raw_args: Arguments as sent by the model
            user_id: User the tool acts for

        Returns:
            The handler result, or an error payload
        """
        spec = self.get(name)
        if spec is None:
            logger.warning(f"Model requested unknown tool '{name}'")
            return tool_error(f"Unknown tool '{name}'. Available tools: {', '.join(self.names())}",
                              ToolErrorType.UNKNOWN_TOOL)

        try:
            args = spec.args_schema.model_validate(raw_args or {})
        except ValidationError as e:
            logger.warning(f"Invalid arguments for tool '{name}': {e.errors()}")
            details = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            return tool_error(f"Invalid arguments for {name}: {details}", ToolErrorType.INVALID_ARGUMENTS)

        try:
            result = spec.handler(args, user_id)
        except Exception as e:
            error = ToolExecutionError(name, str(e) or type(e).__name__)
            logger.error(f"Tool '{name}' failed: {error.message}")
            return tool_error(error.message, ToolErrorType.EXECUTION_ERROR)

        logger.debug(f"Tool '{name}' executed for user {user_id}")
        return result
