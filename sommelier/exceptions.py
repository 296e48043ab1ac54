"""Sommelier error taxonomy."""


class SommelierError(Exception):
    """Base class for all sommelier errors."""
    default_message = "Sommelier error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SommelierError):
    """Request rejected before any call or side effect."""
    default_message = "Invalid request"


class ConversationNotFoundError(ValidationError):
    """The requested conversation does not exist."""
    default_message = "Conversation not found"


class AuthorizationError(SommelierError):
    """The caller is not allowed to act as the target user."""
    default_message = "Not authorized"


class ToolExecutionError(SommelierError):
    """A tool failed. Contained by the agent loop and converted to a tool-result payload."""
    default_message = "Tool execution failed"

    def __init__(self, tool_name: str, message: str | None = None) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class ModelTransportError(SommelierError):
    """Gen AI model endpoint error. Terminal for the request, never retried by the loop."""
    default_message = "Model internal error"

    @property
    def default_answer(self) -> str:
        """Default answer when the model raises this error."""
        return "I can't answer your question due to an internal error, please try again later."


class PersistenceError(SommelierError):
    """The conversation store failed to read or write."""
    default_message = "Conversation store error"
