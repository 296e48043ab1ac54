"""
Conversation plumbing for the agent loop.

Holds the conversation store contract, the request/response models of `converse`
and the transient per-request session.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from pydantic import BaseModel, Field, field_validator

from sommelier.database.models import Conversation, ConversationTurn, MessageRole, WineRecord
from sommelier.utils import new_id

TITLE_LENGTH = 50


@runtime_checkable
class ConversationStore(Protocol):
    """Persistence of conversations. Implementations raise PersistenceError on storage failures."""

    def get(self, conversation_id: str) -> Conversation | None: ...

    def create_conversation(
        self, user_id: str, title: str | None = None, conversation_id: str | None = None
    ) -> str: ...

    def create_with_turns(
        self, user_id: str, title: str | None, conversation_id: str | None, turns: list[ConversationTurn]
    ) -> str: ...

    def load_recent(self, conversation_id: str, limit: int) -> list[ConversationTurn]: ...

    def append_turns(self, conversation_id: str, turns: list[ConversationTurn]) -> None: ...

    def touch(self, conversation_id: str) -> None: ...


class ChatRequest(BaseModel):
    """A validated `converse` request."""
    user_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    conversation_id: str | None = None
    caller_id: str | None = None

    @field_validator("user_id", "message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("conversation_id")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        return value if value and value.strip() else None


class ConverseResult(BaseModel):
    """Outcome of one exchange."""
    answer_text: str
    conversation_id: str
    wine_references: list[WineRecord] = Field(default_factory=list)
    truncated: bool = False
    persistence_warning: str | None = Field(
        None, description="Set when the exchange could not be saved; the answer is still valid"
    )
    reference_warning: str | None = Field(
        None, description="Set when the wine references could not be loaded; the answer is still valid"
    )


def turn_to_message(turn: ConversationTurn) -> BaseMessage:
    """Model-visible form of a stored turn: role and text only."""
    if turn.role == MessageRole.USER:
        return HumanMessage(content=turn.content)
    return AIMessage(content=turn.content)


@dataclass
class AgentSession:
    """
    Transient state of one exchange.

    Attributes:
        conversation_id: Conversation the exchange belongs to
        is_new: True if the conversation does not exist yet
        history: Recent stored turns, oldest first
        transcript: Messages exchanged with the model in this request
        iteration_count: Completed tool rounds
        tool_calls: Audit trail of the requested tool calls
        tool_results: Audit trail of the tool results
    """
    conversation_id: str
    is_new: bool
    history: list[ConversationTurn] = field(default_factory=list)
    transcript: list[BaseMessage] = field(default_factory=list)
    iteration_count: int = 0
    tool_calls: list[dict] = field(default_factory=list)
    tool_results: list[dict] = field(default_factory=list)

    @classmethod
    def start(cls, conversation_id: str | None = None, history: list[ConversationTurn] | None = None) -> "AgentSession":
        """Start a session on an existing conversation, or on a new one with a fresh ID."""
        if conversation_id is None:
            return cls(conversation_id=new_id(), is_new=True)
        return cls(conversation_id=conversation_id, is_new=False, history=list(history or []))

    def seed_transcript(self, message: str) -> list[BaseMessage]:
        """Seed the transcript with the history window followed by the new user message."""
        self.transcript = [*(turn_to_message(turn) for turn in self.history), HumanMessage(content=message)]
        return self.transcript

    def title_for(self, message: str) -> str:
        return message.strip()[:TITLE_LENGTH]

    def build_turns(self, message: str, answer: str, asked_at: datetime, answered_at: datetime) -> list[ConversationTurn]:
        """The user and assistant turns of this exchange, with the tool audit trail on the assistant turn."""
        return [
            ConversationTurn(
                conversation_id=self.conversation_id,
                role=MessageRole.USER,
                content=message,
                created_at=asked_at,
            ),
            ConversationTurn(
                conversation_id=self.conversation_id,
                role=MessageRole.ASSISTANT,
                content=answer,
                tool_calls=self.tool_calls or None,
                tool_results=self.tool_results or None,
                created_at=answered_at,
            ),
        ]
