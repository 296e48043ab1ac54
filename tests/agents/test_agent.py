"""Tests for the sommelier agent loop, driven by a scripted chat model."""
import json
import sqlite3

import pytest
from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from sommelier.agents import SommelierAgent
from sommelier.agents.agent import collect_wine_ids
from sommelier.agents.prompts import FALLBACK_ANSWER
from sommelier.database import ConversationTurn, MessageRole
from sommelier.database.repository import ConversationRepository
from sommelier.exceptions import (
    AuthorizationError,
    ConversationNotFoundError,
    ModelTransportError,
    ValidationError,
)
from sommelier.inventory import SQLiteInventoryIndex
from tests.conftest import OTHER_USER_ID, USER_ID, ScriptedChatModel, text_reply, tool_call, tool_calls


class BrokenIndex(SQLiteInventoryIndex):
    def wine_by_id(self, wine_id):
        raise sqlite3.OperationalError("database is locked")


class ToolRunRecorder(BaseCallbackHandler):
    def __init__(self):
        self.tool_names = []

    def on_tool_start(self, serialized, input_str, **kwargs):
        self.tool_names.append(serialized["name"])


class BrokenStore(ConversationRepository):
    def _insert_turns(self, cursor, conversation_id, turns, now):
        raise sqlite3.OperationalError("disk full")


@pytest.fixture
def make_agent(registry, index, store):
    """Build an agent over the seeded cellar answering with the given scripted replies."""
    def make(*responses, repeat=None, conversation_store=None, inventory=None, **kwargs):
        model = ScriptedChatModel(responses=list(responses), repeat=repeat)
        agent = SommelierAgent(
            llm=model, registry=registry, index=inventory or index, store=conversation_store or store, **kwargs
        )
        return agent, model
    return make


def test_plain_answer_starts_a_conversation(make_agent, store):
    agent, model = make_agent(text_reply("Hello! Ask me about your cellar."))

    result = agent.converse(USER_ID, "Hi there")

    assert result.answer_text == "Hello! Ask me about your cellar."
    assert result.truncated is False
    assert result.wine_references == []
    assert result.persistence_warning is None
    assert len(model.calls) == 1
    assert isinstance(model.calls[0][0], SystemMessage)
    assert len(model.bound_tools) == 5

    conversation = store.get(result.conversation_id)
    assert conversation.user_id == USER_ID
    assert conversation.title == "Hi there"
    turns = store.load_recent(result.conversation_id, 10)
    assert [(t.role, t.content) for t in turns] == [
        (MessageRole.USER, "Hi there"),
        (MessageRole.ASSISTANT, "Hello! Ask me about your cellar."),
    ]
    assert turns[1].tool_calls is None


def test_tool_round_feeds_results_back(make_agent, store, seeded):
    agent, model = make_agent(
        tool_call("search_wines", {"wine_type": "red"}),
        text_reply("Open the Barolo Francia."),
    )

    result = agent.converse(USER_ID, "Which red should I open?")

    assert result.answer_text == "Open the Barolo Francia."
    assert [w.id for w in result.wine_references] == [seeded["barolo"], seeded["brunello"], seeded["chianti"]]

    tool_message = model.calls[1][-1]
    assert isinstance(tool_message, ToolMessage)
    assert tool_message.tool_call_id == "call_1"
    assert tool_message.status == "success"
    assert json.loads(tool_message.content)["total_found"] == 3

    assistant_turn = store.load_recent(result.conversation_id, 10)[-1]
    assert assistant_turn.tool_calls == [{"id": "call_1", "name": "search_wines", "args": {"wine_type": "red"}}]
    assert assistant_turn.tool_results[0]["tool_call_id"] == "call_1"
    assert assistant_turn.tool_results[0]["result"]["total_found"] == 3


def test_tool_calls_of_one_reply_keep_their_order(make_agent, seeded):
    agent, model = make_agent(
        tool_calls([
            ("get_cellar_stats", {}, "a"),
            ("search_wines", {"wine_type": "white"}, "b"),
            ("get_friend_preferences", {"friend_name": "Giulia"}, "c"),
        ]),
        text_reply("Soave for Giulia's fish."),
    )

    agent.converse(USER_ID, "Giulia is coming for dinner, what should I open?")

    tool_messages = [m for m in model.calls[1] if isinstance(m, ToolMessage)]
    assert [m.tool_call_id for m in tool_messages] == ["a", "b", "c"]
    assert [m.name for m in tool_messages] == ["get_cellar_stats", "search_wines", "get_friend_preferences"]


def test_tool_runs_reach_the_run_callbacks(make_agent):
    recorder = ToolRunRecorder()
    agent, _ = make_agent(
        tool_calls([("get_cellar_stats", {}, "a"), ("search_wines", {"wine_type": "red"}, "b")]),
        tool_call("delete_wine", {"wine_id": "x"}, call_id="c"),
        text_reply("Three reds in a cellar of ten bottles."),
        callbacks=[recorder],
    )

    agent.converse(USER_ID, "How many reds do I have?")

    assert sorted(recorder.tool_names) == ["get_cellar_stats", "search_wines"]


def test_unknown_tool_is_reported_to_the_model(make_agent):
    agent, model = make_agent(
        tool_call("delete_wine", {"wine_id": "x"}),
        text_reply("I cannot do that."),
    )

    result = agent.converse(USER_ID, "Throw away my Barolo")

    assert result.answer_text == "I cannot do that."
    tool_message = model.calls[1][-1]
    assert tool_message.status == "error"
    assert json.loads(tool_message.content)["error_type"] == "unknown_tool"


def test_unparsable_tool_call_is_reported_to_the_model(make_agent, store):
    broken = AIMessage(
        content="",
        invalid_tool_calls=[{
            "name": "search_wines", "args": "{\"wine_type\": ", "id": "bad_1",
            "error": "Unterminated JSON", "type": "invalid_tool_call",
        }],
    )
    agent, model = make_agent(broken, text_reply("Let me try again later."))

    result = agent.converse(USER_ID, "Any reds?")

    tool_message = model.calls[1][-1]
    assert tool_message.tool_call_id == "bad_1"
    assert json.loads(tool_message.content)["error_type"] == "invalid_tool_call"
    assert result.wine_references == []


def test_loop_is_truncated_after_max_iterations(make_agent, store):
    agent, model = make_agent(repeat=lambda: tool_call("get_cellar_stats", {}, text="Still checking the cellar"))

    result = agent.converse(USER_ID, "Count everything, forever")

    assert result.truncated is True
    assert result.answer_text == "Still checking the cellar"
    # 8 dispatched rounds, the 9th tool request is not executed
    assert len(model.calls) == 9
    assistant_turn = store.load_recent(result.conversation_id, 10)[-1]
    assert len(assistant_turn.tool_calls) == 8


def test_truncation_without_text_uses_the_fallback(make_agent):
    agent, model = make_agent(repeat=lambda: tool_call("get_cellar_stats", {}), max_iterations=2)

    result = agent.converse(USER_ID, "Count everything")

    assert result.truncated is True
    assert result.answer_text == FALLBACK_ANSWER
    assert len(model.calls) == 3


def test_wine_references_are_capped(make_agent, seeded):
    agent, _ = make_agent(
        tool_call("search_wines", {"wine_type": "red"}),
        text_reply("Here they are."),
        max_wine_references=2,
    )

    result = agent.converse(USER_ID, "List my reds")

    assert [w.id for w in result.wine_references] == [seeded["barolo"], seeded["brunello"]]


def test_not_found_alternatives_are_not_wine_references(make_agent, seeded):
    agent, _ = make_agent(
        tool_call("get_wine_details", {"wine_name": "Chianti"}),
        text_reply("Did you mean the Chianti Classico?"),
    )

    result = agent.converse(USER_ID, "Tell me about my Chianti")

    assert result.wine_references == []


def test_reference_lookup_failure_keeps_the_answer(make_agent, db_path, store):
    agent, _ = make_agent(
        tool_call("search_wines", {"wine_type": "red"}),
        text_reply("Open the Barolo Francia."),
        inventory=BrokenIndex(db_path),
    )

    result = agent.converse(USER_ID, "Which red should I open?")

    assert result.answer_text == "Open the Barolo Francia."
    assert result.wine_references == []
    assert "database is locked" in result.reference_warning
    assert result.persistence_warning is None
    assert len(store.load_recent(result.conversation_id, 10)) == 2


def test_conversation_continues_with_history(make_agent, store):
    agent, model = make_agent(text_reply("You have three reds."), text_reply("And two whites."))

    first = agent.converse(USER_ID, "How many reds do I have?")
    second = agent.converse(USER_ID, "And whites?", conversation_id=first.conversation_id)

    assert second.conversation_id == first.conversation_id
    messages = model.calls[1]
    assert isinstance(messages[0], SystemMessage)
    assert [type(m) for m in messages[1:]] == [HumanMessage, AIMessage, HumanMessage]
    assert [m.content for m in messages[1:]] == ["How many reds do I have?", "You have three reds.", "And whites?"]
    assert len(store.load_recent(first.conversation_id, 10)) == 4


def test_history_window_is_bounded(make_agent, store):
    conversation_id = store.create_conversation(USER_ID, title="Long chat")
    store.append_turns(conversation_id, [
        ConversationTurn(
            conversation_id=conversation_id,
            role=MessageRole.USER if i % 2 == 0 else MessageRole.ASSISTANT,
            content=f"message {i}",
        )
        for i in range(22)
    ])
    agent, model = make_agent(text_reply("Sure."))

    agent.converse(USER_ID, "One more question", conversation_id=conversation_id)

    messages = model.calls[0]
    assert len(messages) == 22
    assert messages[1].content == "message 2"
    assert messages[-2].content == "message 21"
    assert messages[-1].content == "One more question"


def test_persistence_failure_keeps_the_answer(make_agent, db_path):
    agent, _ = make_agent(text_reply("Open the Soave."), conversation_store=BrokenStore(db_path))

    result = agent.converse(USER_ID, "What white should I open?")

    assert result.answer_text == "Open the Soave."
    assert "disk full" in result.persistence_warning


def test_failed_save_leaves_no_empty_conversation(make_agent, db_path, store):
    agent, _ = make_agent(text_reply("Open the Soave."), conversation_store=BrokenStore(db_path))

    result = agent.converse(USER_ID, "What white should I open?")

    assert result.persistence_warning is not None
    assert store.get(result.conversation_id) is None


def test_failed_append_keeps_the_existing_conversation(make_agent, db_path, store):
    conversation_id = store.create_conversation(USER_ID, title="Weekend")
    agent, _ = make_agent(text_reply("Open the Soave."), conversation_store=BrokenStore(db_path))

    result = agent.converse(USER_ID, "What white should I open?", conversation_id=conversation_id)

    assert "disk full" in result.persistence_warning
    assert store.get(conversation_id).title == "Weekend"
    assert store.load_recent(conversation_id, 10) == []


def test_model_failure_saves_nothing(make_agent, store):
    conversation_id = store.create_conversation(USER_ID)
    agent, _ = make_agent(RuntimeError("503 Service Unavailable"))

    with pytest.raises(ModelTransportError):
        agent.converse(USER_ID, "Hello?", conversation_id=conversation_id)

    assert store.load_recent(conversation_id, 10) == []


def test_caller_must_be_the_user(make_agent):
    agent, model = make_agent(text_reply("unused"))

    with pytest.raises(AuthorizationError):
        agent.converse(USER_ID, "Show my cellar", caller_id=OTHER_USER_ID)
    assert model.calls == []


def test_conversation_of_another_user_is_refused(make_agent, store):
    conversation_id = store.create_conversation(OTHER_USER_ID)
    agent, model = make_agent(text_reply("unused"))

    with pytest.raises(AuthorizationError):
        agent.converse(USER_ID, "Continue", conversation_id=conversation_id)
    assert model.calls == []


def test_unknown_conversation_is_a_validation_error(make_agent):
    agent, model = make_agent(text_reply("unused"))

    with pytest.raises(ConversationNotFoundError):
        agent.converse(USER_ID, "Continue", conversation_id="missing")
    assert model.calls == []


@pytest.mark.parametrize("user_id, message", [(USER_ID, "   "), ("", "Hello"), (USER_ID, "")])
def test_invalid_requests_are_rejected(make_agent, user_id, message):
    agent, model = make_agent(text_reply("unused"))

    with pytest.raises(ValidationError):
        agent.converse(user_id, message)
    assert model.calls == []


def test_collect_wine_ids_skips_errors_and_duplicates():
    results = [
        {"result": {"wines": [{"wine_id": "a"}, {"wine_id": "b"}]}},
        {"result": {"error": "not found", "alternatives": [{"wine_id": "c"}]}},
        {"result": {"wine": {"wine_id": "b"}, "related": [{"wine_id": "d"}]}},
    ]

    assert collect_wine_ids(results, limit=10) == ["a", "b", "d"]
    assert collect_wine_ids(results, limit=2) == ["a", "b"]
