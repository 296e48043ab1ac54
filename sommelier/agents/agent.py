"""
Sommelier agent implementation using LangGraph with LLM tool selection.

The agent answers questions about the user's cellar by letting the model call
read-only tools, feeding the results back until the model replies with plain text.

Graph:
1. agent: call the model with the system prompt, the transcript and the tool schemas
2. tools: dispatch every requested tool call as a batch of LangChain tool runs and append the results
3. truncate: stop when the model keeps asking for tools past the iteration bound
"""
import json
import operator
import sqlite3
from typing import Annotated, Any, Optional

import pydantic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig, RunnableLambda
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from sommelier.agents.prompts import FALLBACK_ANSWER, SYSTEM_PROMPT
from sommelier.agents.session import AgentSession, ChatRequest, ConversationStore, ConverseResult
from sommelier.agents.tools import USER_ID_KEY, ToolErrorType, ToolOutcome, ToolRegistry, tool_error
from sommelier.database.models import WineRecord
from sommelier.exceptions import (
    AuthorizationError,
    ConversationNotFoundError,
    ModelTransportError,
    PersistenceError,
    ValidationError,
)
from sommelier.inventory import InventoryIndex
from sommelier.utils import logger, utc_now

DEFAULT_HISTORY_LIMIT = 20
DEFAULT_MAX_ITERATIONS = 8
DEFAULT_MAX_WINE_REFERENCES = 10
DEFAULT_MAX_TOOL_WORKERS = 4


class AgentState(TypedDict):
    """State for the sommelier agent graph."""
    messages: Annotated[list, add_messages]
    user_id: str
    iterations: int
    last_text: str
    answer: str
    truncated: bool
    tool_calls: Annotated[list, operator.add]
    tool_results: Annotated[list, operator.add]


def message_text(message: BaseMessage) -> str:
    """Plain text of a model message, whether its content is a string or a list of blocks."""
    content = message.content
    if isinstance(content, str):
        return content.strip()
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


def collect_wine_ids(results: list[dict], limit: int) -> list[str]:
    """
    Collect the wine IDs surfaced in successful tool results.

    Args:
        results: Tool result audit records, in dispatch order
        limit: Maximum number of IDs

    Returns:
        Distinct IDs in first-seen order
    """
    wine_ids: list[str] = []

    def walk(value: Any) -> None:
        if len(wine_ids) >= limit:
            return
        if isinstance(value, dict):
            wine_id = value.get("wine_id")
            if isinstance(wine_id, str) and wine_id and wine_id not in wine_ids:
                wine_ids.append(wine_id)
            for key, item in value.items():
                if key != "wine_id":
                    walk(item)
        elif isinstance(value, list):
            for item in value:
                walk(item)

    for record in results:
        result = record.get("result")
        if isinstance(result, dict) and "error" not in result:
            walk(result)
    return wine_ids[:limit]


class SommelierAgent:
    """
    Tool-augmented sommelier chat over a user's cellar.

    The model, the registry, the inventory index and the conversation store are
    injected and shared by all requests; a request only owns its AgentSession.

    Attributes:
        llm: Chat model used for reasoning and generation
        registry: Tool registry
        index: Inventory index used to resolve wine references
        store: Conversation store
        graph: The compiled LangGraph workflow
    """

    def __init__(
        self,
        llm: BaseChatModel,
        registry: ToolRegistry,
        index: InventoryIndex,
        store: ConversationStore,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_wine_references: int = DEFAULT_MAX_WINE_REFERENCES,
        max_tool_workers: int = DEFAULT_MAX_TOOL_WORKERS,
        system_prompt: str = SYSTEM_PROMPT,
        callbacks: Optional[list] = None,
    ):
        """
        Initialize the sommelier agent.

        Args:
            llm: Chat model supporting tool binding
            registry: Tool registry
            index: Inventory index
            store: Conversation store
            history_limit: Number of stored turns sent to the model
            max_iterations: Maximum number of tool rounds per request
            max_wine_references: Maximum number of wine records returned per answer
            max_tool_workers: Maximum number of tool calls run concurrently
            system_prompt: System instruction
            callbacks: Optional LangChain callbacks (e.g. Langfuse) attached to each run
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.llm = llm
        self.registry = registry
        self.index = index
        self.store = store
        self.history_limit = history_limit
        self.max_iterations = max_iterations
        self.max_wine_references = max_wine_references
        self.max_tool_workers = max_tool_workers
        self.system_prompt = system_prompt.strip()
        self.callbacks = callbacks or []

        self.graph = self._create_graph()
        logger.info(f"Sommelier agent initialized with {len(self.registry)} tools")

    def _create_graph(self):
        """
        Create the LangGraph workflow.

        Returns:
            Compiled LangGraph workflow
        """
        model_with_tools = self.llm.bind_tools(self.registry.tool_schemas())

        def call_model(state: AgentState):
            """Call the LLM to either select tools or generate the final answer."""
            messages = [SystemMessage(content=self.system_prompt), *state["messages"]]
            try:
                response = model_with_tools.invoke(messages)
            except Exception as e:
                logger.error(f"Model call failed: {e}")
                raise ModelTransportError(str(e) or type(e).__name__) from e

            update = {"messages": [response]}
            text = message_text(response)
            if text:
                update["last_text"] = text
            return update

        def route_model_output(state: AgentState):
            """Decide if we should dispatch tools, stop, or end."""
            last_message = state["messages"][-1]
            if not (getattr(last_message, "tool_calls", None) or getattr(last_message, "invalid_tool_calls", None)):
                return END
            if state["iterations"] >= self.max_iterations:
                return "truncate"
            return "tools"

        def execute_tools(state: AgentState, config: RunnableConfig):
            """Dispatch every tool call of the last model message and append the results."""
            last_message: AIMessage = state["messages"][-1]
            outcomes = self._dispatch(last_message, state["user_id"], config)

            tool_messages = [
                ToolMessage(
                    content=json.dumps(outcome.result, default=str, ensure_ascii=False),
                    tool_call_id=outcome.call_id,
                    name=outcome.name,
                    status="error" if outcome.is_error else "success",
                )
                for outcome in outcomes
            ]
            iterations = state["iterations"] + 1
            logger.info(f"Tool round {iterations}: {[outcome.name for outcome in outcomes]}")
            return {
                "messages": tool_messages,
                "iterations": iterations,
                "tool_calls": [{"id": o.call_id, "name": o.name, "args": o.args} for o in outcomes],
                "tool_results": [{"tool_call_id": o.call_id, "name": o.name, "result": o.result} for o in outcomes],
            }

        def truncate(state: AgentState):
            """Force termination with the best text seen so far."""
            logger.warning(f"Iteration bound of {self.max_iterations} tool rounds reached, truncating the answer")
            return {"answer": state.get("last_text") or FALLBACK_ANSWER, "truncated": True}

        workflow = StateGraph(AgentState)

        workflow.add_node("agent", call_model)
        workflow.add_node("tools", execute_tools)
        workflow.add_node("truncate", truncate)

        workflow.set_entry_point("agent")
        workflow.add_conditional_edges(
            "agent",
            route_model_output,
            {
                "tools": "tools",
                "truncate": "truncate",
                END: END,
            }
        )
        workflow.add_edge("tools", "agent")
        workflow.add_edge("truncate", END)

        return workflow.compile()

    def _dispatch(
        self, message: AIMessage, user_id: str, node_config: Optional[RunnableConfig] = None
    ) -> list[ToolOutcome]:
        """
        Run the tool calls of a model message.

        Registered calls run as LangChain tools in one batch, so they are traced by the run
        callbacks and at most max_tool_workers run at once; results keep the request order.
        Unknown names and calls the provider could not parse get an error result without a tool run.
        """
        calls = list(message.tool_calls or [])
        invalid_calls = list(getattr(message, "invalid_tool_calls", None) or [])

        def run(call: dict, config: RunnableConfig) -> ToolOutcome:
            args = call.get("args") or {}
            tool = self.registry.as_tool(call["name"])
            if tool is None:
                result = self.registry.dispatch(call["name"], args, user_id)
            else:
                result = tool.invoke(args, config=config)
            return ToolOutcome(call_id=call.get("id") or "", name=call["name"], args=args, result=result)

        outcomes: list[ToolOutcome] = []
        if calls:
            outcomes.extend(RunnableLambda(run, name="dispatch_tool").batch(
                calls,
                config={
                    "callbacks": (node_config or {}).get("callbacks"),
                    "max_concurrency": max(1, self.max_tool_workers),
                    "configurable": {USER_ID_KEY: user_id},
                },
            ))

        for position, call in enumerate(invalid_calls):
            name = call.get("name") or "unknown"
            logger.warning(f"Model sent an unparsable call to '{name}': {call.get('error')}")
            outcomes.append(ToolOutcome(
                call_id=call.get("id") or f"invalid_call_{position}",
                name=name,
                args={"raw": call.get("args")},
                result=tool_error(
                    f"Could not parse the arguments of '{name}': {call.get('error') or 'invalid JSON'}",
                    ToolErrorType.INVALID_TOOL_CALL,
                ),
            ))
        return outcomes

    def _start_session(self, request: ChatRequest) -> AgentSession:
        """Check access to the requested conversation and load its history window."""
        if request.conversation_id is None:
            return AgentSession.start()

        conversation = self.store.get(request.conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation {request.conversation_id} not found")
        if conversation.user_id != request.user_id:
            raise AuthorizationError(f"Conversation {request.conversation_id} belongs to another user")

        history = self.store.load_recent(request.conversation_id, self.history_limit)
        return AgentSession.start(request.conversation_id, history)

    def _resolve_wine_references(self, tool_results: list[dict]) -> tuple[list[WineRecord], str | None]:
        """Look up the wines surfaced by the tools, by ID; a storage failure is returned as a warning."""
        wines = []
        try:
            for wine_id in collect_wine_ids(tool_results, self.max_wine_references):
                wine = self.index.wine_by_id(wine_id)
                if wine is not None:
                    wines.append(wine)
        except (sqlite3.Error, PersistenceError) as e:
            logger.error(f"Wine references could not be loaded: {e}")
            return [], f"Wine references could not be loaded: {e}"
        return wines, None

    def _persist(self, session: AgentSession, user_id: str, message: str, turns: list) -> str | None:
        """Save the exchange; a storage failure is returned as a warning instead of raised."""
        try:
            if session.is_new:
                self.store.create_with_turns(user_id, session.title_for(message), session.conversation_id, turns)
            else:
                self.store.append_turns(session.conversation_id, turns)
        except PersistenceError as e:
            logger.error(f"Exchange not saved in conversation {session.conversation_id}: {e.message}")
            return e.message
        return None

    def converse(
        self,
        user_id: str,
        message: str,
        conversation_id: str | None = None,
        caller_id: str | None = None,
    ) -> ConverseResult:
        """
        Answer a user message, calling tools as the model requests.

        Args:
            user_id: User the conversation belongs to
            message: New user message
            conversation_id: Existing conversation to continue, None to start a new one
            caller_id: Authenticated caller, must match user_id when given

        Returns:
            ConverseResult with the answer, the conversation ID, the wines surfaced by the tools
            and whether the answer was truncated by the iteration bound

        Raises:
            ValidationError: Invalid request or unknown conversation
            AuthorizationError: Caller is not the user, or the conversation belongs to another user
            ModelTransportError: The model endpoint failed; nothing is saved
        """
        try:
            request = ChatRequest(
                user_id=user_id, message=message, conversation_id=conversation_id, caller_id=caller_id
            )
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid chat request: {e.errors()}") from e

        if request.caller_id is not None and request.caller_id != request.user_id:
            raise AuthorizationError(f"Caller {request.caller_id} cannot act as user {request.user_id}")

        session = self._start_session(request)
        asked_at = utc_now()
        logger.info(f"Processing message for conversation {session.conversation_id}: {request.message[:100]}")

        final_state = self.graph.invoke(
            {
                "messages": session.seed_transcript(request.message),
                "user_id": request.user_id,
                "iterations": 0,
                "last_text": "",
                "answer": "",
                "truncated": False,
                "tool_calls": [],
                "tool_results": [],
            },
            config={
                "recursion_limit": 2 * self.max_iterations + 5,
                "callbacks": self.callbacks,
            },
        )

        session.transcript = final_state["messages"]
        session.iteration_count = final_state["iterations"]
        session.tool_calls = final_state["tool_calls"]
        session.tool_results = final_state["tool_results"]

        truncated = final_state["truncated"]
        if truncated:
            answer = final_state["answer"]
        else:
            answer = message_text(final_state["messages"][-1]) or final_state["last_text"] or FALLBACK_ANSWER

        wine_references, reference_warning = self._resolve_wine_references(session.tool_results)
        turns = session.build_turns(request.message, answer, asked_at, utc_now())
        warning = self._persist(session, request.user_id, request.message, turns)

        logger.info(
            f"Answered in {session.iteration_count} tool round(s), "
            f"{len(wine_references)} wine reference(s), truncated={truncated}"
        )
        return ConverseResult(
            answer_text=answer,
            conversation_id=session.conversation_id,
            wine_references=wine_references,
            truncated=truncated,
            persistence_warning=warning,
            reference_warning=reference_warning,
        )


def create_sommelier_agent(llm: Optional[BaseChatModel] = None, db_path: str | None = None) -> SommelierAgent:
    """
    Factory function to create a sommelier agent wired from the app config.

    Args:
        llm: Chat model instance. If None, loads the default from config.
        db_path: SQLite database path. If None, uses the configured path.

    Returns:
        Initialized SommelierAgent instance ready to process messages
    """
    from sommelier.agents.llm import load_base_model
    from sommelier.agents.tools import build_default_registry
    from sommelier.database.repository import ConversationRepository
    from sommelier.inventory import SQLiteContactDirectory, SQLiteInventoryIndex
    from sommelier.matching import EntityMatcher
    from sommelier.utils import get_config, get_default_db_path

    config = get_config()
    db_path = db_path or get_default_db_path()

    if llm is None:
        llm = load_base_model(config.model.provider, config.model.name)
        logger.info(f"Loaded default LLM: {config.model.provider}/{config.model.name}")
    else:
        logger.info(f"Using provided LLM: {type(llm).__name__}")

    matcher = EntityMatcher(
        acceptance_threshold=config.matcher.acceptance_threshold,
        consideration_threshold=config.matcher.consideration_threshold,
        min_score=config.matcher.min_score,
    )
    index = SQLiteInventoryIndex(db_path)
    registry = build_default_registry(index, SQLiteContactDirectory(db_path), matcher)

    callbacks = []
    if config.tracing.enabled:
        from sommelier.utils.tracing import get_langfuse_callback

        handler = get_langfuse_callback()
        if handler is not None:
            callbacks.append(handler)

    agent = SommelierAgent(
        llm=llm,
        registry=registry,
        index=index,
        store=ConversationRepository(db_path),
        history_limit=config.agent.history_limit,
        max_iterations=config.agent.max_iterations,
        max_wine_references=config.agent.max_wine_references,
        max_tool_workers=config.agent.max_tool_workers,
        callbacks=callbacks,
    )
    logger.info(f"Created sommelier agent (db={db_path})")
    return agent
