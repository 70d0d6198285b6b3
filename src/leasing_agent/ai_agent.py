"""
AI Agent Module using LangGraph with Tool Calling.

Runs one bounded agent/tools loop over a message list. Text is handed to a
callback as soon as the model streams it; tool results are handed to a
second callback once each tools step completes.
"""

import logging
from typing import (
    Annotated,
    Any,
    Awaitable,
    Callable,
    List,
    Literal,
    Optional,
    Sequence,
    TypedDict,
)

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, ToolMessage, message_chunk_to_message
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from langgraph.prebuilt import ToolNode

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 10

TextSink = Callable[[str], Awaitable[None]]
ToolResultSink = Callable[[List[ToolMessage]], Awaitable[None]]


# ============================================================================
# AGENT STATE
# ============================================================================

class ConversationState(TypedDict):
    """State for the conversation graph."""
    messages: Annotated[list, add_messages]
    steps: int


def content_text(content: Any) -> str:
    """Extract plain text from message content (string or content blocks)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


# ============================================================================
# AI AGENT CLASS
# ============================================================================

class AIAgent:
    """
    LangGraph agent with tool calling and a hard step cap.

    A step is one model call plus execution of the tool calls it requested.
    The loop stops when the model answers without tool calls or after
    ``max_steps`` steps, whichever comes first.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        tools: Sequence[BaseTool],
        max_steps: int = DEFAULT_MAX_STEPS
    ):
        """
        Initialize the agent.

        Args:
            llm: Chat model supporting tool binding
            tools: Tools the model may call
            max_steps: Maximum number of model/tool steps per run
        """
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")

        self.tools = tuple(tools)
        self.max_steps = max_steps
        self.llm_with_tools = llm.bind_tools(list(self.tools)) if self.tools else llm

        logger.info(
            "AI agent ready with %d tool(s): %s (max_steps=%d)",
            len(self.tools), ", ".join(t.name for t in self.tools), max_steps
        )
        self._build_graph()

    def _build_graph(self):
        """Build the LangGraph workflow: agent -> tools -> agent ... -> END."""
        workflow = StateGraph(ConversationState)
        workflow.add_node("agent", self._agent_node)

        if self.tools:
            # Tool failures come back to the model as error ToolMessages
            workflow.add_node("tools", ToolNode(list(self.tools), handle_tool_errors=True))
            workflow.add_conditional_edges(
                "agent",
                self._should_call_tools,
                {"tools": "tools", "end": END},
            )
            workflow.add_conditional_edges(
                "tools",
                self._should_continue,
                {"agent": "agent", "end": END},
            )
        else:
            workflow.add_edge("agent", END)

        workflow.set_entry_point("agent")
        self.graph = workflow.compile()

    def _should_call_tools(self, state: ConversationState) -> Literal["tools", "end"]:
        last_message = state["messages"][-1]
        if getattr(last_message, "tool_calls", None):
            logger.info("Tool calls requested: %s", ", ".join(c["name"] for c in last_message.tool_calls))
            return "tools"
        return "end"

    def _should_continue(self, state: ConversationState) -> Literal["agent", "end"]:
        if state["steps"] >= self.max_steps:
            logger.warning("Step cap of %d reached, ending generation", self.max_steps)
            return "end"
        return "agent"

    async def _agent_node(self, state: ConversationState, config: RunnableConfig) -> dict:
        """Call the model, streaming text to the configured sink as it arrives."""
        text_sink: Optional[TextSink] = config.get("configurable", {}).get("text_sink")

        response = None
        async for chunk in self.llm_with_tools.astream(state["messages"]):
            text = content_text(chunk.content)
            if text and text_sink is not None:
                await text_sink(text)
            response = chunk if response is None else response + chunk

        if response is None:
            raise RuntimeError("Model returned an empty stream")

        return {
            "messages": [message_chunk_to_message(response)],
            "steps": state.get("steps", 0) + 1,
        }

    async def run(
        self,
        messages: Sequence[BaseMessage],
        on_text: Optional[TextSink] = None,
        on_tool_results: Optional[ToolResultSink] = None
    ) -> List[BaseMessage]:
        """
        Run one generation cycle.

        Args:
            messages: Full model input, system message first
            on_text: Awaited with each text fragment, in generation order
            on_tool_results: Awaited with the tool results of each tools step

        Returns:
            The messages generated during the cycle (assistant and tool), in order

        Raises:
            Whatever the model call raises; tool failures do not raise
        """
        generated: List[BaseMessage] = []
        config: RunnableConfig = {
            "configurable": {"text_sink": on_text},
            "recursion_limit": 2 * self.max_steps + 2,
        }

        async for update in self.graph.astream(
            {"messages": list(messages), "steps": 0},
            config=config,
            stream_mode="updates",
        ):
            for node_name, node_update in update.items():
                if not node_update:
                    continue
                new_messages = node_update.get("messages", [])
                generated.extend(new_messages)

                if node_name == "tools" and on_tool_results is not None:
                    tool_messages = [m for m in new_messages if isinstance(m, ToolMessage)]
                    if tool_messages:
                        await on_tool_results(tool_messages)

        return generated

    def get_available_tools(self) -> List[str]:
        return [t.name for t in self.tools]
