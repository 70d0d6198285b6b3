"""
Generation Orchestrator Module.

Drives one tool-augmented generation cycle for a ``message`` event: feeds
the conversation to the agent, streams text and tool results to the
response stream, commits the generated turns and ends the stream.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from langchain_core.messages import ToolMessage

from .ai_agent import AIAgent
from .conversation_store import ConversationHistory
from .models import Turn
from .prompt_generator import PromptGenerator
from .response_stream import ResponseStream

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "I apologize, but I'm experiencing technical difficulties. Please try again."
GENERATION_FAILED = "generation_failed"


@dataclass
class GenerationResult:
    """Outcome of one generation cycle."""
    committed: List[Turn] = field(default_factory=list)
    failed: bool = False
    error: Optional[str] = None


def format_tool_result(message: ToolMessage) -> str:
    """Pretty-print a tool result for the debug channel."""
    payload = message.content
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            pass
    return f"Tool call result:\n{json.dumps(payload, indent=2, default=str)}"


class GenerationOrchestrator:
    """
    Runs the agent for one turn and commits what it produced.

    Failure policy: a tool failure stays inside the loop as an error tool
    result. A model failure ends the cycle; nothing from the failed cycle is
    committed, the caller hears an apology and the stream is still ended.
    """

    def __init__(self, agent: AIAgent, prompt_generator: Optional[PromptGenerator] = None):
        self.agent = agent
        self.prompt_generator = prompt_generator or PromptGenerator()

    async def generate(
        self,
        history: ConversationHistory,
        stream: ResponseStream,
        turn_id: Optional[str]
    ) -> GenerationResult:
        """
        Run one generation cycle and end the stream.

        Must run inside the conversation's store session.

        Args:
            history: Conversation to answer; receives the generated turns
            stream: Output channel for this webhook response
            turn_id: Turn id stamped on every generated turn

        Returns:
            GenerationResult describing what was committed
        """
        messages = self.prompt_generator.build_messages(history.turns)
        logger.info(
            "Generating response for conversation %s (%d messages)",
            history.conversation_id, len(messages)
        )

        async def on_text(text: str):
            stream.tts(text)

        async def on_tool_results(results: List[ToolMessage]):
            for result in results:
                stream.data({"message": format_tool_result(result)})

        try:
            generated = await self.agent.run(
                messages,
                on_text=on_text,
                on_tool_results=on_tool_results,
            )
        except Exception as e:
            logger.exception("Generation failed for conversation %s", history.conversation_id)
            stream.data({"error": GENERATION_FAILED})
            stream.tts(FAILURE_MESSAGE)
            stream.end()
            return GenerationResult(failed=True, error=str(e))

        turns = []
        for message in generated:
            turn = self.prompt_generator.from_message(message, turn_id)
            if turn is not None:
                turns.append(turn)

        history.extend(turns)
        logger.info(
            "Committed %d generated turn(s) to conversation %s",
            len(turns), history.conversation_id
        )
        stream.end()
        return GenerationResult(committed=turns)
