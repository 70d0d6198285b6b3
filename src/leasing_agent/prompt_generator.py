"""
Prompt Generator Module.

Turns stored conversation history into the message list sent to the LLM,
applying interruption corrections on the way.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from .models import Turn
from .state_types import Role

logger = logging.getLogger(__name__)


class PromptGenerator:
    """
    Builds model input from conversation turns.

    Stored history records everything the platform sent; the model view is
    cleaned up:
    - the latest correction for an interrupted turn id replaces the
      plain-text assistant turns with that id and keeps their place in the
      stored order
    - blank user turns (lifecycle events) and blank assistant text are left out
    """

    def build_messages(self, turns: Sequence[Turn]) -> List[BaseMessage]:
        """
        Render turns as LangChain messages.

        A correction takes the place of the latest reply it supersedes. When
        no such reply was stored it follows the last stored turn with the
        corrected id, whether or not that turn is shown to the model.

        Args:
            turns: Stored turns in insertion order

        Returns:
            Messages ready for the chat model
        """
        corrections: Dict[str, Tuple[int, Turn]] = {}
        for index, turn in enumerate(turns):
            if turn.corrects is not None:
                corrections[turn.corrects] = (index, turn)  # latest wins

        placements: Dict[int, List[Turn]] = {}
        for corrected_id, (position, correction) in corrections.items():
            if self._is_blank_reply(correction):
                continue
            anchor = self._anchor_index(turns, corrected_id, position)
            placements.setdefault(anchor, []).append(correction)

        ordered: List[Turn] = []
        for index, turn in enumerate(turns):
            if self._is_visible(turn, corrections):
                ordered.append(turn)
            ordered.extend(placements.get(index, []))

        return [self.to_message(turn) for turn in ordered]

    def _is_visible(self, turn: Turn, corrections: Dict[str, Tuple[int, Turn]]) -> bool:
        if turn.corrects is not None:
            return False
        if self._is_superseded(turn, corrections):
            return False
        if turn.role == Role.USER and not turn.text.strip():
            return False
        return not self._is_blank_reply(turn)

    @staticmethod
    def _is_superseded(turn: Turn, corrections: Dict[str, Tuple[int, Turn]]) -> bool:
        return (
            turn.role == Role.ASSISTANT
            and not turn.tool_calls
            and turn.corrects is None
            and turn.turn_id is not None
            and turn.turn_id in corrections
        )

    @staticmethod
    def _is_blank_reply(turn: Turn) -> bool:
        return turn.role == Role.ASSISTANT and not turn.tool_calls and not turn.text.strip()

    @staticmethod
    def _anchor_index(turns: Sequence[Turn], turn_id: str, before: int) -> int:
        """Stored index the correction for ``turn_id`` is emitted after."""
        fallback = None
        for index in range(before - 1, -1, -1):
            turn = turns[index]
            if turn.corrects is not None or turn.turn_id != turn_id:
                continue
            if turn.role == Role.ASSISTANT and not turn.tool_calls:
                return index
            if fallback is None:
                fallback = index
        return fallback if fallback is not None else before

    @staticmethod
    def to_message(turn: Turn) -> BaseMessage:
        """Convert a single turn to its LangChain message type."""
        if turn.role == Role.SYSTEM:
            return SystemMessage(content=turn.content)
        if turn.role == Role.USER:
            return HumanMessage(content=turn.content)
        if turn.role == Role.ASSISTANT:
            return AIMessage(content=turn.content, tool_calls=list(turn.tool_calls))
        return ToolMessage(
            content=turn.content,
            tool_call_id=turn.tool_call_id or "",
            name=turn.name,
            status=turn.status or "success",
        )

    @staticmethod
    def from_message(message: BaseMessage, turn_id: Optional[str]) -> Optional[Turn]:
        """
        Convert a generated message back into a storable turn.

        Returns:
            The turn, or None for message types that are never stored
        """
        if isinstance(message, AIMessage):
            return Turn(
                role=Role.ASSISTANT,
                content=message.content,
                turn_id=turn_id,
                tool_calls=[dict(call) for call in message.tool_calls],
            )
        if isinstance(message, ToolMessage):
            return Turn(
                role=Role.TOOL,
                content=message.content,
                turn_id=turn_id,
                tool_call_id=message.tool_call_id,
                name=message.name,
                status=message.status,
            )
        logger.debug("Not storing generated %s message", message.type)
        return None
