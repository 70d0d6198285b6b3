"""
Data models for conversation turns and inbound webhook payloads.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .state_types import EventType, Role


@dataclass(frozen=True)
class Turn:
    """
    One recorded message in a conversation.

    Turns are immutable once stored; corrections are recorded as new turns
    whose ``corrects`` field names the turn id they supersede.
    """
    role: Role
    content: Any
    turn_id: Optional[str] = None
    tool_calls: List[Dict[str, Any]] = field(default_factory=list)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None
    corrects: Optional[str] = None

    @property
    def text(self) -> str:
        """Plain text of the content (empty for structured payloads)."""
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, list):
            parts = []
            for block in self.content:
                if isinstance(block, str):
                    parts.append(block)
                elif isinstance(block, dict) and block.get("type") == "text":
                    parts.append(block.get("text", ""))
            return "".join(parts)
        return ""


class InterruptionContext(BaseModel):
    """Interruption metadata attached to a ``message`` event."""
    previous_turn_interrupted: bool = False
    words_heard: int = 0
    text_heard: str = ""
    assistant_turn_id: Optional[str] = None


class WebhookRequest(BaseModel):
    """Inbound webhook payload from the voice platform."""
    conversation_id: str = Field(..., min_length=1)
    type: str
    text: str = ""
    turn_id: Optional[str] = None
    interruption_context: Optional[InterruptionContext] = None

    @property
    def event_type(self) -> Optional[EventType]:
        """Known event type, or None for anything the dispatcher does not handle."""
        try:
            return EventType(self.type)
        except ValueError:
            return None
