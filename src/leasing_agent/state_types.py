"""
State type definitions for the webhook orchestrator.
"""

from enum import Enum


class Role(str, Enum):
    """Role of a stored turn."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class EventType(str, Enum):
    """Webhook event types sent by the voice platform."""
    SESSION_START = "session.start"
    SESSION_UPDATE = "session.update"
    SESSION_END = "session.end"
    MESSAGE = "message"


class RepairOutcome(Enum):
    """Result of reconciling an interrupted assistant turn."""
    NOT_INTERRUPTED = "NOT_INTERRUPTED"
    ANCHOR_MISSING = "ANCHOR_MISSING"  # No user turn to hang the repair on
    APPENDED = "APPENDED"  # Heard text recorded as the missing assistant turn
    SUPERSEDED = "SUPERSEDED"  # Heard text supersedes an existing assistant turn
