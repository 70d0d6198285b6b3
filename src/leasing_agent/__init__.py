"""
Server-side modules for the leasing voice agent.

This package contains:
- EventDispatcher: Webhook event routing
- ConversationStore: Per-conversation turn history
- InterruptionHandler: Interrupted-turn repair
- PromptGenerator: History to model messages
- AIAgent: LangGraph tool-calling agent
- GenerationOrchestrator: Streamed, bounded generation cycles
- ResponseStream: Platform-facing output channel
- Tools and settings
"""

from .ai_agent import AIAgent
from .conversation_store import ConversationHistory, ConversationStore
from .dispatcher import EventDispatcher
from .generation import GenerationOrchestrator, GenerationResult
from .interruption_handler import InterruptionHandler
from .models import InterruptionContext, Turn, WebhookRequest
from .prompt_generator import PromptGenerator
from .response_stream import ResponseStream
from .settings import Settings
from .state_types import EventType, RepairOutcome, Role
from .tools import LLMUnitSearchBackend, UnitSearchBackend, build_tools

__all__ = [
    'AIAgent',
    'ConversationHistory',
    'ConversationStore',
    'EventDispatcher',
    'GenerationOrchestrator',
    'GenerationResult',
    'InterruptionHandler',
    'InterruptionContext',
    'Turn',
    'WebhookRequest',
    'PromptGenerator',
    'ResponseStream',
    'Settings',
    'EventType',
    'RepairOutcome',
    'Role',
    'LLMUnitSearchBackend',
    'UnitSearchBackend',
    'build_tools',
]
