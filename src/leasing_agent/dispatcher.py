"""
Event Dispatcher Module.

Classifies webhook events and routes them. Every event first records its
text as a user turn; lifecycle events are then acknowledged, while
``session.start`` and ``message`` produce a streamed response.
"""

import asyncio
import logging
from typing import Optional, Set

from .conversation_store import ConversationHistory, ConversationStore
from .generation import GenerationOrchestrator
from .interruption_handler import InterruptionHandler
from .models import Turn, WebhookRequest
from .prompts import WELCOME_MESSAGE
from .response_stream import ResponseStream
from .state_types import EventType, Role

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Routes webhook events to the reconciler and generation orchestrator.

    Streamed work runs in a background task that holds the conversation's
    store session for the whole cycle, so a second event for the same
    conversation waits until the first has committed its turns.
    """

    def __init__(
        self,
        store: ConversationStore,
        orchestrator: GenerationOrchestrator,
        interruption_handler: Optional[InterruptionHandler] = None,
        welcome_message: str = WELCOME_MESSAGE
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.interruption_handler = interruption_handler or InterruptionHandler()
        self.welcome_message = welcome_message
        self._tasks: Set[asyncio.Task] = set()

    async def dispatch(self, request: WebhookRequest) -> Optional[ResponseStream]:
        """
        Handle one webhook event.

        Work for every event is queued in arrival order and runs under the
        conversation's session, so acknowledgments never wait for a running
        generation and turns are stored in the order events arrived.

        Args:
            request: Validated webhook payload

        Returns:
            A response stream for events that answer the caller, or None when
            the event only needs a plain acknowledgment
        """
        event_type = request.event_type
        logger.info(
            "Received %s for conversation %s (turn_id=%s)",
            request.type, request.conversation_id, request.turn_id
        )

        if event_type in (EventType.SESSION_START, EventType.MESSAGE):
            stream = ResponseStream(turn_id=request.turn_id)
            self._spawn(request.conversation_id, self._respond(request, stream))
            return stream

        if event_type is None:
            logger.warning("Unhandled event type: %s", request.model_dump())
        self._spawn(request.conversation_id, self._record(request))
        return None

    @staticmethod
    def _record_user_turn(history: ConversationHistory, request: WebhookRequest):
        history.append(Turn(role=Role.USER, content=request.text, turn_id=request.turn_id))

    def _spawn(self, conversation_id: str, coro):
        self.store.reserve(conversation_id)
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(lambda _: self.store.release(conversation_id))

    async def _record(self, request: WebhookRequest):
        try:
            async with self.store.session(request.conversation_id) as history:
                self._record_user_turn(history, request)
        except Exception:
            logger.exception("Failed to record %s for conversation %s", request.type, request.conversation_id)

    async def _respond(self, request: WebhookRequest, stream: ResponseStream):
        try:
            async with self.store.session(request.conversation_id) as history:
                self._record_user_turn(history, request)

                if request.event_type == EventType.SESSION_START:
                    self._welcome(history, request, stream)
                else:
                    self.interruption_handler.reconcile(
                        history, request.interruption_context, request.turn_id
                    )
                    await self.orchestrator.generate(history, stream, request.turn_id)
        except Exception:
            logger.exception("Failed to handle %s for conversation %s", request.type, request.conversation_id)
        finally:
            stream.end()

    def _welcome(self, history: ConversationHistory, request: WebhookRequest, stream: ResponseStream):
        stream.tts(self.welcome_message)
        history.append(Turn(role=Role.ASSISTANT, content=self.welcome_message, turn_id=request.turn_id))
        logger.info("Session started for conversation %s", request.conversation_id)
        stream.end()

    async def wait_idle(self):
        """Wait for every in-flight response task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
