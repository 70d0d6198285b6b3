"""
Interruption Handler Module.

Repairs conversation history when the voice platform reports that the
previous assistant turn was cut off before the caller heard all of it.
"""

import logging
from typing import Optional

from .conversation_store import ConversationHistory
from .models import InterruptionContext, Turn
from .state_types import RepairOutcome, Role

logger = logging.getLogger(__name__)


class InterruptionHandler:
    """
    Reconciles stored history with what the caller actually heard.

    History is append-only, so a correction is always a new assistant turn
    carrying ``text_heard``. Its ``corrects`` field names the interrupted
    turn id; when rendering prompts, the latest correction for a turn id is
    authoritative over earlier assistant text with that id.
    """

    def reconcile(
        self,
        history: ConversationHistory,
        context: Optional[InterruptionContext],
        turn_id: Optional[str]
    ) -> RepairOutcome:
        """
        Apply interruption context from a ``message`` event to the history.

        Must run inside the conversation's store session, before generation.

        Args:
            history: History of the conversation the event belongs to
            context: Interruption context of the event, if any
            turn_id: Turn id of the incoming event

        Returns:
            What the repair did
        """
        if context is None or not context.previous_turn_interrupted:
            return RepairOutcome.NOT_INTERRUPTED

        interrupted_id = context.assistant_turn_id
        logger.info(
            "Interruption context received for conversation %s (assistant_turn_id=%s, words_heard=%d)",
            history.conversation_id, interrupted_id, context.words_heard
        )

        matching_assistant = history.find_last(
            lambda t: t.role == Role.ASSISTANT and t.turn_id == interrupted_id
        )
        matching_user = history.find_last(
            lambda t: t.role == Role.USER and t.turn_id == interrupted_id
        )

        if interrupted_id is None or matching_user is None:
            logger.warning(
                "Could not find matching user turn with turn_id %s in conversation %s; "
                "skipping interruption repair",
                interrupted_id, history.conversation_id
            )
            return RepairOutcome.ANCHOR_MISSING

        if matching_assistant is None:
            # The reply never made it into history; what was heard is all there is
            history.append(Turn(
                role=Role.ASSISTANT,
                content=context.text_heard,
                turn_id=turn_id,
                corrects=interrupted_id,
            ))
            logger.info("Added missing assistant turn from heard text (turn_id=%s)", turn_id)
            return RepairOutcome.APPENDED

        history.append(Turn(
            role=Role.ASSISTANT,
            content=context.text_heard,
            turn_id=interrupted_id,
            corrects=interrupted_id,
        ))
        logger.info("Superseded assistant turn %s with heard text", interrupted_id)
        return RepairOutcome.SUPERSEDED
