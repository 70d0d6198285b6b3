"""
Response Stream Module.

The platform-facing output channel for one webhook response. Producers push
speech text and debug data; the HTTP layer drains the queue as server-sent
events until the end marker.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

logger = logging.getLogger(__name__)

TTS_EVENT = "response.tts"
DATA_EVENT = "response.data"
END_EVENT = "response.end"


class StreamClosedError(Exception):
    """Raised when writing to a stream that has already ended."""
    pass


class ResponseStream:
    """
    Ordered stream of response events for one turn.

    ``end()`` is idempotent and is always the last event delivered.
    """

    def __init__(self, turn_id: Optional[str] = None):
        self.turn_id = turn_id
        self._queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self._ended = False

    @property
    def ended(self) -> bool:
        return self._ended

    def _put(self, event: Dict[str, Any]):
        if self._ended:
            raise StreamClosedError(f"Stream for turn {self.turn_id} already ended")
        event["turn_id"] = self.turn_id
        self._queue.put_nowait(event)

    def tts(self, text: str):
        """Queue text for speech synthesis."""
        if text:
            self._put({"type": TTS_EVENT, "content": text})

    def data(self, content: Any):
        """Queue out-of-band data (shown to developers, never spoken)."""
        self._put({"type": DATA_EVENT, "content": content})

    def end(self):
        """Queue the end marker and close the stream."""
        if self._ended:
            return
        self._put({"type": END_EVENT})
        self._ended = True
        self._queue.put_nowait(None)

    async def events(self) -> AsyncIterator[Dict[str, Any]]:
        """Yield queued events in order, finishing after the end marker."""
        while True:
            event = await self._queue.get()
            if event is None:
                break
            yield event

    async def sse(self) -> AsyncIterator[str]:
        """Yield events encoded as server-sent event frames."""
        async for event in self.events():
            yield f"data: {json.dumps(event)}\n\n"
