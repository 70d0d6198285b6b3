"""Shared test fixtures."""

import asyncio
from typing import Any, List, Optional

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult

from src.leasing_agent import (
    AIAgent,
    ConversationStore,
    EventDispatcher,
    GenerationOrchestrator,
    build_tools,
)
from src.leasing_agent.tools import UnitListing, UnitSearchInput


class ScriptedChatModel(BaseChatModel):
    """
    Chat model that replays scripted responses.

    The last response repeats once the script runs out. Exceptions in the
    script are raised instead of returned. Every call records the messages
    it received.
    """

    responses: List[Any]
    calls: int = 0
    seen: List[List[BaseMessage]] = []

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        self.seen.append(list(messages))
        response = self.responses[min(self.calls, len(self.responses) - 1)]
        self.calls += 1
        if isinstance(response, Exception):
            raise response
        message = response.model_copy(deep=True)
        return ChatResult(generations=[ChatGeneration(message=message)])


class StaticUnitSearch:
    """Unit search backend returning a fixed inventory."""

    def __init__(self, count: int = 7):
        self.requests: List[UnitSearchInput] = []
        self.units = [
            UnitListing(
                id=f"unit-{i}",
                address=f"{100 + i} Main St, Austin, TX",
                bedrooms=2,
                bathrooms=1.5,
                monthly_rent=1800 + 10 * i,
                square_feet=900,
                amenities=["parking", "gym", "pool"],
                upcoming_appointment_times=["2026-10-21T10:00:00", "2026-10-22T14:00:00"],
            )
            for i in range(count)
        ]

    async def search(self, filters: UnitSearchInput) -> List[UnitListing]:
        self.requests.append(filters)
        return self.units


def tool_call(name: str, args: dict, call_id: str = "call_1") -> AIMessage:
    return AIMessage(content="", tool_calls=[{"name": name, "args": args, "id": call_id}])


def make_dispatcher(
    responses: List[Any],
    max_steps: int = 10,
    store: Optional[ConversationStore] = None
):
    """Build a dispatcher around a scripted model; returns (dispatcher, model, unit_search)."""
    model = ScriptedChatModel(responses=responses)
    unit_search = StaticUnitSearch()
    agent = AIAgent(llm=model, tools=build_tools(unit_search), max_steps=max_steps)
    dispatcher = EventDispatcher(
        store=store or ConversationStore(),
        orchestrator=GenerationOrchestrator(agent),
    )
    return dispatcher, model, unit_search


async def collect(stream) -> List[dict]:
    return [event async for event in stream.events()]


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    return ConversationStore()
