"""Tests for the bounded generation cycle."""

import json

from langchain_core.messages import AIMessage, SystemMessage, ToolMessage

from conftest import ScriptedChatModel, StaticUnitSearch, collect, run, tool_call
from src.leasing_agent import (
    AIAgent,
    GenerationOrchestrator,
    ResponseStream,
    Role,
    Turn,
    build_tools,
)
from src.leasing_agent.generation import FAILURE_MESSAGE, GENERATION_FAILED, format_tool_result

NON_SMOKER = {"monthly_income": "6000", "has_pets": "no", "is_smoker": "no"}


def make_orchestrator(responses, max_steps=10):
    model = ScriptedChatModel(responses=responses)
    agent = AIAgent(llm=model, tools=build_tools(StaticUnitSearch()), max_steps=max_steps)
    return GenerationOrchestrator(agent), model


def generate(orchestrator, history, turn_id="1"):
    async def main():
        stream = ResponseStream(turn_id=turn_id)
        result = await orchestrator.generate(history, stream, turn_id)
        return result, await collect(stream)

    return run(main())


class TestAIAgent:

    def test_plain_answer_streams_text(self):
        model = ScriptedChatModel(responses=[AIMessage(content="Hello there!")])
        agent = AIAgent(llm=model, tools=build_tools(StaticUnitSearch()))
        fragments = []

        async def on_text(text):
            fragments.append(text)

        generated = run(agent.run([SystemMessage(content="sys")], on_text=on_text))

        assert fragments == ["Hello there!"]
        assert len(generated) == 1
        assert generated[0].content == "Hello there!"

    def test_tool_results_are_fed_back_to_model(self):
        model = ScriptedChatModel(responses=[
            tool_call("fetch_prequalification_questions", NON_SMOKER),
            AIMessage(content="You qualify!"),
        ])
        agent = AIAgent(llm=model, tools=build_tools(StaticUnitSearch()))
        tool_batches = []

        async def on_tool_results(results):
            tool_batches.append(results)

        generated = run(agent.run([SystemMessage(content="sys")], on_tool_results=on_tool_results))

        assert [type(m) for m in generated] == [AIMessage, ToolMessage, AIMessage]
        assert json.loads(generated[1].content) == {"qualified": "yes"}
        assert len(tool_batches) == 1
        # Second model call saw the tool result
        assert isinstance(model.seen[1][-1], ToolMessage)

    def test_step_cap_ends_endless_tool_calls(self):
        model = ScriptedChatModel(responses=[tool_call("fetch_prequalification_questions", NON_SMOKER)])
        agent = AIAgent(llm=model, tools=build_tools(StaticUnitSearch()), max_steps=3)

        generated = run(agent.run([SystemMessage(content="sys")]))

        assert model.calls == 3
        assert len(generated) == 6
        assert isinstance(generated[-1], ToolMessage)

    def test_default_step_cap_is_ten(self):
        model = ScriptedChatModel(responses=[tool_call("fetch_prequalification_questions", NON_SMOKER)])
        agent = AIAgent(llm=model, tools=build_tools(StaticUnitSearch()))

        run(agent.run([SystemMessage(content="sys")]))

        assert model.calls == 10


class TestGenerationOrchestrator:

    def test_commits_generated_turns_in_order(self, store):
        orchestrator, _ = make_orchestrator([
            tool_call("get_units", {"city_and_state": "Austin, TX", "max_budget": 2000, "min_bedrooms": 2}),
            AIMessage(content="I found a two bedroom on Main Street for eighteen hundred."),
        ])
        history = store.get_or_create("c1")
        history.append(Turn(role=Role.USER, content="I need a 2 bed apartment under $2000", turn_id="1"))

        result, events = generate(orchestrator, history)

        roles = [t.role for t in history.turns]
        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
        assert all(t.turn_id == "1" for t in history.turns[1:])
        assert history.turns[2].tool_calls[0]["name"] == "get_units"
        assert len(result.committed) == 3

        types = [e["type"] for e in events]
        assert types == ["response.data", "response.tts", "response.end"]
        assert events[0]["content"]["message"].startswith("Tool call result:")
        assert events[1]["content"].startswith("I found a two bedroom")

    def test_step_cap_still_ends_stream(self, store):
        orchestrator, model = make_orchestrator(
            [tool_call("fetch_prequalification_questions", NON_SMOKER)], max_steps=2
        )
        history = store.get_or_create("c1")
        history.append(Turn(role=Role.USER, content="do I qualify?", turn_id="1"))

        result, events = generate(orchestrator, history)

        assert model.calls == 2
        assert not result.failed
        assert events[-1]["type"] == "response.end"
        assert len(history) == 2 + 4

    def test_tool_validation_error_is_returned_to_model(self, store):
        orchestrator, model = make_orchestrator([
            tool_call("fetch_prequalification_questions", {"monthly_income": "5000"}),
            AIMessage(content="Could you tell me if you smoke?"),
        ])
        history = store.get_or_create("c1")
        history.append(Turn(role=Role.USER, content="check me", turn_id="1"))

        result, events = generate(orchestrator, history)

        assert not result.failed
        tool_turn = history.turns[3]
        assert tool_turn.role == Role.TOOL
        assert tool_turn.status == "error"
        assert history.turns[-1].content == "Could you tell me if you smoke?"
        assert events[-1]["type"] == "response.end"

    def test_unknown_tool_is_returned_to_model(self, store):
        orchestrator, _ = make_orchestrator([
            tool_call("cancel_lease", {}),
            AIMessage(content="Sorry, I can't do that."),
        ])
        history = store.get_or_create("c1")
        history.append(Turn(role=Role.USER, content="cancel my lease", turn_id="1"))

        result, _ = generate(orchestrator, history)

        assert not result.failed
        assert history.turns[3].status == "error"

    def test_model_failure_commits_nothing_and_ends_stream(self, store):
        orchestrator, _ = make_orchestrator([RuntimeError("upstream unavailable")])
        history = store.get_or_create("c1")
        history.append(Turn(role=Role.USER, content="hello", turn_id="1"))

        result, events = generate(orchestrator, history)

        assert result.failed
        assert "upstream unavailable" in result.error
        assert len(history) == 2
        assert events[-1]["type"] == "response.end"
        assert {"type": "response.tts", "content": FAILURE_MESSAGE, "turn_id": "1"} in events
        assert {"type": "response.data", "content": {"error": GENERATION_FAILED}, "turn_id": "1"} in events
        assert not any("upstream unavailable" in str(e.get("content")) for e in events)

    def test_failure_after_tool_step_discards_partial_cycle(self, store):
        orchestrator, _ = make_orchestrator([
            tool_call("fetch_prequalification_questions", NON_SMOKER),
            RuntimeError("rate limited"),
        ])
        history = store.get_or_create("c1")
        history.append(Turn(role=Role.USER, content="do I qualify?", turn_id="1"))

        result, events = generate(orchestrator, history)

        assert result.failed
        assert len(history) == 2
        assert events[-1]["type"] == "response.end"


def test_format_tool_result_pretty_prints_json():
    message = ToolMessage(content='{"qualified": "yes"}', tool_call_id="call_1")

    assert format_tool_result(message) == 'Tool call result:\n{\n  "qualified": "yes"\n}'
