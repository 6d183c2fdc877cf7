"""Tests for the tool loop agent."""

import json
from unittest.mock import AsyncMock

import pytest

from sandbox_agent.agent.workflow import ToolLoopAgent, build_agent
from sandbox_agent.config import Settings
from sandbox_agent.llm.base import LLMError
from sandbox_agent.schemas import LLMResponse, LLMStreamEvent, ToolResult
from sandbox_agent.tools.bash import BashTool

from fakes import FakeRouter, text_step, tool_step


@pytest.fixture
def fake_session():
    session = AsyncMock()
    session.run_command = AsyncMock(return_value=ToolResult(
        ok=True,
        data={"stdout": "notes.txt\n", "stderr": "", "exit_code": 0, "command": "ls"},
    ))
    return session


def make_agent(router: FakeRouter, session, max_steps: int = 20) -> ToolLoopAgent:
    return ToolLoopAgent(
        model="test-model",
        instructions="Answer questions about files.",
        tools=[BashTool(session)],
        router=router,
        max_steps=max_steps,
    )


async def collect(agent: ToolLoopAgent, prompt: str = "What files are there?") -> list[dict]:
    return [chunk async for chunk in agent.stream(prompt)]


class TestStream:

    @pytest.mark.asyncio
    async def test_text_only_answer(self, fake_session):
        router = FakeRouter([text_step("No ", "tools needed.")])

        chunks = await collect(make_agent(router, fake_session))

        assert [c["type"] for c in chunks] == [
            "start",
            "start-step",
            "text-start",
            "text-delta",
            "text-delta",
            "text-end",
            "finish-step",
            "finish",
        ]
        assert "".join(c["delta"] for c in chunks if c["type"] == "text-delta") == "No tools needed."
        text_ids = {c["id"] for c in chunks if c["type"].startswith("text-")}
        assert len(text_ids) == 1
        assert chunks[0]["messageId"].startswith("msg-")
        fake_session.run_command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_request_carries_instructions_prompt_and_tools(self, fake_session):
        router = FakeRouter([text_step("ok")])

        await collect(make_agent(router, fake_session), prompt="hello")

        call = router.calls[0]
        assert call["model"] == "test-model"
        assert [(m.role, m.content) for m in call["messages"]] == [
            ("system", "Answer questions about files."),
            ("user", "hello"),
        ]
        assert [t["function"]["name"] for t in call["tools"]] == ["bash"]

    @pytest.mark.asyncio
    async def test_tool_call_then_answer(self, fake_session):
        router = FakeRouter([
            tool_step(("call_1", "bash", json.dumps({"command": "ls"}))),
            text_step("There is one file: notes.txt."),
        ])

        chunks = await collect(make_agent(router, fake_session))

        assert [c["type"] for c in chunks] == [
            "start",
            "start-step",
            "tool-input-available",
            "tool-output-available",
            "finish-step",
            "start-step",
            "text-start",
            "text-delta",
            "text-end",
            "finish-step",
            "finish",
        ]
        tool_input = chunks[2]
        assert tool_input["toolCallId"] == "call_1"
        assert tool_input["toolName"] == "bash"
        assert tool_input["input"] == {"command": "ls"}
        assert chunks[3]["output"] == {"stdout": "notes.txt\n", "stderr": "", "exitCode": 0}
        fake_session.run_command.assert_awaited_once_with("ls")

        second = router.calls[1]["messages"]
        assert second[-2].role == "assistant"
        assert second[-2].tool_calls[0]["id"] == "call_1"
        assert second[-1].role == "tool"
        assert second[-1].tool_call_id == "call_1"
        assert json.loads(second[-1].content)["stdout"] == "notes.txt\n"

    @pytest.mark.asyncio
    async def test_unknown_tool_is_reported_to_model(self, fake_session):
        router = FakeRouter([
            tool_step(("call_1", "python", "{}")),
            text_step("Sorry."),
        ])

        chunks = await collect(make_agent(router, fake_session))

        errors = [c for c in chunks if c["type"] == "tool-output-error"]
        assert errors == [{"type": "tool-output-error", "toolCallId": "call_1", "errorText": "Unknown tool: python"}]
        assert router.calls[1]["messages"][-1].content == "Unknown tool: python"

    @pytest.mark.asyncio
    async def test_invalid_arguments_are_reported(self, fake_session):
        router = FakeRouter([
            tool_step(("call_1", "bash", "{not json"), ("call_2", "bash", json.dumps({"cmd": "ls"}))),
            text_step("Giving up."),
        ])

        chunks = await collect(make_agent(router, fake_session))

        inputs = [c for c in chunks if c["type"] == "tool-input-available"]
        assert inputs[0]["input"] == "{not json"
        errors = [c for c in chunks if c["type"] == "tool-output-error"]
        assert [e["toolCallId"] for e in errors] == ["call_1", "call_2"]
        assert errors[0]["errorText"].startswith("Invalid JSON arguments for bash")
        assert errors[1]["errorText"].startswith("Invalid arguments for bash")
        fake_session.run_command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tool_exception_is_reported(self, fake_session):
        fake_session.run_command.side_effect = RuntimeError("sandbox gone")
        router = FakeRouter([
            tool_step(("call_1", "bash", json.dumps({"command": "ls"}))),
            text_step("The sandbox is unavailable."),
        ])

        chunks = await collect(make_agent(router, fake_session))

        errors = [c for c in chunks if c["type"] == "tool-output-error"]
        assert errors[0]["errorText"] == "Tool bash failed: sandbox gone"
        assert chunks[-1]["type"] == "finish"

    @pytest.mark.asyncio
    async def test_stops_at_max_steps(self, fake_session):
        step = tool_step(("call_1", "bash", json.dumps({"command": "ls"})))
        router = FakeRouter([step, step, step])

        chunks = await collect(make_agent(router, fake_session, max_steps=2))

        assert len(router.calls) == 2
        assert [c["type"] for c in chunks].count("start-step") == 2
        assert fake_session.run_command.await_count == 2
        assert chunks[-1]["type"] == "finish"

    @pytest.mark.asyncio
    async def test_model_error_raises(self, fake_session):
        router = FakeRouter([[LLMStreamEvent(
            type="finish",
            response=LLMResponse(model="test-model", finish_reason="error", raw_response={"error": "down"}),
        )]])

        with pytest.raises(LLMError):
            await collect(make_agent(router, fake_session))


class TestGenerate:

    @pytest.mark.asyncio
    async def test_returns_final_text(self, fake_session):
        router = FakeRouter([
            tool_step(("call_1", "bash", json.dumps({"command": "ls"}))),
            text_step("notes.txt"),
        ])

        assert await make_agent(router, fake_session).generate("list files") == "notes.txt"


class TestBuildAgent:

    def test_uses_settings(self, fake_session):
        settings = Settings(
            agent_model="anthropic/claude-opus-4.6",
            agent_instructions="Be brief.",
            agent_max_steps=5,
        )

        agent = build_agent(settings, fake_session, router=FakeRouter([]))

        assert agent.model == "anthropic/claude-opus-4.6"
        assert agent.instructions == "Be brief."
        assert agent.max_steps == 5
        assert list(agent.tools) == ["bash"]
        assert agent.tools["bash"].sandbox is fake_session
