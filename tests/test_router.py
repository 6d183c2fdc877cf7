"""Tests for model routing and fallback."""

from typing import Any

import pytest

from sandbox_agent.llm.base import LLMAdapter
from sandbox_agent.llm.router import ModelRouter
from sandbox_agent.schemas import LLMMessage, LLMResponse, LLMStreamEvent


class ScriptedAdapter(LLMAdapter):
    """Fails for the models listed in ``failing``; answers otherwise."""

    def __init__(self, failing: set[str]):
        self.failing = failing
        self.models: list[str] = []
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def chat_completion(self, messages, model, max_tokens=4096, tools=None):
        self.models.append(model)
        if model in self.failing:
            return LLMResponse(model=model, finish_reason="error", raw_response={"error": "down"})
        return LLMResponse(model=model, content=f"from {model}", finish_reason="stop")

    async def stream_chat_completion(self, messages, model, max_tokens=4096, tools=None):
        self.models.append(model)
        if model in self.failing:
            yield LLMStreamEvent(
                type="finish",
                response=LLMResponse(model=model, finish_reason="error", raw_response={"error": "down"}),
            )
            return
        yield LLMStreamEvent(type="text-delta", text=model)
        yield LLMStreamEvent(
            type="finish",
            response=LLMResponse(model=model, content=model, finish_reason="stop"),
        )

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


MESSAGES = [LLMMessage(role="user", content="hi")]


async def stream(router: ModelRouter, model: str) -> list[LLMStreamEvent]:
    return [e async for e in router.stream_chat_completion(MESSAGES, model=model)]


class TestStreamRouting:

    @pytest.mark.asyncio
    async def test_primary_success(self):
        adapter = ScriptedAdapter(failing=set())
        router = ModelRouter(adapter=adapter, fallback_model="backup")

        events = await stream(router, "primary")

        assert adapter.models == ["primary"]
        assert events[-1].response.content == "primary"

    @pytest.mark.asyncio
    async def test_falls_back_when_primary_fails(self):
        adapter = ScriptedAdapter(failing={"primary"})
        router = ModelRouter(adapter=adapter, fallback_model="backup")

        events = await stream(router, "primary")

        assert adapter.models == ["primary", "backup"]
        assert [e.type for e in events] == ["text-delta", "finish"]
        assert events[-1].response.content == "backup"

    @pytest.mark.asyncio
    async def test_no_fallback_configured_passes_error_through(self):
        adapter = ScriptedAdapter(failing={"primary"})
        router = ModelRouter(adapter=adapter, fallback_model="")

        events = await stream(router, "primary")

        assert adapter.models == ["primary"]
        assert events[-1].response.finish_reason == "error"

    @pytest.mark.asyncio
    async def test_fallback_to_same_model_is_skipped(self):
        adapter = ScriptedAdapter(failing={"primary"})
        router = ModelRouter(adapter=adapter, fallback_model="primary")

        events = await stream(router, "primary")

        assert adapter.models == ["primary"]
        assert events[-1].response.finish_reason == "error"


class TestChatCompletionRouting:

    @pytest.mark.asyncio
    async def test_falls_back(self):
        adapter = ScriptedAdapter(failing={"primary"})
        router = ModelRouter(adapter=adapter, fallback_model="backup")

        response, model_used = await router.chat_completion(MESSAGES, model="primary")

        assert model_used == "backup"
        assert response.content == "from backup"

    @pytest.mark.asyncio
    async def test_fallback_disabled(self):
        adapter = ScriptedAdapter(failing={"primary"})
        router = ModelRouter(adapter=adapter, fallback_model="backup")

        response, model_used = await router.chat_completion(MESSAGES, model="primary", allow_fallback=False)

        assert model_used == "primary"
        assert response.finish_reason == "error"

    @pytest.mark.asyncio
    async def test_close_closes_adapter(self):
        adapter = ScriptedAdapter(failing=set())
        await ModelRouter(adapter=adapter).close()
        assert adapter.closed is True
