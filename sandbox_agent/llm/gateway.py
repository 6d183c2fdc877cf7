"""AI gateway LLM adapter.

The gateway exposes an OpenAI-compatible API (default
https://ai-gateway.vercel.sh/v1) and routes ``provider/model`` identifiers
such as ``anthropic/claude-opus-4.6`` to the upstream provider.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, AsyncIterator

import httpx

from sandbox_agent.config import get_settings
from sandbox_agent.schemas import LLMMessage, LLMResponse, LLMStreamEvent
from sandbox_agent.llm.base import LLMAdapter


logger = logging.getLogger(__name__)


class GatewayAdapter(LLMAdapter):
    """AI gateway adapter using the OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.ai_gateway_api_key
        self.base_url = base_url or settings.ai_gateway_base_url
        self.default_model = settings.agent_model
        self.timeout = timeout or settings.llm_timeout_seconds

        if not self.api_key:
            raise ValueError("AI gateway API key not configured")

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=transport,
        )

    @property
    def provider_name(self) -> str:
        return "gateway"

    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        max_tokens: int = 4096,
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """Send a chat completion request to the gateway."""
        model = model or self.default_model

        payload = self._build_request(
            messages=messages,
            model=model,
            max_tokens=max_tokens,
            tools=tools,
        )

        try:
            response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            return LLMResponse(
                content=None,
                model=model,
                usage={},
                finish_reason="error",
                raw_response={"error": str(e), "status_code": e.response.status_code},
            )
        except Exception as e:
            return LLMResponse(
                content=None,
                model=model,
                usage={},
                finish_reason="error",
                raw_response={"error": str(e)},
            )

        choice = data.get("choices", [{}])[0]
        message = choice.get("message", {})

        return LLMResponse(
            content=message.get("content"),
            tool_calls=message.get("tool_calls"),
            model=data.get("model", model),
            usage=data.get("usage") or {},
            finish_reason=choice.get("finish_reason"),
            raw_response=data,
        )

    async def stream_chat_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        max_tokens: int = 4096,
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[LLMStreamEvent]:
        """Stream a chat completion as server-sent events."""
        model = model or self.default_model

        payload = self._build_request(
            messages=messages,
            model=model,
            max_tokens=max_tokens,
            tools=tools,
            stream=True,
        )

        start_time = time.perf_counter()
        content_parts: list[str] = []
        tool_calls: dict[int, dict[str, Any]] = {}
        finish_reason: str | None = None
        usage: dict[str, int] = {}
        response_model = model
        stream_error: dict[str, Any] | None = None
        done = False

        try:
            async with self._client.stream("POST", "/chat/completions", json=payload) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        done = True
                        break

                    chunk = json.loads(data)
                    if chunk.get("error"):
                        stream_error = {"error": chunk["error"]}
                        break

                    response_model = chunk.get("model") or response_model
                    if chunk.get("usage"):
                        usage = chunk["usage"]

                    for choice in chunk.get("choices") or []:
                        delta = choice.get("delta") or {}

                        text = delta.get("content")
                        if text:
                            content_parts.append(text)
                            yield LLMStreamEvent(type="text-delta", text=text)

                        for fragment in delta.get("tool_calls") or []:
                            _merge_tool_call(tool_calls, fragment)

                        if choice.get("finish_reason"):
                            finish_reason = choice["finish_reason"]
        except httpx.HTTPStatusError as e:
            yield LLMStreamEvent(
                type="finish",
                response=LLMResponse(
                    model=model,
                    finish_reason="error",
                    raw_response={"error": str(e), "status_code": e.response.status_code},
                ),
            )
            return
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            yield LLMStreamEvent(
                type="finish",
                response=LLMResponse(
                    model=model,
                    finish_reason="error",
                    raw_response={"error": str(e)},
                ),
            )
            return

        if stream_error is None and not done:
            stream_error = {
                "error": "stream ended before [DONE]",
                "partial_content": "".join(content_parts),
            }

        if stream_error is not None:
            logger.warning(f"{model} stream failed: {stream_error}")
            yield LLMStreamEvent(
                type="finish",
                response=LLMResponse(model=model, finish_reason="error", raw_response=stream_error),
            )
            return

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(f"{response_model} streamed in {latency_ms}ms ({finish_reason})")

        yield LLMStreamEvent(
            type="finish",
            response=LLMResponse(
                content="".join(content_parts) or None,
                tool_calls=[tool_calls[i] for i in sorted(tool_calls)] or None,
                model=response_model,
                usage=usage,
                finish_reason=finish_reason,
            ),
        )

    async def health_check(self) -> bool:
        """Check if the gateway is accessible."""
        try:
            response = await self._client.get("/models")
            return response.status_code == 200
        except Exception:
            return False

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def _merge_tool_call(tool_calls: dict[int, dict[str, Any]], fragment: dict[str, Any]) -> None:
    """Fold one streamed tool-call fragment into the calls collected so far."""
    index = fragment.get("index")
    if index is None:
        # Without an index, a fragment with no id continues the latest call
        if tool_calls and not fragment.get("id"):
            index = max(tool_calls)
        else:
            index = len(tool_calls)
    call = tool_calls.setdefault(
        index,
        {"id": "", "type": "function", "function": {"name": "", "arguments": ""}},
    )
    if fragment.get("id"):
        call["id"] = fragment["id"]
    function = fragment.get("function") or {}
    if function.get("name"):
        call["function"]["name"] = function["name"]
    if function.get("arguments"):
        call["function"]["arguments"] += function["arguments"]
