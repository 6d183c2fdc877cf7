"""LLM Router for model selection and fallback logic.

Strategy:
- Every step goes to the configured agent model
- If that model fails before producing any text, the request is sent once
  to the fallback model (when one is configured)
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from sandbox_agent.config import get_settings
from sandbox_agent.schemas import LLMMessage, LLMResponse, LLMStreamEvent
from sandbox_agent.llm.base import LLMAdapter
from sandbox_agent.llm.gateway import GatewayAdapter


logger = logging.getLogger(__name__)


class ModelRouter:
    """Routes LLM requests to the gateway with fallback logic."""

    def __init__(
        self,
        adapter: LLMAdapter | None = None,
        fallback_model: str | None = None,
    ):
        settings = get_settings()
        self.fallback_model = (
            fallback_model if fallback_model is not None else settings.agent_fallback_model
        )
        self.max_tokens = settings.llm_max_tokens

        # Initialize adapter lazily
        self._adapter = adapter

    def _get_adapter(self) -> LLMAdapter:
        """Get or create the gateway adapter."""
        if self._adapter is None:
            self._adapter = GatewayAdapter()
        return self._adapter

    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        allow_fallback: bool = True,
    ) -> tuple[LLMResponse, str]:
        """Route a chat completion request with fallback.

        Returns:
            Tuple of (response, model_used)
        """
        logger.info(f"Routing request to {model}")

        adapter = self._get_adapter()
        response = await adapter.chat_completion(
            messages=messages,
            model=model,
            max_tokens=self.max_tokens,
            tools=tools,
        )

        if response.finish_reason == "error" and allow_fallback and self._can_fall_back(model):
            logger.warning(f"Model {model} failed, falling back to {self.fallback_model}")
            response = await adapter.chat_completion(
                messages=messages,
                model=self.fallback_model,
                max_tokens=self.max_tokens,
                tools=tools,
            )
            return (response, self.fallback_model)

        return (response, model)

    async def stream_chat_completion(
        self,
        messages: list[LLMMessage],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        allow_fallback: bool = True,
    ) -> AsyncIterator[LLMStreamEvent]:
        """Route a streamed completion with fallback.

        Fallback only happens while nothing has been yielded yet, so callers
        never see text from two different models in one step.
        """
        logger.info(f"Streaming request to {model}")

        adapter = self._get_adapter()
        emitted = False

        async for event in adapter.stream_chat_completion(
            messages=messages,
            model=model,
            max_tokens=self.max_tokens,
            tools=tools,
        ):
            failed = event.type == "finish" and event.response.finish_reason == "error"
            if failed and not emitted and allow_fallback and self._can_fall_back(model):
                logger.warning(
                    f"Model {model} failed ({event.response.raw_response}), "
                    f"falling back to {self.fallback_model}"
                )
                async for fallback_event in adapter.stream_chat_completion(
                    messages=messages,
                    model=self.fallback_model,
                    max_tokens=self.max_tokens,
                    tools=tools,
                ):
                    yield fallback_event
                return

            emitted = True
            yield event

    def _can_fall_back(self, model: str) -> bool:
        return bool(self.fallback_model) and self.fallback_model != model

    async def close(self) -> None:
        """Close the adapter."""
        if self._adapter is not None:
            await self._adapter.close()


# Singleton instance
_router: ModelRouter | None = None


def get_router() -> ModelRouter:
    """Get the global model router instance."""
    global _router
    if _router is None:
        _router = ModelRouter()
    return _router
