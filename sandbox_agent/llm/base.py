"""Abstract base class for LLM adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from sandbox_agent.schemas import LLMMessage, LLMResponse, LLMStreamEvent


class LLMError(Exception):
    """Raised when a model request fails and no fallback is left."""


class LLMAdapter(ABC):
    """Abstract base class for LLM provider adapters.

    Providers implement this interface so the agent loop does not care
    which endpoint serves the model.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'gateway')."""
        ...

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str,
        max_tokens: int = 4096,
        tools: list[dict[str, Any]] | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Args:
            messages: List of conversation messages
            model: Model identifier
            max_tokens: Maximum tokens in response
            tools: Optional list of tool definitions for function calling

        Returns:
            LLMResponse with content and/or tool calls
        """
        ...

    @abstractmethod
    def stream_chat_completion(
        self,
        messages: list[LLMMessage],
        model: str,
        max_tokens: int = 4096,
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[LLMStreamEvent]:
        """Stream a chat completion.

        Yields ``text-delta`` events as text arrives and a final ``finish``
        event with the assembled response.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider API is accessible."""
        ...

    async def close(self) -> None:
        """Release any held connections."""

    def _build_request(
        self,
        messages: list[LLMMessage],
        model: str,
        max_tokens: int,
        tools: list[dict[str, Any]] | None,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Build the API request payload.

        This is a helper method that subclasses can use or override.
        """
        payload: dict[str, Any] = {
            "model": model,
            "messages": [m.model_dump(exclude_none=True) for m in messages],
            "max_tokens": max_tokens,
        }

        if tools:
            payload["tools"] = tools

        if stream:
            payload["stream"] = True

        return payload
