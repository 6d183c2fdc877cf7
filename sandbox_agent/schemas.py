"""Pydantic schemas for all agent I/O contracts.

These schemas define the contracts between:
- The chat front end and the API
- LLM model inputs/outputs
- Tool calls and results
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Tool Schemas
# =============================================================================

class ToolResult(BaseModel):
    """Standard response from any sandbox call."""
    ok: bool = Field(..., description="Whether the call succeeded")
    data: Any | None = Field(default=None, description="Call-specific response data")
    error_code: str | None = Field(default=None, description="Error code if failed")
    error_message: str | None = Field(default=None, description="Human-readable error message")
    retryable: bool = Field(default=False, description="Whether the error is retryable")
    latency_ms: int | None = Field(default=None, description="Time taken in milliseconds")


class BashInput(BaseModel):
    """Arguments for the bash tool."""
    command: str = Field(..., description="The bash command to execute")


# =============================================================================
# LLM Schemas
# =============================================================================

class LLMMessage(BaseModel):
    """A single message in an LLM conversation."""
    role: Literal["system", "user", "assistant", "tool"] = Field(...)
    content: str | None = Field(default=None)
    name: str | None = Field(default=None, description="Name for tool messages")
    tool_calls: list[dict[str, Any]] | None = Field(default=None)
    tool_call_id: str | None = Field(default=None)


class LLMResponse(BaseModel):
    """Response from an LLM provider."""
    content: str | None = None
    tool_calls: list[dict[str, Any]] | None = None
    model: str
    usage: dict[str, int] = Field(default_factory=dict)
    finish_reason: str | None = None
    raw_response: dict[str, Any] | None = None


class LLMStreamEvent(BaseModel):
    """One event of a streamed completion.

    ``text-delta`` events carry a piece of assistant text; the stream always
    ends with exactly one ``finish`` event holding the assembled response.
    """
    type: Literal["text-delta", "finish"]
    text: str = ""
    response: LLMResponse | None = None


# =============================================================================
# Chat API Schemas
# =============================================================================

class UIMessagePart(BaseModel):
    """A part of a chat message. Only text parts are used for the prompt."""
    model_config = ConfigDict(extra="allow")

    type: str
    text: str | None = None


class UIMessage(BaseModel):
    """A chat message as sent by the front end."""
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    role: Literal["system", "user", "assistant"] = "user"
    parts: list[UIMessagePart] = Field(default_factory=list)


class ChatRequest(BaseModel):
    """API request body for a chat turn."""
    model_config = ConfigDict(extra="allow")

    messages: list[UIMessage] = Field(default_factory=list)

    def prompt(self) -> str:
        """Join the text parts of the last message."""
        if not self.messages:
            return ""
        last = self.messages[-1]
        return "\n".join(
            part.text for part in last.parts
            if part.type == "text" and part.text is not None
        )
