"""UI message stream chunks.

Each chunk is a plain dict in the shape the chat front end renders:
text arrives as ``text-start`` / ``text-delta`` / ``text-end`` blocks and
tool activity as ``tool-input-available`` followed by
``tool-output-available`` or ``tool-output-error``.
"""

from __future__ import annotations

from typing import Any

UIMessageChunk = dict[str, Any]


def start(message_id: str) -> UIMessageChunk:
    return {"type": "start", "messageId": message_id}


def finish() -> UIMessageChunk:
    return {"type": "finish"}


def start_step() -> UIMessageChunk:
    return {"type": "start-step"}


def finish_step() -> UIMessageChunk:
    return {"type": "finish-step"}


def text_start(text_id: str) -> UIMessageChunk:
    return {"type": "text-start", "id": text_id}


def text_delta(text_id: str, delta: str) -> UIMessageChunk:
    return {"type": "text-delta", "id": text_id, "delta": delta}


def text_end(text_id: str) -> UIMessageChunk:
    return {"type": "text-end", "id": text_id}


def tool_input_available(tool_call_id: str, tool_name: str, tool_input: Any) -> UIMessageChunk:
    return {
        "type": "tool-input-available",
        "toolCallId": tool_call_id,
        "toolName": tool_name,
        "input": tool_input,
    }


def tool_output_available(tool_call_id: str, output: Any) -> UIMessageChunk:
    return {"type": "tool-output-available", "toolCallId": tool_call_id, "output": output}


def tool_output_error(tool_call_id: str, error_text: str) -> UIMessageChunk:
    return {"type": "tool-output-error", "toolCallId": tool_call_id, "errorText": error_text}


def text_block(text_id: str, text: str) -> list[UIMessageChunk]:
    """A complete text part as a start/delta/end triple."""
    return [text_start(text_id), text_delta(text_id, text), text_end(text_id)]
