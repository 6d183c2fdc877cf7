"""Server-sent event encoding for the UI message stream."""

from __future__ import annotations

import json
from typing import AsyncIterable, AsyncIterator

from fastapi.responses import StreamingResponse

from sandbox_agent.agent import events
from sandbox_agent.agent.events import UIMessageChunk


UI_MESSAGE_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "x-vercel-ai-ui-message-stream": "v1",
    "x-accel-buffering": "no",
}

ERROR_TEXT = "An error occurred. Please try again."


def encode_chunk(chunk: UIMessageChunk) -> str:
    return f"data: {json.dumps(chunk, separators=(',', ':'))}\n\n"


async def encode_stream(chunks: AsyncIterable[UIMessageChunk]) -> AsyncIterator[str]:
    async for chunk in chunks:
        yield encode_chunk(chunk)
    yield "data: [DONE]\n\n"


def error_text_chunks(message: str = ERROR_TEXT) -> list[UIMessageChunk]:
    """Chunks that show ``message`` as a text part in place of an answer."""
    return events.text_block("error", message)


def ui_message_stream_response(chunks: AsyncIterable[UIMessageChunk]) -> StreamingResponse:
    return StreamingResponse(
        encode_stream(chunks),
        media_type="text/event-stream",
        headers=UI_MESSAGE_STREAM_HEADERS,
    )
