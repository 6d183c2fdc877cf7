"""FastAPI routes for the chat API.

Endpoints:
- GET  /health  - Health check
- POST /        - Run the agent on the last chat message and stream UI events
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from sandbox_agent.agent.events import UIMessageChunk
from sandbox_agent.agent.workflow import ToolLoopAgent
from sandbox_agent.api.stream import error_text_chunks, ui_message_stream_response
from sandbox_agent.config import get_settings
from sandbox_agent.schemas import ChatRequest


logger = logging.getLogger(__name__)
router = APIRouter()

settings = get_settings()


def get_agent(request: Request) -> ToolLoopAgent:
    """Dependency returning the agent built at startup."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(status_code=503, detail="Agent not ready")
    return agent


# =============================================================================
# Health Check
# =============================================================================

@router.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "environment": settings.environment,
    }


# =============================================================================
# Chat Endpoint
# =============================================================================

@router.post("")
async def chat(
    request: ChatRequest,
    agent: ToolLoopAgent = Depends(get_agent),
) -> StreamingResponse:
    """Run the agent on the last message and stream the answer."""
    prompt = request.prompt()
    logger.info(f"Chat request ({len(request.messages)} message(s), prompt {len(prompt)} chars)")
    return ui_message_stream_response(run_agent_stream(agent, prompt))


async def run_agent_stream(agent: ToolLoopAgent, prompt: str) -> AsyncIterator[UIMessageChunk]:
    """Relay agent chunks; any failure ends the stream with an error text."""
    try:
        async for chunk in agent.stream(prompt):
            yield chunk
    except Exception as e:
        logger.exception(f"Agent error: {e}")
        for chunk in error_text_chunks():
            yield chunk
