"""LangGraph tool loop for the shell agent.

Graph structure:
START → model ──(tool calls)──→ tools ──(steps left)──→ model
          │                       │
          └──(final text)──→ END ←┘ (step limit reached)

UI message chunks are written from inside the nodes with LangGraph's
stream writer, so ``stream()`` relays text as it arrives from the model.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Literal, TypedDict
from uuid import uuid4

from langgraph.config import get_stream_writer
from langgraph.graph import StateGraph, END
from pydantic import ValidationError

from sandbox_agent.agent import events
from sandbox_agent.config import Settings, get_settings
from sandbox_agent.llm.base import LLMError
from sandbox_agent.llm.router import ModelRouter, get_router
from sandbox_agent.schemas import LLMMessage
from sandbox_agent.tools.base import Tool
from sandbox_agent.tools.bash import BashTool
from sandbox_agent.tools.sandbox import SandboxSession


logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 20


# =============================================================================
# State Definition
# =============================================================================

class AgentState(TypedDict):
    """State for the tool loop.

    Attributes:
        messages: Conversation so far, system instructions first
        tool_calls: Tool calls requested by the latest model step
        step: Number of model steps taken
    """
    messages: list[LLMMessage]
    tool_calls: list[dict[str, Any]]
    step: int


# =============================================================================
# Agent
# =============================================================================

class ToolLoopAgent:
    """Loops between the model and its tools until a final answer."""

    def __init__(
        self,
        model: str,
        instructions: str,
        tools: list[Tool],
        router: ModelRouter | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        self.model = model
        self.instructions = instructions
        self.tools = {tool.name: tool for tool in tools}
        self.router = router or get_router()
        self.max_steps = max_steps
        self._tool_definitions = [tool.to_llm_tool_definition() for tool in tools]
        self._graph = build_workflow(self).compile()

    def initial_state(self, prompt: str) -> AgentState:
        messages = []
        if self.instructions:
            messages.append(LLMMessage(role="system", content=self.instructions))
        messages.append(LLMMessage(role="user", content=prompt))
        return AgentState(messages=messages, tool_calls=[], step=0)

    @property
    def _run_config(self) -> dict[str, Any]:
        # model + tools per step, plus the final model step
        return {"recursion_limit": 2 * self.max_steps + 2}

    async def stream(self, prompt: str) -> AsyncIterator[events.UIMessageChunk]:
        """Run the agent, yielding UI message chunks as they are produced."""
        yield events.start(f"msg-{uuid4().hex}")
        async for chunk in self._graph.astream(
            self.initial_state(prompt),
            config=self._run_config,
            stream_mode="custom",
        ):
            yield chunk
        yield events.finish()

    async def generate(self, prompt: str) -> str:
        """Run the agent to completion and return the final answer text."""
        state = await self._graph.ainvoke(self.initial_state(prompt), config=self._run_config)
        for message in reversed(state["messages"]):
            if message.role == "assistant" and message.content:
                return message.content
        return ""

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    async def model_node(self, state: AgentState) -> dict[str, Any]:
        """Ask the model for the next step, streaming its text."""
        write = get_stream_writer()
        write(events.start_step())

        text_id: str | None = None
        response = None

        async for event in self.router.stream_chat_completion(
            messages=state["messages"],
            model=self.model,
            tools=self._tool_definitions or None,
        ):
            if event.type == "text-delta":
                if text_id is None:
                    text_id = f"text-{uuid4().hex[:8]}"
                    write(events.text_start(text_id))
                write(events.text_delta(text_id, event.text))
            else:
                response = event.response

        if text_id is not None:
            write(events.text_end(text_id))

        if response is None or response.finish_reason == "error":
            detail = response.raw_response if response else "stream ended without a response"
            raise LLMError(f"Model {self.model} failed: {detail}")

        tool_calls = response.tool_calls or []
        for call in tool_calls:
            raw_arguments = call["function"].get("arguments") or "{}"
            arguments = _parse_arguments(raw_arguments)
            write(events.tool_input_available(
                call["id"],
                call["function"]["name"],
                arguments if arguments is not None else raw_arguments,
            ))

        if not tool_calls:
            write(events.finish_step())

        step = state["step"] + 1
        logger.info(f"Step {step}: {len(tool_calls)} tool call(s), finish_reason={response.finish_reason}")

        assistant = LLMMessage(
            role="assistant",
            content=response.content,
            tool_calls=tool_calls or None,
        )
        return {
            "messages": [*state["messages"], assistant],
            "tool_calls": tool_calls,
            "step": step,
        }

    async def tools_node(self, state: AgentState) -> dict[str, Any]:
        """Run every requested tool call and feed the results back."""
        write = get_stream_writer()
        messages = list(state["messages"])

        for call in state["tool_calls"]:
            call_id = call["id"]
            name = call["function"]["name"]
            output, error = await self._call_tool(name, call["function"].get("arguments") or "{}")

            if error is not None:
                write(events.tool_output_error(call_id, error))
                content = error
            else:
                write(events.tool_output_available(call_id, output))
                content = json.dumps(output)

            messages.append(LLMMessage(role="tool", tool_call_id=call_id, name=name, content=content))

        write(events.finish_step())
        return {"messages": messages, "tool_calls": []}

    async def _call_tool(self, name: str, raw_arguments: str) -> tuple[dict[str, Any] | None, str | None]:
        """Returns (output, None) on success or (None, error text)."""
        tool = self.tools.get(name)
        if tool is None:
            return None, f"Unknown tool: {name}"

        arguments = _parse_arguments(raw_arguments)
        if arguments is None:
            return None, f"Invalid JSON arguments for {name}: {raw_arguments}"

        try:
            return await tool.execute(arguments), None
        except ValidationError as e:
            return None, f"Invalid arguments for {name}: {e}"
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            return None, f"Tool {name} failed: {e}"

    # -------------------------------------------------------------------------
    # Routing Functions
    # -------------------------------------------------------------------------

    def should_call_tools(self, state: AgentState) -> Literal["tools", "__end__"]:
        """Determine next step after a model step."""
        return "tools" if state["tool_calls"] else END

    def should_continue(self, state: AgentState) -> Literal["model", "__end__"]:
        """Determine if the loop goes on after tool results."""
        if state["step"] >= self.max_steps:
            logger.warning(f"Stopping after {state['step']} steps")
            return END
        return "model"


def _parse_arguments(raw: str) -> dict[str, Any] | None:
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return arguments if isinstance(arguments, dict) else None


# =============================================================================
# Workflow Builder
# =============================================================================

def build_workflow(agent: ToolLoopAgent) -> StateGraph:
    """Build the LangGraph workflow for an agent."""
    workflow = StateGraph(AgentState)

    workflow.add_node("model", agent.model_node)
    workflow.add_node("tools", agent.tools_node)

    workflow.set_entry_point("model")

    workflow.add_conditional_edges(
        "model",
        agent.should_call_tools,
        {
            "tools": "tools",
            END: END,
        },
    )
    workflow.add_conditional_edges(
        "tools",
        agent.should_continue,
        {
            "model": "model",
            END: END,
        },
    )

    return workflow


# =============================================================================
# Public API
# =============================================================================

def build_agent(
    settings: Settings | None,
    sandbox: SandboxSession,
    router: ModelRouter | None = None,
) -> ToolLoopAgent:
    """Configure the agent: model, instructions and the bash tool."""
    settings = settings or get_settings()
    return ToolLoopAgent(
        model=settings.agent_model,
        instructions=settings.agent_instructions,
        tools=[BashTool(sandbox)],
        router=router,
        max_steps=settings.agent_max_steps,
    )
