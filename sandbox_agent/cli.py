"""CLI entrypoint (Typer).

- `sandbox-agent serve`        -> run the chat API
- `sandbox-agent ask "<q>"`    -> one-shot question, streamed to the terminal
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable

import typer

from sandbox_agent.agent.workflow import build_agent
from sandbox_agent.config import get_settings
from sandbox_agent.llm.gateway import GatewayAdapter
from sandbox_agent.llm.router import ModelRouter
from sandbox_agent.tools.files import upload_files
from sandbox_agent.tools.sandbox import SandboxSession

app = typer.Typer(help="Ask an LLM agent about your files through a sandboxed shell.")


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (default from settings)"),
    port: int = typer.Option(None, help="Port (default from settings)"),
):
    """Run the chat API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "sandbox_agent.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.debug,
    )


@app.command()
def ask(
    prompt: str,
    files: str = typer.Option(None, "--files", help="Local directory to copy into the sandbox"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    """Ask one question and stream the answer."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(_ask(prompt, files))


async def _ask(prompt: str, files_dir: str | None) -> None:
    settings = get_settings()
    router = ModelRouter(adapter=GatewayAdapter())
    try:
        sandbox = await SandboxSession.create(settings)
        try:
            await upload_files(sandbox, files_dir or settings.files_dir)
            agent = build_agent(settings, sandbox, router=router)
            await render_stream(agent.stream(prompt))
        finally:
            await sandbox.close()
    finally:
        await router.close()


async def render_stream(chunks: AsyncIterable[dict[str, Any]]) -> None:
    """Print UI message chunks the way the chat page shows them."""
    tool_names: dict[str, str] = {}

    async for chunk in chunks:
        kind = chunk["type"]

        if kind == "text-delta":
            typer.echo(chunk["delta"], nl=False)
        elif kind == "text-end":
            typer.echo()
        elif kind == "tool-input-available":
            tool_names[chunk["toolCallId"]] = chunk["toolName"]
            tool_input = chunk["input"]
            command = tool_input.get("command", "") if isinstance(tool_input, dict) else str(tool_input)
            line = f"[{chunk['toolName']}]"
            if command:
                line += f" $ {command}"
            typer.secho(line, fg=typer.colors.BLUE)
        elif kind == "tool-output-available":
            output = chunk["output"] or {}
            text = output.get("stdout") or output.get("stderr") or "(no output)"
            typer.secho(text.rstrip("\n"), fg=typer.colors.GREEN)
        elif kind == "tool-output-error":
            name = tool_names.get(chunk["toolCallId"], "tool")
            typer.secho(f"[{name}] {chunk['errorText']}", fg=typer.colors.RED, err=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
