"""Bash tool - a generic shell for the model, executed in the remote sandbox."""

from __future__ import annotations

import logging
from typing import Any

from sandbox_agent.schemas import BashInput
from sandbox_agent.tools.base import Tool
from sandbox_agent.tools.sandbox import SandboxSession


logger = logging.getLogger(__name__)


class BashTool(Tool):
    """Forward a command line to the sandbox and relay its output."""

    name = "bash"
    description = (
        "Execute a bash command in the sandbox and return its stdout, stderr "
        "and exit code. The working directory contains the files to inspect."
    )
    input_model = BashInput

    def __init__(self, sandbox: SandboxSession):
        self.sandbox = sandbox

    async def run(self, params: BashInput) -> dict[str, Any]:
        logger.info(f"$ {params.command}")

        result = await self.sandbox.run_command(params.command)
        data = result.data or {}

        if result.error_code not in (None, "COMMAND_FAILED"):
            logger.warning(f"bash: {result.error_code}: {result.error_message}")

        return {
            "stdout": data.get("stdout", ""),
            "stderr": data.get("stderr", ""),
            "exitCode": data.get("exit_code", -1),
        }
