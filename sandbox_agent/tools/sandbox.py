"""Sandbox execution for running commands safely.

Commands run in a remote E2B sandbox, never on the host:
- One sandbox per service process, created at startup
- Controlled execution with timeouts
- Capture stdout/stderr/exit code
"""

from __future__ import annotations

import logging
import posixpath
import time

from e2b import AsyncSandbox, CommandExitException, TimeoutException

from sandbox_agent.config import Settings, get_settings
from sandbox_agent.schemas import ToolResult


logger = logging.getLogger(__name__)


class SandboxSession:
    """A remote sandbox plus the working directory commands run in."""

    def __init__(self, sandbox: AsyncSandbox, workdir: str, command_timeout: int = 60):
        self.sandbox = sandbox
        self.workdir = workdir
        self.command_timeout = command_timeout
        self._closed = False

    @classmethod
    async def create(cls, settings: Settings | None = None) -> SandboxSession:
        """Start a new sandbox and prepare its working directory."""
        settings = settings or get_settings()

        sandbox = await AsyncSandbox.create(
            template=settings.sandbox_template,
            timeout=settings.sandbox_timeout_seconds,
            api_key=settings.e2b_api_key or None,
        )
        await sandbox.files.make_dir(settings.sandbox_workdir)

        logger.info(f"Sandbox {sandbox.sandbox_id} ready at {settings.sandbox_workdir}")

        return cls(
            sandbox,
            workdir=settings.sandbox_workdir,
            command_timeout=settings.sandbox_command_timeout_seconds,
        )

    def resolve(self, path: str) -> str:
        """Resolve a path relative to the working directory."""
        return posixpath.normpath(posixpath.join(self.workdir, path))

    async def run_command(self, command: str, timeout: int | None = None) -> ToolResult:
        """Run a shell command in the sandbox.

        Args:
            command: Command line, passed to the sandbox shell verbatim
            timeout: Command timeout in seconds

        Returns:
            ToolResult with command output
        """
        start = time.perf_counter()

        if timeout is None:
            timeout = self.command_timeout

        if not command.strip():
            return ToolResult(
                ok=False,
                error_code="EMPTY_COMMAND",
                error_message="Command is empty",
                data={"stdout": "", "stderr": "Command is empty", "exit_code": -1, "command": command},
            )

        try:
            result = await self.sandbox.commands.run(command, cwd=self.workdir, timeout=timeout)
            stdout, stderr, exit_code = result.stdout, result.stderr, result.exit_code
        except CommandExitException as e:
            stdout, stderr, exit_code = e.stdout, e.stderr, e.exit_code
        except TimeoutException:
            return ToolResult(
                ok=False,
                error_code="COMMAND_TIMEOUT",
                error_message=f"Command timed out after {timeout} seconds",
                data={
                    "stdout": "",
                    "stderr": f"Command timed out after {timeout} seconds",
                    "exit_code": -1,
                    "command": command,
                },
                retryable=True,
            )
        except Exception as e:
            logger.error(f"Sandbox error running {command!r}: {e}")
            return ToolResult(
                ok=False,
                error_code="EXECUTION_ERROR",
                error_message=str(e),
                data={"stdout": "", "stderr": str(e), "exit_code": -1, "command": command},
                retryable=True,
            )

        latency_ms = int((time.perf_counter() - start) * 1000)

        return ToolResult(
            ok=exit_code == 0,
            data={
                "stdout": stdout,
                "stderr": stderr,
                "exit_code": exit_code,
                "command": command,
            },
            error_code="COMMAND_FAILED" if exit_code != 0 else None,
            error_message=stderr if exit_code != 0 else None,
            latency_ms=latency_ms,
        )

    async def write_file(self, path: str, data: bytes | str) -> str:
        """Write a file into the sandbox and return its absolute path."""
        remote_path = self.resolve(path)
        await self.sandbox.files.write(remote_path, data)
        return remote_path

    async def close(self) -> None:
        """Kill the sandbox. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self.sandbox.kill()
        logger.info(f"Sandbox {self.sandbox.sandbox_id} killed")
