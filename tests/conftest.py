"""Shared pytest configuration and fixtures."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from sandbox_agent.tools.sandbox import SandboxSession


@pytest.fixture
def mock_e2b_sandbox():
    """Mock e2b.AsyncSandbox with async commands/files APIs."""
    sandbox = MagicMock()
    sandbox.sandbox_id = "sbx-test"
    sandbox.commands.run = AsyncMock(
        return_value=SimpleNamespace(stdout="", stderr="", exit_code=0)
    )
    sandbox.files.write = AsyncMock()
    sandbox.files.make_dir = AsyncMock()
    sandbox.kill = AsyncMock()
    return sandbox


@pytest.fixture
def sandbox_session(mock_e2b_sandbox):
    """SandboxSession around the mocked sandbox."""
    return SandboxSession(mock_e2b_sandbox, workdir="/home/user/workspace", command_timeout=30)
