"""Startup upload of local files into the sandbox."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path

from sandbox_agent.tools.sandbox import SandboxSession


logger = logging.getLogger(__name__)


async def upload_files(
    sandbox: SandboxSession,
    local_dir: str | Path,
    dest: str | None = None,
) -> list[str]:
    """Copy every file under ``local_dir`` into the sandbox.

    Files keep their path relative to ``local_dir`` and land under ``dest``
    (the sandbox working directory by default).

    Returns:
        Remote paths written, in upload order
    """
    root = Path(local_dir)
    dest = dest or sandbox.workdir

    if not root.is_dir():
        logger.warning(f"Files directory not found, nothing to upload: {root}")
        return []

    written: list[str] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(root).as_posix()
        remote_path = await sandbox.write_file(posixpath.join(dest, relative), path.read_bytes())
        logger.info(f"Uploaded {relative} -> {remote_path}")
        written.append(remote_path)

    logger.info(f"Uploaded {len(written)} file(s) from {root}")
    return written
