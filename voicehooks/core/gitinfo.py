from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from voicehooks.core.logger import get_logger


logger = get_logger("sessions")


async def _git(cwd: str, *args: str) -> Optional[str]:
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        out, _ = await proc.communicate()
    except OSError:
        return None
    if proc.returncode != 0:
        return None
    return out.decode("utf-8", errors="replace")


async def git_info(project_path: Optional[str]) -> Optional[Dict[str, Any]]:
    """Branche, commit et fichiers modifiés du dépôt, ou None hors dépôt git."""
    if not project_path or not Path(project_path).is_dir():
        return None
    branch = await _git(project_path, "branch", "--show-current")
    commit = await _git(project_path, "rev-parse", "--short", "HEAD")
    status = await _git(project_path, "status", "--porcelain")
    if branch is None or commit is None or status is None:
        logger.debug("No git information for %s", project_path)
        return None
    changed = [line for line in status.splitlines() if line.strip()]
    return {
        "branch": branch.strip(),
        "commit": commit.strip(),
        "hasChanges": bool(changed),
        "changedFiles": len(changed),
    }
