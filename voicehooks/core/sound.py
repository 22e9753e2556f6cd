from __future__ import annotations

import asyncio
import shutil
from typing import Sequence

from voicehooks.core.logger import get_logger


logger = get_logger("server")


async def play_notification_sound(command: Sequence[str]) -> bool:
    """Joue le son "en attente" via une commande système; échec silencieux."""
    if not command or shutil.which(command[0]) is None:
        logger.debug("Notification sound command unavailable: %s", command[:1])
        return False
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await proc.wait()
    except OSError as exc:
        logger.warning("Failed to play notification sound: %s", exc)
        return False
    return proc.returncode == 0
