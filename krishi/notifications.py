"""
Desktop notices for conditions the user must see even when audio output
is broken. Delivered through notify-send.
"""

import asyncio
import logging
import shutil
from typing import List

from .assistant.prompts import message
from .assistant.state import Language

logger = logging.getLogger(__name__)

APP_NAME = "Krishi"

# (urgency, expire ms); critical notices stay until dismissed
_URGENCY = {
    "capture_unavailable": ("critical", 0),
}
_DEFAULT_URGENCY = ("normal", 5000)


def notice_command(language: Language, key: str) -> List[str]:
    """notify-send argv for a localized notice"""
    urgency, expire = _URGENCY.get(key, _DEFAULT_URGENCY)
    return [
        "notify-send",
        "--app-name", APP_NAME,
        "-u", urgency,
        "-t", str(expire),
        APP_NAME,
        message(language, key),
    ]


async def notify(language: Language, key: str) -> bool:
    """
    Show a localized notice. Returns False when notify-send is missing or
    fails; callers print the notice anyway.
    """
    if shutil.which("notify-send") is None:
        logger.debug("notify-send not installed; %s notice not shown", key)
        return False

    proc = await asyncio.create_subprocess_exec(
        *notice_command(language, key),
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
    )
    returncode = await proc.wait()
    if returncode != 0:
        logger.warning("notify-send exited with %s", returncode)
    return returncode == 0


async def notify_capture_unavailable(language: Language) -> bool:
    return await notify(language, "capture_unavailable")
