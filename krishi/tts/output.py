"""
Speech output adapter - TTSEngine synthesis + AudioPlayer playback.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..assistant.ports import SpeechDone, SpeechFailed, SpeechOutput, UtteranceHandle
from .engine import TTSEngine
from .player import AudioPlayer

logger = logging.getLogger(__name__)


class TTSSpeechOutput(SpeechOutput):
    """
    Each speak() runs as its own task; the task's outcome becomes the
    handle's single terminal event (cancelled -> interrupted SpeechDone).
    """

    def __init__(self, engine: TTSEngine, player: Optional[AudioPlayer] = None):
        super().__init__()
        self.engine = engine
        self.player = player or AudioPlayer()
        self._tasks: Dict[int, asyncio.Task] = {}

    def speak(self, text: str, language_tag: str, options: Optional[Dict[str, Any]] = None) -> UtteranceHandle:
        handle = self._new_handle(text, language_tag, options)
        task = asyncio.get_running_loop().create_task(self._run(handle))
        self._tasks[handle.id] = task
        task.add_done_callback(lambda t, h=handle: self._finished(h, t))
        logger.info("Speaking [%s]: %s", language_tag, text[:80])
        return handle

    def stop_all(self):
        self.player.stop()
        for task in list(self._tasks.values()):
            task.cancel()

    async def _run(self, handle: UtteranceHandle):
        audio = await self.engine.synthesize_async(
            handle.text,
            handle.language_tag,
            rate=float(handle.options.get("rate", 1.0)),
            pitch=float(handle.options.get("pitch", 1.0)),
        )
        await self.player.play(audio)

    def _finished(self, handle: UtteranceHandle, task: asyncio.Task):
        self._tasks.pop(handle.id, None)
        if task.cancelled():
            self._emit(SpeechDone(handle.id, interrupted=True))
            return

        error = task.exception()
        if error is not None:
            logger.error("TTS error: %s", error)
            self._emit(SpeechFailed(handle.id, str(error)))
        else:
            self._emit(SpeechDone(handle.id))
