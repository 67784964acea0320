"""
TTS Engine - provider abstraction
"""

import asyncio
import logging
import shutil
from typing import Optional

from ..errors import OutputError

logger = logging.getLogger(__name__)

DEFAULT_VOICES = {
    "en": "en-US-AriaNeural",
    "hi": "hi-IN-SwaraNeural",
}

ESPEAK_BASE_WPM = 175
ESPEAK_BASE_PITCH = 50


def edge_rate(rate: float) -> str:
    """0.8 -> "-20%" """
    return f"{round((rate - 1.0) * 100):+d}%"


def edge_pitch(pitch: float) -> str:
    """1.0 -> "+0Hz"; each 0.1 of pitch is 5Hz"""
    return f"{round((pitch - 1.0) * 50):+d}Hz"


class TTSEngine:
    """
    Synthesizes speech to encoded audio bytes.

    Providers:
        edge  - Microsoft neural voices via edge-tts (mp3)
        local - espeak (wav), no network needed
    """

    def __init__(self, provider: str = "edge", config: Optional[dict] = None):
        self.provider = provider
        self.config = config or {}

        if provider == "edge":
            self._init_edge()
        elif provider == "local":
            self._init_local()
        else:
            raise ValueError(f"Unknown TTS provider: {provider}")

    def _init_edge(self):
        import edge_tts
        self.edge_tts = edge_tts
        self.voices = {
            "en": self.config.get("voice_english", DEFAULT_VOICES["en"]),
            "hi": self.config.get("voice_hindi", DEFAULT_VOICES["hi"]),
        }

    def _init_local(self):
        if shutil.which("espeak-ng"):
            self.local_engine = "espeak-ng"
        else:
            self.local_engine = "espeak"

    def voice_for(self, language_tag: str) -> str:
        return self.voices.get(language_tag.split("-")[0], DEFAULT_VOICES["en"])

    async def synthesize_async(
        self,
        text: str,
        language_tag: str,
        rate: float = 1.0,
        pitch: float = 1.0,
    ) -> bytes:
        """
        Raises:
            OutputError: if synthesis fails or produces no audio
        """
        if self.provider == "edge":
            audio = await self._synthesize_edge(text, language_tag, rate, pitch)
        else:
            audio = await self._synthesize_local(text, language_tag, rate, pitch)

        if not audio:
            raise OutputError("TTS produced no audio")
        return audio

    async def _synthesize_edge(self, text: str, language_tag: str, rate: float, pitch: float) -> bytes:
        try:
            communicate = self.edge_tts.Communicate(
                text,
                self.voice_for(language_tag),
                rate=edge_rate(rate),
                pitch=edge_pitch(pitch),
            )
            audio = bytearray()
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio.extend(chunk["data"])
            return bytes(audio)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Edge TTS error: %s", e)
            raise OutputError(f"Edge TTS error: {e}")

    async def _synthesize_local(self, text: str, language_tag: str, rate: float, pitch: float) -> bytes:
        wpm = max(80, int(ESPEAK_BASE_WPM * rate))
        espeak_pitch = min(99, max(0, int(ESPEAK_BASE_PITCH * pitch)))
        cmd = [
            self.local_engine,
            "-v", language_tag.split("-")[0],
            "-s", str(wpm),
            "-p", str(espeak_pitch),
            "--stdout",
            text,
        ]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise OutputError(f"{self.local_engine} is not installed")

        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise OutputError(f"{self.local_engine} failed: {stderr.decode(errors='ignore').strip()}")
        return stdout
