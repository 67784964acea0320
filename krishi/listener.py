"""
Microphone speech capture - sounddevice input + silence endpointing +
faster-whisper transcription, exposed as a SpeechCapture adapter.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import sounddevice as sd

from .assistant.ports import (
    CaptureFailed,
    CaptureFinal,
    CaptureRecognized,
    CaptureStarted,
    SpeechCapture,
)
from .audio import collect_until_silence, to_model_input
from .errors import CaptureError
from .transcription import Transcriber

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
CHANNELS = 1
DEFAULT_SILENCE_THRESHOLD = 0.03  # RMS threshold for silence detection
DEFAULT_SILENCE_DURATION = 1.5  # Seconds of silence before considering speech complete
MAX_RECORDING_DURATION = 20.0  # Also the wait for speech to begin


class MicrophoneCapture(SpeechCapture):
    """
    One utterance per start(): records until the speaker goes quiet, then
    transcribes in the requested language.

    Error codes: "device", "no_speech", "transcription"
    """

    def __init__(
        self,
        transcriber: Optional[Transcriber] = None,
        sample_rate: int = SAMPLE_RATE,
        silence_threshold: float = DEFAULT_SILENCE_THRESHOLD,
        silence_duration: float = DEFAULT_SILENCE_DURATION,
        max_duration: float = MAX_RECORDING_DURATION,
    ):
        super().__init__()
        self.transcriber = transcriber or Transcriber()
        self.sample_rate = sample_rate
        self.silence_threshold = silence_threshold
        self.silence_duration = silence_duration
        self.max_duration = max_duration
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, stt_config: Dict[str, Any]) -> "MicrophoneCapture":
        transcriber = Transcriber(
            model=stt_config.get("model", "small"),
            device=stt_config.get("device", "cpu"),
            threads=stt_config.get("threads"),
        )
        return cls(
            transcriber=transcriber,
            sample_rate=int(stt_config.get("sample_rate", SAMPLE_RATE)),
            silence_threshold=float(stt_config.get("silence_threshold", DEFAULT_SILENCE_THRESHOLD)),
            silence_duration=float(stt_config.get("silence_duration", DEFAULT_SILENCE_DURATION)),
            max_duration=float(stt_config.get("max_duration", MAX_RECORDING_DURATION)),
        )

    async def is_available(self) -> bool:
        try:
            sd.query_devices(kind="input")
            return True
        except Exception as e:
            logger.warning("No audio input device: %s", e)
            return False

    def start(self, language_tag: str):
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._capture(language_tag))

    def stop(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("Microphone capture stopped")
        self._task = None

    async def _capture(self, language_tag: str):
        try:
            text = await self._record_and_transcribe(language_tag)
        except CaptureError as e:
            logger.error("Speech capture failed (%s): %s", e.code, e)
            self._emit(CaptureFailed(e.code, str(e)))
            return
        except Exception as e:
            logger.error("Speech capture crashed: %s", e)
            self._emit(CaptureFailed("device", str(e)))
            return
        self._emit(CaptureFinal(text))

    def _input_rate(self) -> float:
        """
        Rate to open the microphone at: the model rate when the device takes
        it, else the device default (resampled later).

        Raises:
            CaptureError: if neither rate can be opened
        """
        try:
            sd.check_input_settings(samplerate=self.sample_rate, channels=CHANNELS)
            return float(self.sample_rate)
        except Exception as exc:
            logger.info("Input device rejects %dHz: %s", self.sample_rate, exc)

        try:
            default_rate = float(sd.query_devices(kind="input")["default_samplerate"])
            sd.check_input_settings(samplerate=default_rate, channels=CHANNELS)
        except Exception as exc:
            raise CaptureError("device", f"No usable input sample rate: {exc}")

        logger.info("Recording at device default %.0fHz", default_rate)
        return default_rate

    async def _record_and_transcribe(self, language_tag: str) -> str:
        """
        Raises:
            CaptureError: with code "device", "no_speech" or "transcription"
        """
        loop = asyncio.get_running_loop()
        audio_queue: asyncio.Queue = asyncio.Queue()

        def callback(indata, _frames, _time_info, status):
            """Runs on the PortAudio thread"""
            if status:
                logger.debug("Audio: %s", status)
            loop.call_soon_threadsafe(audio_queue.put_nowait, indata.copy())

        input_rate = self._input_rate()
        try:
            with sd.InputStream(samplerate=input_rate, channels=CHANNELS, callback=callback):
                self._emit(CaptureStarted(language_tag))
                audio = await collect_until_silence(
                    audio_queue,
                    input_rate,
                    threshold=self.silence_threshold,
                    silence_duration=self.silence_duration,
                    max_duration=self.max_duration,
                    on_speech=lambda: self._emit(CaptureRecognized()),
                )
        except sd.PortAudioError as e:
            raise CaptureError("device", f"Audio input error: {e}")

        if audio is None:
            raise CaptureError("no_speech", "No speech detected")

        samples = to_model_input(audio, input_rate, self.sample_rate)
        try:
            return await self.transcriber.transcribe_async(samples, language=language_tag.split("-")[0])
        except Exception as e:
            raise CaptureError("transcription", f"Transcription error: {e}")
