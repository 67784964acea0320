"""
Audio transcription using faster-whisper
"""

import asyncio
import logging
import os
from typing import Optional

import numpy as np
from faster_whisper import WhisperModel

logger = logging.getLogger(__name__)

# Whisper hallucinates these on near-silent English input
HALLUCINATIONS = {"thank you", "thanks", "thank you."}


class Transcriber:
    """Async wrapper for faster-whisper. The model loads on first use."""

    def __init__(self, model: str = "small", device: str = "cpu", threads: Optional[int] = None):
        self.model_name = model
        self.device = device
        self.threads = threads or os.cpu_count()
        self.model: Optional[WhisperModel] = None

    def _ensure_model(self) -> WhisperModel:
        if self.model is None:
            compute_type = "int8" if self.device == "cpu" else "float16"
            logger.info("Loading Whisper model '%s' on %s...", self.model_name, self.device)
            self.model = WhisperModel(
                self.model_name,
                device=self.device,
                compute_type=compute_type,
                num_workers=self.threads,
            )
            logger.info("Whisper loaded (%s threads)", self.threads)
        return self.model

    async def transcribe_async(self, audio: np.ndarray, language: str = "en") -> str:
        """
        Transcribe float32 mono audio at 16kHz.
        Returns: transcribed text or empty string
        """
        # Run transcription in executor to avoid blocking
        return await asyncio.get_running_loop().run_in_executor(
            None, self._transcribe_sync, audio, language
        )

    def _transcribe_sync(self, audio: np.ndarray, language: str) -> str:
        audio_float = audio.astype(np.float32)

        # Flatten if multi-channel
        if audio_float.ndim > 1:
            audio_float = audio_float[:, 0]

        # Check for silence (avoid hallucinations)
        if audio_float.size == 0 or np.sqrt(np.mean(audio_float ** 2)) < 0.001:
            return ""

        segments, _ = self._ensure_model().transcribe(
            audio_float,
            beam_size=1,
            vad_filter=True,
            language=language,
            condition_on_previous_text=False,
            no_speech_threshold=0.4,
        )

        result = " ".join(seg.text.strip() for seg in segments if seg.text.strip())

        if language == "en" and result.lower().strip() in HALLUCINATIONS:
            return ""

        return result
