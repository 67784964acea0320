"""
Microphone audio processing - levels, silence endpointing and conversion
to the transcriber's input format. No device access here.
"""

import asyncio
import logging
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

MIN_UTTERANCE_SECONDS = 0.5
QUEUE_POLL_SECONDS = 0.5


def mono(chunk: np.ndarray) -> np.ndarray:
    """First channel of a (frames, channels) block as float32"""
    if chunk.ndim > 1:
        chunk = chunk[:, 0]
    return chunk.astype(np.float32, copy=False)


def rms(chunk: np.ndarray) -> float:
    """Root mean square level of a float chunk (first channel)"""
    samples = mono(chunk)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples ** 2)))


def to_model_input(buffer: np.ndarray, input_rate: float, model_rate: float) -> np.ndarray:
    """
    Mono float32 at the transcriber's rate. Linear interpolation is enough
    for speech when the device cannot open at the model rate.
    """
    samples = mono(buffer)
    if input_rate == model_rate or samples.size == 0:
        return samples

    frames = int(round(samples.size * model_rate / input_rate))
    if frames <= 0:
        return samples[:0]
    positions = np.linspace(0, samples.size - 1, frames)
    return np.interp(positions, np.arange(samples.size), samples).astype(np.float32)


async def collect_until_silence(
    audio_queue: asyncio.Queue,
    rate: float,
    threshold: float,
    silence_duration: float,
    max_duration: float,
    on_speech: Optional[Callable[[], None]] = None,
) -> Optional[np.ndarray]:
    """
    Gather chunks until silence_duration of quiet follows speech.

    Durations are measured in audio time (frames / rate); a poll with no
    audio counts as QUEUE_POLL_SECONDS of silence.

    Returns:
        The recorded buffer, or None if nobody spoke (or the utterance was
        shorter than MIN_UTTERANCE_SECONDS)
    """
    chunks = []
    recorded = 0.0
    quiet = 0.0
    speech_detected = False

    while recorded < max_duration:
        try:
            data = await asyncio.wait_for(audio_queue.get(), timeout=QUEUE_POLL_SECONDS)
        except asyncio.TimeoutError:
            data = None

        if data is None:
            seconds, level = QUEUE_POLL_SECONDS, 0.0
        else:
            chunks.append(data)
            seconds, level = data.shape[0] / rate, rms(data)
        recorded += seconds

        if level > threshold:
            if not speech_detected and on_speech is not None:
                on_speech()
            speech_detected = True
            quiet = 0.0
            continue

        if speech_detected:
            quiet += seconds
            if quiet >= silence_duration:
                logger.debug("Silence after %.2fs of audio", recorded)
                break
    else:
        logger.info("Max recording duration (%.0fs) reached", max_duration)

    if not speech_detected or not chunks:
        return None

    buffer = np.concatenate(chunks)
    if buffer.shape[0] < rate * MIN_UTTERANCE_SECONDS:
        return None
    return buffer
