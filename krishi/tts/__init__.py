"""
TTS subpackage - synthesis engine, playback and the speech output adapter
"""

from .engine import TTSEngine
from .output import TTSSpeechOutput
from .player import AudioPlayer

__all__ = ["AudioPlayer", "TTSEngine", "TTSSpeechOutput"]
