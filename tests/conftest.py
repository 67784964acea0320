"""
Shared fakes for the assistant's ports.

The fakes never finish on their own: tests decide when a capture yields a
transcript, when an utterance completes and how the backend answers.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from krishi.assistant.ports import (
    CaptureFailed,
    CaptureFinal,
    CaptureRecognized,
    SpeechCapture,
    SpeechDone,
    SpeechFailed,
    SpeechOutput,
)
from krishi.errors import OutputError


class FakeCapture(SpeechCapture):
    def __init__(self, available=True):
        super().__init__()
        self.available = available
        self.started = []
        self.stop_calls = 0
        self.active = False

    async def is_available(self):
        return self.available

    def start(self, language_tag):
        self.started.append(language_tag)
        self.active = True

    def stop(self):
        self.stop_calls += 1
        self.active = False

    def partial(self, text):
        self._emit(CaptureRecognized(text))

    def final(self, text):
        self.active = False
        self._emit(CaptureFinal(text))

    def fail(self, code="no_speech"):
        self.active = False
        self._emit(CaptureFailed(code, "fake failure"))


class FakeOutput(SpeechOutput):
    def __init__(self):
        super().__init__()
        self.spoken = []
        self.outstanding = []
        self.calls = []
        self.stop_all_calls = 0
        self.raise_on_speak = False

    @property
    def last(self):
        return self.spoken[-1]

    @property
    def texts(self):
        return [handle.text for handle in self.spoken]

    def speak(self, text, language_tag, options=None):
        self.calls.append("speak")
        if self.raise_on_speak:
            raise OutputError("no audio device")
        handle = self._new_handle(text, language_tag, options)
        self.spoken.append(handle)
        self.outstanding.append(handle)
        return handle

    def stop_all(self):
        self.calls.append("stop_all")
        self.stop_all_calls += 1
        stopped, self.outstanding = self.outstanding, []
        for handle in stopped:
            self._emit(SpeechDone(handle.id, interrupted=True))

    def finish(self, handle=None):
        """Complete an utterance normally (default: the newest one)"""
        handle = handle or self.outstanding[-1]
        self.outstanding.remove(handle)
        self._emit(SpeechDone(handle.id))

    def fail(self, handle=None, reason="player crashed"):
        handle = handle or self.outstanding[-1]
        self.outstanding.remove(handle)
        self._emit(SpeechFailed(handle.id, reason))


class FakeBackend:
    def __init__(self, answer="Water deeply twice a week.", error=None, delay=0.0):
        self.answer = answer
        self.error = error
        self.delay = delay
        self.prompts = []

    async def query(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.answer
