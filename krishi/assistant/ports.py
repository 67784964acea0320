"""
Adapter contracts for speech capture and speech output.

Each adapter exposes a small command interface plus one typed event
channel. The controller subscribes once; adapters call the subscribers
from whatever thread they run on and the controller marshals the events
onto its own event loop.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


# Capture events

@dataclass(frozen=True)
class CaptureStarted:
    language_tag: str


@dataclass(frozen=True)
class CaptureRecognized:
    """Partial result; text may be empty when only speech onset is known"""
    text: str = ""


@dataclass(frozen=True)
class CaptureFinal:
    text: str


@dataclass(frozen=True)
class CaptureFailed:
    code: str
    message: str = ""


# Output events

@dataclass(frozen=True)
class SpeechDone:
    utterance_id: int
    interrupted: bool = False


@dataclass(frozen=True)
class SpeechFailed:
    utterance_id: int
    reason: str = ""


# Backend events (produced by the controller's own query task)

@dataclass(frozen=True)
class BackendAnswered:
    query_id: int
    text: str


@dataclass(frozen=True)
class BackendFailed:
    query_id: int
    error: Exception


EventCallback = Callable[[Any], None]


class _EventSource:
    """Subscriber list shared by both adapter kinds."""

    def __init__(self):
        self._subscribers: List[EventCallback] = []

    def subscribe(self, callback: EventCallback):
        """Register a callback for every event this adapter emits"""
        self._subscribers.append(callback)

    def _emit(self, event):
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error("Event subscriber failed for %s: %s", type(event).__name__, e)


class SpeechCapture(_EventSource, ABC):
    """
    Speech-to-text adapter.

    Emits CaptureStarted, CaptureRecognized (partial), CaptureFinal and
    CaptureFailed. A started capture ends with exactly one CaptureFinal or
    CaptureFailed unless stop() is called first.
    """

    @abstractmethod
    def start(self, language_tag: str):
        """Begin capturing speech in the given BCP-47 language"""
        pass

    @abstractmethod
    def stop(self):
        """Stop capturing; no further events for the current capture"""
        pass

    async def is_available(self) -> bool:
        """Whether capture can work at all on this host"""
        return True


@dataclass(frozen=True)
class UtteranceHandle:
    id: int
    text: str
    language_tag: str
    options: Dict[str, Any] = field(default_factory=dict)


class SpeechOutput(_EventSource, ABC):
    """
    Text-to-speech adapter.

    Every handle returned by speak() gets exactly one terminal event:
    SpeechDone (interrupted=True when stopped) or SpeechFailed.
    """

    _ids = itertools.count(1)

    def _new_handle(self, text: str, language_tag: str, options: Optional[Dict[str, Any]]) -> UtteranceHandle:
        return UtteranceHandle(next(self._ids), text, language_tag, dict(options or {}))

    @abstractmethod
    def speak(self, text: str, language_tag: str, options: Optional[Dict[str, Any]] = None) -> UtteranceHandle:
        """Start speaking text; returns immediately with a fresh handle"""
        pass

    @abstractmethod
    def stop_all(self):
        """Stop every outstanding utterance immediately"""
        pass
