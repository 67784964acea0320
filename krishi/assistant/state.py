"""
Session state for the voice assistant.

Defines the interaction states, the two supported languages and the
per-controller Session record. A Session is owned and mutated only by the
ConversationController that created it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class AssistantState(Enum):
    """Interaction states. Idle is both the initial and the resting state."""
    IDLE = "idle"
    GREETING = "greeting"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"


class Language(Enum):
    """Assistant languages. English is primary, Hindi secondary."""
    ENGLISH = "english"
    HINDI = "hindi"

    @property
    def tag(self) -> str:
        """BCP-47 tag used by the capture and output adapters"""
        return _LANGUAGE_TAGS[self]

    @property
    def other(self) -> "Language":
        return Language.HINDI if self is Language.ENGLISH else Language.ENGLISH

    @classmethod
    def parse(cls, value: str) -> "Language":
        """Accepts "english"/"hindi" or a tag like "hi-IN"."""
        lowered = (value or "").strip().lower()
        for language in cls:
            if lowered in (language.value, language.tag.lower(), language.tag.split("-")[0].lower()):
                return language
        raise ValueError(f"Unsupported language: {value}. Use: english or hindi")


_LANGUAGE_TAGS = {
    Language.ENGLISH: "en-US",
    Language.HINDI: "hi-IN",
}


@dataclass
class Session:
    """Mutable conversation state held by one controller."""

    state: AssistantState = AssistantState.IDLE
    language: Language = Language.ENGLISH

    is_first_interaction: bool = True
    """Cleared by the first primary tap (greeting is spoken once)"""

    last_transcript: Optional[str] = None
    """Most recent partial or final transcript, or quick-question text"""

    pending_utterance: Optional[int] = None
    """Id of the in-flight speech output; completions for other ids are stale"""


@dataclass
class UtteranceRequest:
    """One speak operation, owned by the controller until it completes."""

    text: str
    language_tag: str
    on_complete: Optional[Callable[[], None]] = None
    notice: bool = False


@dataclass(frozen=True)
class BackendQuery:
    """One question sent to the language backend. Never retried."""

    composed_prompt: str
    language_tag: str
