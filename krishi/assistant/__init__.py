"""
Push-to-talk farming assistant engine.

This package holds the parts with no device dependencies:
- conversation state machine (controller)
- adapter contracts and events (ports)
- prompt composer and localized messages
- quick-question catalog
"""

from .catalog import QUICK_QUESTIONS, QuickQuestionDispatcher
from .controller import ConversationController
from .ports import SpeechCapture, SpeechOutput, UtteranceHandle
from .prompts import compose_prompt
from .state import AssistantState, Language, Session

__all__ = [
    "AssistantState",
    "ConversationController",
    "Language",
    "QUICK_QUESTIONS",
    "QuickQuestionDispatcher",
    "Session",
    "SpeechCapture",
    "SpeechOutput",
    "UtteranceHandle",
    "compose_prompt",
]
