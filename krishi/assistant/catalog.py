"""
Quick-question catalog and dispatcher.

Selecting a quick question skips speech capture entirely: the text goes
straight into the controller's processing step.
"""

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Tuple

from .state import Language

if TYPE_CHECKING:
    from .controller import ConversationController

logger = logging.getLogger(__name__)


QUICK_QUESTIONS = MappingProxyType({
    Language.ENGLISH: (
        "My plants have yellow leaves, what should I do?",
        "Which organic pesticide is best for aphids?",
        "How often should I water my tomato plants?",
        "What fertilizer is good for vegetable garden?",
        "How to prevent fungal diseases in monsoon?",
    ),
    Language.HINDI: (
        "मेरे पौधों के पत्ते पीले हो रहे हैं, क्या करूं?",
        "माहूं के लिए कौन सा जैविक कीटनाशक सबसे अच्छा है?",
        "टमाटर के पौधों को कितनी बार पानी देना चाहिए?",
        "सब्जी के बगीचे के लिए कौन सा उर्वरक अच्छा है?",
        "मानसून में फफूंदी रोगों को कैसे रोकें?",
    ),
})


def questions_for(language: Language) -> Tuple[str, ...]:
    return QUICK_QUESTIONS[language]


class QuickQuestionDispatcher:
    """Presents the catalog for the current language and submits selections."""

    def __init__(self, controller: "ConversationController"):
        self.controller = controller

    def open(self) -> Tuple[str, ...]:
        """Secondary gesture: cancel whatever is active and list the questions"""
        self.controller.long_press()
        return self.options()

    def options(self) -> Tuple[str, ...]:
        return questions_for(self.controller.language)

    def select(self, index: int) -> bool:
        """
        Submit the question at index as if it had been spoken.

        Returns:
            True if the controller accepted it
        """
        options = self.options()
        if not 0 <= index < len(options):
            logger.warning("Quick question %d out of range (0-%d)", index, len(options) - 1)
            return False
        return self.controller.submit_question(options[index])
