"""
Keyboard push-to-talk - one global key drives both gestures.

A short press is the primary tap; holding the key for at least
long_press_seconds is the secondary gesture (quick questions).
"""

import logging
import time
from typing import Callable, Optional, Tuple

from .assistant import ConversationController

logger = logging.getLogger(__name__)

TAP = "tap"
LONG_PRESS = "long_press"


def classify_press(held_seconds: float, long_press_seconds: float) -> str:
    """Map a key hold duration to a gesture name"""
    return LONG_PRESS if held_seconds >= long_press_seconds else TAP


class PushToTalk:
    """
    Global hotkey listener (pynput). The listener runs on its own thread;
    gestures are handed to the controller's loop with call_soon_threadsafe.
    """

    def __init__(
        self,
        controller: ConversationController,
        key: str = "f8",
        long_press_seconds: float = 0.6,
        on_catalog: Optional[Callable[[Tuple[str, ...]], None]] = None,
    ):
        self.controller = controller
        self.key_name = key.lower()
        self.long_press_seconds = long_press_seconds
        self.on_catalog = on_catalog
        self._pressed_at: Optional[float] = None
        self._listener = None

    def start(self):
        # pynput needs a display or input device; import only when enabled
        from pynput import keyboard

        self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
        self._listener.start()
        logger.info("Push-to-talk on %s (hold %.1fs for quick questions)",
                    self.key_name, self.long_press_seconds)

    def stop(self):
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

    def _matches(self, key) -> bool:
        name = getattr(key, "name", None) or getattr(key, "char", None)
        return bool(name) and name.lower() == self.key_name

    def _on_press(self, key):
        if self._matches(key) and self._pressed_at is None:
            self._pressed_at = time.monotonic()

    def _on_release(self, key):
        if not self._matches(key) or self._pressed_at is None:
            return
        held = time.monotonic() - self._pressed_at
        self._pressed_at = None
        self.dispatch(classify_press(held, self.long_press_seconds))

    def dispatch(self, gesture: str):
        """Run a gesture on the controller loop. Safe from any thread."""
        loop = self.controller.loop
        if loop is None or loop.is_closed():
            logger.warning("Controller not running; %s dropped", gesture)
            return
        loop.call_soon_threadsafe(self._apply, gesture)

    def _apply(self, gesture: str):
        logger.debug("Push-to-talk gesture: %s", gesture)
        if gesture == LONG_PRESS:
            questions = self.controller.long_press()
            if self.on_catalog is not None:
                self.on_catalog(questions)
        else:
            self.controller.tap()
