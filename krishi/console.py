#!/usr/bin/env python3
"""
Krishi Console - Text-based driver for the conversation controller

Enter (empty line) is the primary tap, "menu" is the long press. With
--typed, lines typed while listening stand in for the microphone.
"""

import asyncio
import logging
import sys
from typing import Callable, Optional, Tuple

from .assistant import (
    AssistantState,
    ConversationController,
    Language,
    QuickQuestionDispatcher,
    SpeechCapture,
)
from .assistant.ports import CaptureFinal, CaptureStarted
from .assistant.prompts import message
from .config import KrishiConfig, init_config
from .llm import GeminiClient
from .notifications import notify_capture_unavailable
from .tts import TTSEngine, TTSSpeechOutput

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

GESTURE_WORDS = ("", "tap", "menu", "hold")

HELP_TEXT = """Commands:
  <Enter>, tap     primary gesture (start / cancel / interrupt)
  menu, hold       long press: stop everything and list quick questions
  1-5              ask the numbered quick question
  lang             switch English / Hindi (only while idle)
  ask <question>   send a question directly (only while idle)
  state            show the current state
  help             show this help
  quit             exit"""


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Console logging, plus an optional log file"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        root = logging.getLogger()
        root.addHandler(handler)
        if not verbose:
            root.setLevel(logging.INFO)


class TypedCapture(SpeechCapture):
    """Keyboard stand-in for the microphone: one fed line per start()"""

    def __init__(self):
        super().__init__()
        self.active = False
        self.language_tag: Optional[str] = None

    def start(self, language_tag: str):
        self.active = True
        self.language_tag = language_tag
        self._emit(CaptureStarted(language_tag))

    def stop(self):
        self.active = False

    def feed(self, text: str) -> bool:
        """Deliver text as the final transcript. False if not listening."""
        if not self.active:
            return False
        self.active = False
        self._emit(CaptureFinal(text))
        return True


class KrishiConsole:
    """Text interface to the Krishi assistant"""

    def __init__(
        self,
        controller: ConversationController,
        dispatcher: Optional[QuickQuestionDispatcher] = None,
        out: Callable[[str], None] = print,
    ):
        self.controller = controller
        self.dispatcher = dispatcher or QuickQuestionDispatcher(controller)
        self.out = out

    @property
    def typed_capture(self) -> Optional[TypedCapture]:
        capture = self.controller.capture
        return capture if isinstance(capture, TypedCapture) else None

    def execute_command(self, text: str) -> bool:
        """Execute a single console line. Returns False when the user quits."""
        text = text.strip()
        command = text.lower()

        # While typed capture listens, everything but the gestures is the answer
        capture = self.typed_capture
        if capture is not None and capture.active and command not in GESTURE_WORDS:
            capture.feed(text)
            return True

        if command in ("quit", "exit", "q"):
            return False

        if command in ("", "tap"):
            self.controller.tap()
        elif command in ("menu", "hold"):
            self._show_catalog(self.dispatcher.open())
        elif command.isdigit():
            if not self.dispatcher.select(int(command) - 1):
                self.out("That question is not available right now.")
        elif command == "lang":
            if not self.controller.toggle_language():
                self.out("Language can only be changed while idle.")
        elif command == "state":
            self.out(f"{self.controller.state.value} ({self.controller.language.value})")
        elif command == "help":
            self.out(message(self.controller.language, "help"))
            self.out(HELP_TEXT)
        elif command.startswith("ask "):
            self._submit(text[4:])
        else:
            self._submit(text)
        return True

    def _submit(self, question: str):
        if self.controller.state is not AssistantState.IDLE:
            self.out(f"Busy ({self.controller.state.value}); tap first to cancel.")
            return
        self.controller.submit_question(question)

    def _show_catalog(self, questions: Tuple[str, ...]):
        for number, question in enumerate(questions, start=1):
            self.out(f"  {number}. {question}")

    def _show_state(self, _old: AssistantState, new: AssistantState):
        self.out(f"[{new.value}]")

    def _show_speech(self, text: str):
        self.out(f"Krishi: {text}")

    async def _capture_unavailable_notice(self):
        notice = message(self.controller.language, "capture_unavailable")
        await notify_capture_unavailable(self.controller.language)
        self.out(notice)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, input, "Press Enter to continue...")

    async def repl(self, ptt=None):
        """Interactive REPL mode, optionally with a push-to-talk key"""
        controller = self.controller
        controller.add_listener(self._show_state)
        controller.add_speech_listener(self._show_speech)

        await controller.start()
        runner = asyncio.get_running_loop().create_task(controller.run())
        if ptt is not None:
            ptt.on_catalog = self._show_catalog
            ptt.start()

        if not controller.capture_available:
            await self._capture_unavailable_notice()

        self.out("Krishi - your gardening helper")
        self.out("Press Enter to talk, 'menu' for quick questions, 'help' for commands\n")

        loop = asyncio.get_running_loop()
        try:
            while True:
                try:
                    text = await loop.run_in_executor(None, input, "> ")
                except (KeyboardInterrupt, EOFError):
                    self.out("")
                    break

                try:
                    if not self.execute_command(text):
                        break
                except Exception as e:
                    logger.error("Error: %s", e)
                    self.out(f"Error: {e}")
        finally:
            if ptt is not None:
                ptt.stop()
            await controller.close()
            await runner
            backend_close = getattr(controller.backend, "close", None)
            if backend_close is not None:
                await backend_close()


def create_assistant(
    config: KrishiConfig,
    typed: bool = False,
    language: Optional[Language] = None,
) -> Tuple[ConversationController, QuickQuestionDispatcher]:
    """Wire configured adapters and backend into a controller"""
    backend_config = config.get_backend_config()
    if backend_config["api_key"] is None:
        logger.warning("No Gemini API key configured (set GEMINI_API_KEY)")
    backend = GeminiClient.from_config(backend_config)

    tts_config = config.get_section("tts")
    engine = TTSEngine(provider=tts_config.get("provider", "edge"), config=tts_config)
    output = TTSSpeechOutput(engine)

    if typed:
        capture: SpeechCapture = TypedCapture()
    else:
        # sounddevice needs PortAudio; only load it when the microphone is used
        from .listener import MicrophoneCapture
        capture = MicrophoneCapture.from_config(config.get_section("stt"))

    if language is None:
        language = Language.parse(config.get("assistant", "language", "english"))

    controller = ConversationController(
        capture,
        output,
        backend,
        language=language,
        backend_timeout=backend_config["timeout"],
        speech_options={
            "rate": float(tts_config.get("rate", 0.8)),
            "pitch": float(tts_config.get("pitch", 1.0)),
        },
    )
    return controller, QuickQuestionDispatcher(controller)


def main():
    """CLI entry point"""
    import argparse

    parser = argparse.ArgumentParser(
        description="Krishi Console - Text-based gardening assistant"
    )
    parser.add_argument(
        "--typed",
        action="store_true",
        help="Type answers while listening instead of using the microphone"
    )
    parser.add_argument(
        "--language",
        choices=["english", "hindi"],
        help="Starting language (default: from config)"
    )
    parser.add_argument(
        "--config",
        help="Path to config.toml"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()
    setup_logging(args.verbose)
    return run_console(args.config, args.typed, args.language)


def run_console(
    config_path: Optional[str],
    typed: bool = False,
    language: Optional[str] = None,
    ptt: bool = False,
) -> int:
    try:
        config = init_config(config_path)
        controller, dispatcher = create_assistant(
            config, typed=typed, language=Language.parse(language) if language else None
        )
        push_to_talk = None
        if ptt:
            from .ptt import PushToTalk
            push_to_talk = PushToTalk(
                controller,
                key=str(config.get("assistant", "ptt_key", "f8")),
                long_press_seconds=float(config.get("assistant", "long_press_seconds", 0.6)),
            )
        asyncio.run(KrishiConsole(controller, dispatcher).repl(push_to_talk))
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logging.exception(e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
