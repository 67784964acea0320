#!/usr/bin/env python3
"""
Krishi - Unified CLI Interface
Wraps the interactive console, push-to-talk and one-shot question modes
"""

import asyncio
import sys
import argparse
import logging
from typing import Callable

from .assistant import AssistantState, ConversationController, Language

logger = logging.getLogger(__name__)


async def ask_once(controller: ConversationController, question: str, out: Callable[[str], None] = print) -> int:
    """
    Ask a single question, speak and print the answer.

    Returns:
        0 if an answer was spoken, 1 otherwise
    """
    answered = asyncio.Event()
    settled = asyncio.Event()

    def on_state(old: AssistantState, new: AssistantState):
        if new is AssistantState.SPEAKING:
            answered.set()
        elif new is AssistantState.IDLE:
            settled.set()

    controller.add_listener(on_state)
    controller.add_speech_listener(out)

    await controller.start()
    runner = asyncio.get_running_loop().create_task(controller.run())
    try:
        if controller.submit_question(question):
            await settled.wait()
        # Let the answer or the error notice finish playing
        while controller.session.pending_utterance is not None:
            await asyncio.sleep(0.05)
    finally:
        controller.remove_listener(on_state)
        await controller.close()
        await runner
        backend_close = getattr(controller.backend, "close", None)
        if backend_close is not None:
            await backend_close()

    return 0 if answered.is_set() else 1


def main():
    parser = argparse.ArgumentParser(
        prog="krishi",
        description="Krishi - bilingual voice assistant for gardening questions",
        epilog="Examples:\n"
               "  krishi                                  # Interactive console (microphone)\n"
               "  krishi --typed                          # Console, type instead of speaking\n"
               "  krishi --ptt                            # Console + F8 push-to-talk\n"
               "  krishi --ask 'How often should I water my tomato plants?'\n"
               "  krishi --language hindi                 # Start in Hindi\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Mode selection (mutually exclusive)
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--console",
        action="store_true",
        help="Start interactive console (default)"
    )
    mode_group.add_argument(
        "--ask",
        metavar="QUESTION",
        help="Ask one question, print and speak the answer, then exit"
    )

    parser.add_argument(
        "--typed",
        action="store_true",
        help="Type answers while listening instead of using the microphone"
    )
    parser.add_argument(
        "--ptt",
        action="store_true",
        help="Enable the global push-to-talk key (hold for quick questions)"
    )
    parser.add_argument(
        "--language",
        choices=["english", "hindi"],
        help="Starting language (default: from config)"
    )
    parser.add_argument(
        "--config",
        help="Path to config.toml (default: ~/.config/krishi/config.toml)"
    )

    # Common options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file"
    )

    args = parser.parse_args()

    from .console import create_assistant, run_console, setup_logging
    from .config import init_config

    setup_logging(args.verbose, args.log_file)

    if args.ask:
        # One-shot mode never listens, so the microphone is not needed
        try:
            config = init_config(args.config)
            language = Language.parse(args.language) if args.language else None
            controller, _dispatcher = create_assistant(config, typed=True, language=language)
            sys.exit(asyncio.run(ask_once(controller, args.ask)))
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            logger.exception(e)
            sys.exit(1)

    sys.exit(run_console(args.config, typed=args.typed, language=args.language, ptt=args.ptt))


if __name__ == "__main__":
    main()
