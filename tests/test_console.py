#!/usr/bin/env python3
"""
Tests for the text console driver and typed capture
"""

import asyncio

from conftest import FakeBackend, FakeOutput
from krishi.assistant import AssistantState, ConversationController, Language
from krishi.assistant.catalog import QUICK_QUESTIONS
from krishi.assistant.ports import CaptureFinal, CaptureStarted
from krishi.console import KrishiConsole, TypedCapture


class TestTypedCapture:
    """Test suite for TypedCapture."""

    def setup_method(self):
        self.capture = TypedCapture()
        self.events = []
        self.capture.subscribe(self.events.append)

    def test_feed_ignored_until_started(self):
        assert not self.capture.feed("hello")
        assert self.events == []

    def test_one_line_per_start(self):
        self.capture.start("hi-IN")
        assert self.capture.feed("टमाटर")
        assert not self.capture.feed("again")
        assert self.events == [CaptureStarted("hi-IN"), CaptureFinal("टमाटर")]

    def test_stop(self):
        self.capture.start("en-US")
        self.capture.stop()
        assert not self.capture.feed("late")


class TestKrishiConsole:
    """Console command handling."""

    def setup_method(self):
        self.capture = TypedCapture()
        self.output = FakeOutput()
        self.backend = FakeBackend()
        self.lines = []
        self.controller = ConversationController(self.capture, self.output, self.backend)
        self.console = KrishiConsole(self.controller, out=self.lines.append)

    def run(self, *commands):
        """Execute commands on a started controller, handling events after each"""
        async def scenario():
            await self.controller.start()
            results = []
            for command in commands:
                results.append(self.console.execute_command(command))
                await self.controller.process_pending()
            return results

        return asyncio.run(scenario())

    def test_quit(self):
        assert self.run("quit") == [False]
        assert self.console.execute_command("exit") is False

    def test_menu_lists_questions(self):
        self.run("menu")
        assert self.lines == [
            f"  {n}. {q}" for n, q in enumerate(QUICK_QUESTIONS[Language.ENGLISH], start=1)
        ]

    def test_numbered_question(self):
        async def scenario():
            await self.controller.start()
            self.console.execute_command("3")
            assert self.controller.state is AssistantState.PROCESSING
            await self.controller.drain()
            assert self.controller.state is AssistantState.SPEAKING

        asyncio.run(scenario())
        assert self.backend.prompts[0].endswith(QUICK_QUESTIONS[Language.ENGLISH][2])

    def test_out_of_range_question(self):
        self.run("9")
        assert self.lines == ["That question is not available right now."]
        assert self.backend.prompts == []

    def test_empty_line_taps(self):
        self.run("")
        assert self.controller.state is AssistantState.GREETING

    def test_typed_answer_while_listening(self):
        async def scenario():
            await self.controller.start()
            self.console.execute_command("")
            self.output.finish()
            await self.controller.process_pending()
            self.output.finish()
            await self.controller.process_pending()
            assert self.capture.active

            self.console.execute_command("Which fertilizer for chillies?")
            await self.controller.process_pending()
            assert self.controller.state is AssistantState.PROCESSING
            await self.controller.drain()

        asyncio.run(scenario())
        assert self.backend.prompts[0].endswith("Which fertilizer for chillies?")

    def test_command_words_are_answers_while_listening(self):
        async def scenario():
            await self.controller.start()
            answers = []
            for answer in ("3", "help", "ask about neem"):
                self.console.execute_command("")
                while not self.capture.active:
                    self.output.finish()
                    await self.controller.process_pending()

                assert self.console.execute_command(answer)
                await self.controller.process_pending()
                assert self.controller.state is AssistantState.PROCESSING
                answers.append(self.controller.session.last_transcript)

                self.controller.long_press()
            return answers

        assert asyncio.run(scenario()) == ["3", "help", "ask about neem"]
        assert self.lines == []

    def test_menu_still_works_while_listening(self):
        async def scenario():
            await self.controller.start()
            self.console.execute_command("")
            self.output.finish()
            await self.controller.process_pending()
            self.output.finish()
            await self.controller.process_pending()

            self.console.execute_command("menu")
            assert self.controller.state is AssistantState.IDLE
            assert not self.capture.active

        asyncio.run(scenario())
        assert len(self.lines) == 5

    def test_free_text_while_busy(self):
        self.run("", "my tomato leaves curl")
        assert self.lines == ["Busy (greeting); tap first to cancel."]
        assert self.backend.prompts == []

    def test_ask_command(self):
        self.run("ask neem oil dose?")
        assert self.backend.prompts[0].endswith("neem oil dose?")

    def test_lang_and_state(self):
        self.run("lang", "state")
        assert self.lines == ["idle (hindi)"]
        assert self.controller.language is Language.HINDI

    def test_lang_rejected_while_busy(self):
        self.run("", "lang")
        assert self.lines == ["Language can only be changed while idle."]

    def test_help(self):
        self.run("help")
        assert any("Commands:" in line for line in self.lines)


class AutoOutput(FakeOutput):
    """Finishes every utterance on the next loop iteration"""

    def speak(self, text, language_tag, options=None):
        handle = super().speak(text, language_tag, options)
        asyncio.get_running_loop().call_soon(self._finish_if_outstanding, handle)
        return handle

    def _finish_if_outstanding(self, handle):
        if handle in self.outstanding:
            self.finish(handle)


class TestAskOnce:
    """One-shot question mode."""

    def setup_method(self):
        self.backend = FakeBackend()
        self.controller = ConversationController(TypedCapture(), AutoOutput(), self.backend)
        self.lines = []

    def test_answer_printed(self):
        from krishi.__main__ import ask_once

        code = asyncio.run(ask_once(self.controller, "neem oil dose?", out=self.lines.append))
        assert code == 0
        assert self.lines == [self.backend.answer]
        assert self.controller.state is AssistantState.IDLE
        assert self.controller._listeners == []

    def test_backend_failure(self):
        from krishi.__main__ import ask_once
        from krishi.assistant.prompts import message
        from krishi.errors import BackendError

        self.backend.error = BackendError("down")
        code = asyncio.run(ask_once(self.controller, "neem oil dose?", out=self.lines.append))
        assert code == 1
        assert self.lines == [message(Language.ENGLISH, "backend_error")]
