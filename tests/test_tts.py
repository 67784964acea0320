#!/usr/bin/env python3
"""
Tests for the speech output adapter and TTS parameter mapping
"""

import asyncio

import pytest

from krishi.assistant.ports import SpeechDone, SpeechFailed
from krishi.errors import OutputError
from krishi.tts import TTSSpeechOutput
from krishi.tts.engine import TTSEngine, edge_pitch, edge_rate


class FakeEngine:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def synthesize_async(self, text, language_tag, rate=1.0, pitch=1.0):
        self.calls.append((text, language_tag, rate, pitch))
        if self.error is not None:
            raise self.error
        return b"audio"


class FakePlayer:
    def __init__(self, hold=False):
        self.hold = hold
        self.played = []
        self.stopped = 0

    async def play(self, audio_data):
        self.played.append(audio_data)
        if self.hold:
            await asyncio.sleep(10)

    def stop(self):
        self.stopped += 1


class TestEdgeParameters:
    """rate/pitch options to edge-tts strings."""

    @pytest.mark.parametrize("rate,expected", [(1.0, "+0%"), (0.8, "-20%"), (1.25, "+25%")])
    def test_rate(self, rate, expected):
        assert edge_rate(rate) == expected

    @pytest.mark.parametrize("pitch,expected", [(1.0, "+0Hz"), (1.2, "+10Hz"), (0.9, "-5Hz")])
    def test_pitch(self, pitch, expected):
        assert edge_pitch(pitch) == expected

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            TTSEngine(provider="robot")


class TestTTSSpeechOutput:
    """Terminal events from the output adapter."""

    def speak_and_collect(self, engine, player, stop=False):
        output = TTSSpeechOutput(engine, player)
        events = []
        output.subscribe(events.append)

        async def scenario():
            handle = output.speak("Use neem oil.", "en-US", {"rate": 0.8, "pitch": 1.0})
            await asyncio.sleep(0)
            if stop:
                output.stop_all()
            for _ in range(50):
                if events:
                    break
                await asyncio.sleep(0.01)
            return handle

        handle = asyncio.run(scenario())
        return handle, events

    def test_done(self):
        engine = FakeEngine()
        player = FakePlayer()
        handle, events = self.speak_and_collect(engine, player)
        assert events == [SpeechDone(handle.id)]
        assert engine.calls == [("Use neem oil.", "en-US", 0.8, 1.0)]
        assert player.played == [b"audio"]

    def test_failure(self):
        handle, events = self.speak_and_collect(FakeEngine(OutputError("no voice")), FakePlayer())
        assert events == [SpeechFailed(handle.id, "no voice")]

    def test_stop_all_interrupts(self):
        player = FakePlayer(hold=True)
        handle, events = self.speak_and_collect(FakeEngine(), player, stop=True)
        assert events == [SpeechDone(handle.id, interrupted=True)]
        assert player.stopped == 1

    def test_fresh_ids(self):
        output = TTSSpeechOutput(FakeEngine(), FakePlayer())

        async def scenario():
            return output.speak("a", "en-US"), output.speak("b", "en-US")

        first, second = asyncio.run(scenario())
        assert first.id != second.id
