"""
Conversation controller - the push-to-talk state machine.

Owns the Session and mediates every call to the capture adapter, the
speech output adapter and the language backend. All state changes happen
on the controller's event loop: gestures are plain method calls made on
that loop, adapter events arrive through the inbox queue.

Turn taking:
- at most one of capturing / awaiting the backend / speaking at a time
- a new utterance always stops the outstanding one first
- completions for superseded utterances, captures or queries are dropped
"""

import asyncio
import itertools
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import BackendError
from .catalog import questions_for
from .ports import (
    BackendAnswered,
    BackendFailed,
    CaptureFailed,
    CaptureFinal,
    CaptureRecognized,
    CaptureStarted,
    SpeechCapture,
    SpeechDone,
    SpeechFailed,
    SpeechOutput,
)
from .prompts import compose_prompt, message
from .state import AssistantState, BackendQuery, Language, Session, UtteranceRequest

logger = logging.getLogger(__name__)

StateListener = Callable[[AssistantState, AssistantState], None]
SpeechListener = Callable[[str], None]

DEFAULT_SPEECH_OPTIONS = {"rate": 0.8, "pitch": 1.0}


class ConversationController:
    """
    Push-to-talk conversation engine.

    Gestures: tap(), long_press(), submit_question(), toggle_language().
    Adapter events are posted with post() from any thread and handled in
    arrival order by run() (or process_pending()/drain()).
    """

    def __init__(
        self,
        capture: SpeechCapture,
        output: SpeechOutput,
        backend,
        language: Language = Language.ENGLISH,
        backend_timeout: float = 30.0,
        speech_options: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            capture: Speech capture adapter
            output: Speech output adapter
            backend: Object with an async query(prompt) -> str method
            language: Starting language
            backend_timeout: Seconds before a backend query counts as failed
            speech_options: Passed to every speak() call (rate, pitch)
        """
        self.session = Session(language=language)
        self.capture = capture
        self.output = output
        self.backend = backend
        self.backend_timeout = backend_timeout
        self.speech_options = dict(speech_options or DEFAULT_SPEECH_OPTIONS)

        self.capture_available = True
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.loop: Optional[asyncio.AbstractEventLoop] = None

        self._listeners: List[StateListener] = []
        self._speech_listeners: List[SpeechListener] = []
        self._utterance: Optional[UtteranceRequest] = None
        self._capturing = False
        self._query_ids = itertools.count(1)
        self._query_id: Optional[int] = None
        self._query_task: Optional[asyncio.Task] = None
        self._running = False

        capture.subscribe(self.post)
        output.subscribe(self.post)

    # ------------------------------------------------------------------
    # Read-only views

    @property
    def state(self) -> AssistantState:
        return self.session.state

    @property
    def language(self) -> Language:
        return self.session.language

    def add_listener(self, callback: StateListener):
        """Call callback(old_state, new_state) on every transition"""
        self._listeners.append(callback)

    def remove_listener(self, callback: StateListener):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def add_speech_listener(self, callback: SpeechListener):
        """Call callback(text) for every utterance handed to the output"""
        self._speech_listeners.append(callback)

    # ------------------------------------------------------------------
    # Lifecycle

    async def start(self) -> bool:
        """
        Bind to the running loop and probe the capture adapter.

        Returns:
            False if speech capture is unavailable (listening stays disabled)
        """
        self.loop = asyncio.get_running_loop()
        try:
            self.capture_available = bool(await self.capture.is_available())
        except Exception as e:
            logger.error("Speech capture check failed: %s", e)
            self.capture_available = False

        if not self.capture_available:
            logger.error("Speech capture unavailable; listening is disabled")
        return self.capture_available

    async def run(self):
        """Handle adapter events until close() is called"""
        if self.loop is None:
            await self.start()

        self._running = True
        logger.info("Conversation controller running (%s)", self.language.value)
        while self._running:
            event = await self.inbox.get()
            if event is None:
                continue
            self.handle_event(event)

    async def close(self):
        """Cancel everything in flight and stop run()"""
        self._cancel_active()
        self._set_state(AssistantState.IDLE)
        self._running = False
        self.inbox.put_nowait(None)

    def post(self, event):
        """Queue an adapter event. Safe to call from any thread."""
        loop = self.loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.inbox.put_nowait, event)
        else:
            self.inbox.put_nowait(event)

    async def process_pending(self) -> int:
        """Handle queued events without waiting for new ones"""
        handled = 0
        while True:
            await asyncio.sleep(0)
            if self.inbox.empty():
                return handled
            while not self.inbox.empty():
                event = self.inbox.get_nowait()
                if event is not None:
                    self.handle_event(event)
                    handled += 1

    async def drain(self):
        """Wait for the in-flight backend query and handle resulting events"""
        while True:
            task = self._query_task
            if task is not None and not task.done():
                await asyncio.wait({task})
            handled = await self.process_pending()
            task = self._query_task
            if not handled and (task is None or task.done()):
                return

    # ------------------------------------------------------------------
    # Gestures

    def tap(self):
        """Primary gesture: start, cancel or interrupt depending on state"""
        state = self.session.state

        if state in (AssistantState.SPEAKING, AssistantState.GREETING):
            logger.info("Tap: interrupting speech")
            self._stop_speech()
            self._set_state(AssistantState.IDLE)
            return

        if state is AssistantState.LISTENING:
            logger.info("Tap: cancelling capture")
            self._cancel_listening()
            self._set_state(AssistantState.IDLE)
            return

        if state is AssistantState.PROCESSING:
            logger.info("Tap ignored while processing")
            return

        if not self.capture_available:
            logger.warning("Tap ignored: speech capture unavailable")
            return

        if self.session.is_first_interaction:
            self.session.is_first_interaction = False
            self._set_state(AssistantState.GREETING)
            self._speak(self._msg("greeting"), on_complete=self._begin_listening)
        else:
            self._begin_listening()

    def long_press(self) -> Tuple[str, ...]:
        """
        Secondary gesture: cancel the active operation and open the catalog.

        Returns:
            Quick questions for the current language
        """
        if self.session.state is not AssistantState.IDLE:
            logger.info("Long press: cancelling %s", self.session.state.value)
        self._cancel_active()
        self._set_state(AssistantState.IDLE)
        return questions_for(self.session.language)

    def submit_question(self, text: str) -> bool:
        """
        Process literal text as if capture had produced it (quick questions).

        Only accepted while idle. Returns True if a backend query started.
        """
        if self.session.state is not AssistantState.IDLE:
            logger.warning("Question rejected while %s", self.session.state.value)
            return False
        self._stop_speech()
        return self._process(text)

    def toggle_language(self) -> bool:
        """
        Switch between English and Hindi. Only allowed while idle.

        Returns:
            True if the language changed
        """
        if self.session.state is not AssistantState.IDLE:
            logger.warning("Language change rejected while %s", self.session.state.value)
            return False

        self.session.language = self.session.language.other
        logger.info("Language switched to %s", self.session.language.value)
        self._speak(self._msg("language_switched"), notice=True)
        return True

    # ------------------------------------------------------------------
    # Event handling

    def handle_event(self, event):
        """Apply one adapter event. Runs on the controller loop only."""
        if isinstance(event, SpeechDone):
            self._on_speech_done(event)
        elif isinstance(event, SpeechFailed):
            self._on_speech_failed(event)
        elif isinstance(event, CaptureStarted):
            logger.debug("Capture started (%s)", event.language_tag)
        elif isinstance(event, CaptureRecognized):
            if self._capturing and event.text:
                self.session.last_transcript = event.text
        elif isinstance(event, CaptureFinal):
            self._on_capture_final(event)
        elif isinstance(event, CaptureFailed):
            self._on_capture_failed(event)
        elif isinstance(event, BackendAnswered):
            self._on_backend_answered(event)
        elif isinstance(event, BackendFailed):
            self._on_backend_failed(event)
        else:
            logger.warning("Unknown event: %r", event)

    def _on_speech_done(self, event: SpeechDone):
        if event.utterance_id != self.session.pending_utterance:
            logger.debug("Ignoring stale completion for utterance %s", event.utterance_id)
            return

        request = self._utterance
        self.session.pending_utterance = None
        self._utterance = None

        if event.interrupted:
            logger.info("Utterance %s was interrupted", event.utterance_id)
            self._set_state(AssistantState.IDLE)
            return

        if self.session.state is AssistantState.SPEAKING:
            self._set_state(AssistantState.IDLE)

        if request is not None and request.on_complete is not None:
            request.on_complete()

    def _on_speech_failed(self, event: SpeechFailed):
        if event.utterance_id != self.session.pending_utterance:
            logger.debug("Ignoring stale failure for utterance %s", event.utterance_id)
            return

        request = self._utterance
        self.session.pending_utterance = None
        self._utterance = None

        logger.error("Speech output failed: %s", event.reason or "unknown error")
        self._set_state(AssistantState.IDLE)
        if request is None or not request.notice:
            self._speak(self._msg("output_error"), notice=True)

    def _on_capture_final(self, event: CaptureFinal):
        if not self._capturing or self.session.state is not AssistantState.LISTENING:
            logger.debug("Ignoring transcript from inactive capture")
            return
        self._capturing = False
        logger.info("Heard: %r", event.text)
        self._process(event.text)

    def _on_capture_failed(self, event: CaptureFailed):
        if not self._capturing or self.session.state is not AssistantState.LISTENING:
            logger.debug("Ignoring capture error from inactive capture")
            return
        self._capturing = False
        logger.warning("Speech capture error: %s %s", event.code, event.message)
        self._recover_idle("not_heard")

    def _on_backend_answered(self, event: BackendAnswered):
        if event.query_id != self._query_id or self.session.state is not AssistantState.PROCESSING:
            logger.debug("Ignoring answer for superseded query %s", event.query_id)
            return
        self._query_id = None
        self._query_task = None
        self._set_state(AssistantState.SPEAKING)
        self._speak(event.text)

    def _on_backend_failed(self, event: BackendFailed):
        if event.query_id != self._query_id or self.session.state is not AssistantState.PROCESSING:
            logger.debug("Ignoring failure for superseded query %s", event.query_id)
            return
        self._query_id = None
        self._query_task = None
        kind = getattr(event.error, "kind", type(event.error).__name__)
        logger.error("Backend query failed (%s): %s", kind, event.error)
        self._recover_idle("backend_error")

    # ------------------------------------------------------------------
    # Steps

    def _begin_listening(self):
        self.session.last_transcript = None
        self._set_state(AssistantState.LISTENING)
        self._speak(self._msg("listening"), on_complete=self._start_capture)

    def _start_capture(self):
        if self.session.state is not AssistantState.LISTENING:
            return
        self._capturing = True
        try:
            self.capture.start(self.session.language.tag)
        except Exception as e:
            self._capturing = False
            logger.error("Could not start speech capture: %s", e)
            self._recover_idle("not_heard")

    def _process(self, text: str) -> bool:
        self.session.last_transcript = text
        if not text or not text.strip():
            logger.warning("Empty transcript; backend not queried")
            self._recover_idle("no_question")
            return False

        language = self.session.language
        query = BackendQuery(compose_prompt(text.strip(), language), language.tag)

        self._set_state(AssistantState.PROCESSING)
        query_id = next(self._query_ids)
        self._query_id = query_id
        self._query_task = asyncio.get_running_loop().create_task(
            self._ask_backend(query_id, query)
        )
        return True

    async def _ask_backend(self, query_id: int, query: BackendQuery):
        try:
            answer = await asyncio.wait_for(
                self.backend.query(query.composed_prompt), timeout=self.backend_timeout
            )
        except asyncio.TimeoutError:
            error = BackendError(
                f"No answer within {self.backend_timeout:g}s", kind=BackendError.TIMEOUT
            )
            self.post(BackendFailed(query_id, error))
        except Exception as e:
            self.post(BackendFailed(query_id, e))
        else:
            self.post(BackendAnswered(query_id, answer))

    def _speak(self, text: str, on_complete: Optional[Callable[[], None]] = None, notice: bool = False):
        if self.session.pending_utterance is not None:
            logger.debug("Stopping utterance %s before speaking", self.session.pending_utterance)
            self.output.stop_all()
            self.session.pending_utterance = None
            self._utterance = None

        request = UtteranceRequest(text, self.session.language.tag, on_complete, notice)
        try:
            handle = self.output.speak(request.text, request.language_tag, self.speech_options)
        except Exception as e:
            logger.error("Speech output failed to start: %s", e)
            self._cancel_listening()
            self._set_state(AssistantState.IDLE)
            return

        self._utterance = request
        self.session.pending_utterance = handle.id
        for callback in list(self._speech_listeners):
            try:
                callback(request.text)
            except Exception as e:
                logger.error("Speech listener failed: %s", e)

    def _stop_speech(self):
        if self.session.pending_utterance is not None:
            self.output.stop_all()
        self.session.pending_utterance = None
        self._utterance = None

    def _cancel_listening(self):
        self._stop_speech()
        if self._capturing:
            self.capture.stop()
            self._capturing = False
        self.session.last_transcript = None

    def _cancel_active(self):
        self._cancel_listening()
        if self._query_task is not None:
            self._query_task.cancel()
        self._query_task = None
        self._query_id = None

    def _recover_idle(self, message_key: str):
        self._set_state(AssistantState.IDLE)
        self._speak(self._msg(message_key), notice=True)

    def _msg(self, key: str) -> str:
        return message(self.session.language, key)

    def _set_state(self, new_state: AssistantState):
        old_state = self.session.state
        if old_state is new_state:
            return
        self.session.state = new_state
        logger.info("State: %s -> %s", old_state.value, new_state.value)
        for callback in list(self._listeners):
            try:
                callback(old_state, new_state)
            except Exception as e:
                logger.error("State listener failed: %s", e)
