from __future__ import annotations

import logging
import threading
import traceback
from typing import Callable, Optional, Protocol

from text2text.app.logging_setup import log_event
from text2text.contracts import (
    Error,
    ErrorKind,
    HistoryEntry,
    Idle,
    Language,
    Loading,
    SpeechError,
    SpeechIdle,
    SpeechOutcome,
    SpeechSuccess,
    Success,
    TranslationDirection,
    TranslationOutcome,
    TranslationRequest,
)
from text2text.core.errors import RequestCancelled
from text2text.nlp.translator.base import Translator

DEBOUNCE_SEC = 0.5

logger = logging.getLogger(__name__)

OutcomeListener = Callable[[TranslationOutcome], None]
SpeechListener = Callable[[SpeechOutcome], None]


class Orchestrator(Protocol):
    def translate(
        self,
        text: str,
        direction: TranslationDirection,
        cancel: Optional[threading.Event] = None,
    ) -> TranslationOutcome:
        ...


class HistorySink(Protocol):
    def add(
        self,
        original_text: str,
        translated_text: str,
        direction: TranslationDirection,
        is_from_speech: bool = False,
    ):
        ...


class SpeechSource(Protocol):
    def is_available(self) -> bool:
        ...

    def start(self, language: Language, on_event: SpeechListener) -> None:
        ...

    def stop(self) -> None:
        ...


class RequestSequencer:
    """
    One translation session: debounces typed input, runs primary -> fallback on a
    worker thread, and publishes only the newest request's outcome.

    Every new request (debounced input, explicit trigger, speech result, clear)
    bumps the generation and sets the previous request's cancel event. A worker
    whose generation is no longer current has its result dropped, never applied.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        *,
        fallback: Optional[Translator] = None,
        history: Optional[HistorySink] = None,
        speech: Optional[SpeechSource] = None,
        direction: TranslationDirection = TranslationDirection.ENGLISH_TO_FRENCH,
        debounce_sec: float = DEBOUNCE_SEC,
    ) -> None:
        self.orchestrator = orchestrator
        self.fallback = fallback
        self.history = history
        self.speech = speech
        self.debounce_sec = max(0.0, float(debounce_sec))

        self._lock = threading.RLock()
        self._text = ""
        self._direction = direction
        self._outcome: TranslationOutcome = Idle()
        self._speech_outcome: SpeechOutcome = SpeechIdle()
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._cancel: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None
        self._listeners: list[OutcomeListener] = []
        self._speech_listeners: list[SpeechListener] = []

    # --- observable state ---

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    @property
    def direction(self) -> TranslationDirection:
        with self._lock:
            return self._direction

    @property
    def outcome(self) -> TranslationOutcome:
        with self._lock:
            return self._outcome

    @property
    def speech_outcome(self) -> SpeechOutcome:
        with self._lock:
            return self._speech_outcome

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def add_listener(self, listener: OutcomeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def add_speech_listener(self, listener: SpeechListener) -> None:
        with self._lock:
            self._speech_listeners.append(listener)

    # --- inputs ---

    def on_input_changed(self, text: str) -> None:
        with self._lock:
            self._text = text or ""
            token = self._supersede_locked()
            if not self._text.strip():
                self._publish_locked(Idle())
                return
            timer = threading.Timer(self.debounce_sec, self._on_debounce_elapsed, args=(token,))
            timer.name = "text2text-debounce"
            timer.daemon = True
            self._timer = timer
            timer.start()

    def on_direction_changed(self, direction: TranslationDirection) -> Optional[int]:
        with self._lock:
            self._direction = direction
            if self._text.strip():
                return self.translate_now()
        return None

    def translate_now(self, from_speech: bool = False) -> Optional[int]:
        """Start a request for the current text right away; returns its token."""
        with self._lock:
            text = self._text.strip()
            token = self._supersede_locked()
            if not text:
                self._publish_locked(Error.of(ErrorKind.EMPTY_INPUT))
                return None
            cancel = threading.Event()
            self._cancel = cancel
            direction = self._direction
            self._publish_locked(Loading())
            worker = threading.Thread(
                target=self._run_request,
                args=(token, cancel, text, direction, from_speech),
                name="text2text-request",
                daemon=True,
            )
            self._worker = worker
            worker.start()
        log_event(
            logger,
            logging.INFO,
            "request_started",
            token=token,
            direction=direction.code,
            chars=len(text),
            from_speech=from_speech,
        )
        return token

    def on_speech_outcome(self, outcome: SpeechOutcome) -> None:
        self._set_speech_outcome(outcome)
        if isinstance(outcome, SpeechSuccess):
            with self._lock:
                self._text = outcome.text
                self.translate_now(from_speech=True)

    def start_listening(self) -> bool:
        if self.speech is None or not self.speech.is_available():
            self._set_speech_outcome(SpeechError("Speech recognition not available"))
            return False
        language = self.direction.source
        self.speech.start(language, self.on_speech_outcome)
        log_event(logger, logging.INFO, "speech_started", language=language.code)
        return True

    def stop_listening(self) -> None:
        if self.speech is not None:
            self.speech.stop()
        self._set_speech_outcome(SpeechIdle())

    def select_from_history(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._text = entry.original_text
            self._direction = entry.direction
            self._supersede_locked()
            self._publish_locked(Success(entry.translated_text))

    def clear(self) -> None:
        with self._lock:
            self._text = ""
            self._supersede_locked()
            self._publish_locked(Idle())
        self.stop_listening()

    def wait(self, timeout: Optional[float] = None) -> TranslationOutcome:
        """Join the most recently started request and return the current outcome."""
        with self._lock:
            worker = self._worker
        if worker is not None:
            worker.join(timeout)
        return self.outcome

    # --- internals ---

    def _supersede_locked(self) -> int:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._cancel is not None:
            self._cancel.set()
            self._cancel = None
        self._generation += 1
        return self._generation

    def _on_debounce_elapsed(self, token: int) -> None:
        with self._lock:
            if token != self._generation:
                return
            self._timer = None
            self.translate_now()

    def _run_request(
        self,
        token: int,
        cancel: threading.Event,
        text: str,
        direction: TranslationDirection,
        from_speech: bool,
    ) -> None:
        try:
            try:
                outcome = self.orchestrator.translate(text, direction, cancel=cancel)
            except RequestCancelled:
                raise
            except Exception:
                logger.exception("primary_failed", extra={"token": token})
                outcome = Error.of(ErrorKind.UNKNOWN, detail=traceback.format_exc())
            if isinstance(outcome, Error) and self.fallback is not None:
                log_event(
                    logger,
                    logging.INFO,
                    "fallback_used",
                    token=token,
                    direction=direction.code,
                    kind=outcome.kind.value,
                )
                outcome = self._translate_fallback(text, direction, cancel, primary=outcome)
        except RequestCancelled:
            log_event(logger, logging.INFO, "request_cancelled", token=token)
            return

        if not self._publish(token, outcome):
            return
        if isinstance(outcome, Success) and self.history is not None:
            try:
                self.history.add(text, outcome.text, direction, is_from_speech=from_speech)
            except Exception:
                logger.exception("history_add_failed", extra={"token": token})

    def _translate_fallback(
        self,
        text: str,
        direction: TranslationDirection,
        cancel: threading.Event,
        primary: Error,
    ) -> TranslationOutcome:
        if not text.strip():
            return Error.of(ErrorKind.EMPTY_INPUT)
        try:
            res = self.fallback.translate(TranslationRequest(text=text, direction=direction), cancel=cancel)
        except RequestCancelled:
            raise
        except Exception:
            # Not expected from the phrasebook; the primary error then stands.
            logger.exception("fallback_failed")
            return primary
        return Success(res.translated_text)

    def _publish(self, token: int, outcome: TranslationOutcome) -> bool:
        with self._lock:
            if token != self._generation:
                log_event(
                    logger,
                    logging.INFO,
                    "outcome_dropped_stale",
                    token=token,
                    current=self._generation,
                    outcome=type(outcome).__name__,
                )
                return False
            self._publish_locked(outcome)
            return True

    def _publish_locked(self, outcome: TranslationOutcome) -> None:
        self._outcome = outcome
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception:
                logger.exception("outcome_listener_failed")

    def _set_speech_outcome(self, outcome: SpeechOutcome) -> None:
        with self._lock:
            self._speech_outcome = outcome
            for listener in list(self._speech_listeners):
                try:
                    listener(outcome)
                except Exception:
                    logger.exception("speech_listener_failed")
