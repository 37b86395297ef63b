from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from text2text.app.logging_setup import log_event
from text2text.contracts import Language, SpeechError, SpeechOutcome, is_terminal_speech
from text2text.speech.capture import SpeechCapture

logger = logging.getLogger(__name__)


class SpeechBridge:
    """
    Runs one speech session at a time on a daemon thread and forwards its events.
    Starting a new session or calling stop() silences the previous one.
    """

    def __init__(self, capture: SpeechCapture) -> None:
        self.capture = capture
        self._lock = threading.Lock()
        self._session = 0
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    def is_available(self) -> bool:
        try:
            return bool(self.capture.is_available())
        except Exception:
            logger.exception("speech_availability_check_failed")
            return False

    def start(self, language: Language, on_event: Callable[[SpeechOutcome], None]) -> int:
        with self._lock:
            if self._stop is not None:
                self._stop.set()
            self._session += 1
            session = self._session
            stop = threading.Event()
            self._stop = stop
            thread = threading.Thread(
                target=self._run,
                args=(session, stop, language, on_event),
                name="text2text-speech",
                daemon=True,
            )
            self._thread = thread
            thread.start()
        return session

    def stop(self) -> None:
        with self._lock:
            if self._stop is not None:
                self._stop.set()
                self._stop = None

    def join(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _deliver(
        self,
        session: int,
        stop: threading.Event,
        on_event: Callable[[SpeechOutcome], None],
        outcome: SpeechOutcome,
    ) -> bool:
        # Delivered under the lock so stop() cannot interleave with a late event.
        with self._lock:
            if session != self._session or stop.is_set():
                return False
            on_event(outcome)
            return True

    def _run(
        self,
        session: int,
        stop: threading.Event,
        language: Language,
        on_event: Callable[[SpeechOutcome], None],
    ) -> None:
        events = None
        try:
            events = self.capture.listen(language, stop)
            for outcome in events:
                if not self._deliver(session, stop, on_event, outcome):
                    break
                if is_terminal_speech(outcome):
                    log_event(
                        logger,
                        logging.INFO,
                        "speech_session_done",
                        session=session,
                        outcome=type(outcome).__name__,
                    )
                    break
        except Exception:
            logger.exception("speech_session_failed", extra={"session": session})
            self._deliver(session, stop, on_event, SpeechError("Speech recognition failed"))
        finally:
            close = getattr(events, "close", None)
            if close is not None:
                close()
