from __future__ import annotations

import logging
import threading
import time
from typing import Iterable, Optional

from text2text.app.logging_setup import log_event
from text2text.contracts import (
    Error,
    ErrorKind,
    Success,
    TranslationDirection,
    TranslationOutcome,
)
from text2text.core.cache import ResultCache
from text2text.core.errors import CallTimeout, ModelReadyError, RequestCancelled, classify_failure
from text2text.core.pool import TranslatorPool
from text2text.core.timeouts import call_with_timeout, raise_if_cancelled

TRANSLATE_TIMEOUT_SEC = 10.0

logger = logging.getLogger(__name__)


class TranslationOrchestrator:
    """
    Primary translation pipeline: validate, cache, pool handle, bounded engine call.

    Failures come back as Error outcomes. The only exception that escapes
    translate() is RequestCancelled, raised when the caller's cancel event is set.
    Fallback to a secondary translator is the caller's job.
    """

    def __init__(
        self,
        pool: TranslatorPool,
        cache: ResultCache,
        *,
        translate_timeout_sec: float = TRANSLATE_TIMEOUT_SEC,
    ) -> None:
        self.pool = pool
        self.cache = cache
        self.translate_timeout_sec = float(translate_timeout_sec)

    def translate(
        self,
        text: str,
        direction: TranslationDirection,
        cancel: Optional[threading.Event] = None,
    ) -> TranslationOutcome:
        source = (text or "").strip()
        if not source:
            return Error.of(ErrorKind.EMPTY_INPUT)

        cached = self.cache.get(source, direction)
        if cached is not None:
            log_event(logger, logging.INFO, "cache_hit", direction=direction.code, chars=len(source))
            return Success(cached)

        raise_if_cancelled(cancel)
        t0 = time.perf_counter()
        try:
            handle = self.pool.get_or_create(direction)
            try:
                self.pool.ensure_model_ready(handle, cancel=cancel)
            except ModelReadyError as e:
                # A previously installed model may still serve the request.
                log_event(
                    logger,
                    logging.WARNING,
                    "model_ready_failed",
                    direction=direction.code,
                    kind=e.kind.value,
                    detail=e.detail,
                )
            translated = call_with_timeout(
                lambda: handle.translate(source),
                self.translate_timeout_sec,
                cancel=cancel,
                name="text2text-translate",
            )
        except RequestCancelled:
            raise
        except CallTimeout:
            log_event(
                logger,
                logging.WARNING,
                "translate_timeout",
                direction=direction.code,
                timeout_sec=self.translate_timeout_sec,
            )
            return Error.of(ErrorKind.TRANSLATE_TIMEOUT)
        except Exception as e:
            outcome = classify_failure(e, self.pool.engine.error_marker)
            log_event(
                logger,
                logging.WARNING,
                "translate_failed",
                direction=direction.code,
                kind=outcome.kind.value,
                detail=outcome.detail,
            )
            return outcome

        translated = "" if translated is None else str(translated)
        if not translated.strip():
            raise_if_cancelled(cancel)
            log_event(logger, logging.WARNING, "translate_empty_result", direction=direction.code)
            return Error.of(ErrorKind.EMPTY_RESULT)

        # Cached even when the request was cancelled after the engine returned.
        self.cache.put(source, direction, translated)
        raise_if_cancelled(cancel)
        log_event(
            logger,
            logging.INFO,
            "translate_done",
            engine=self.pool.engine.name,
            direction=direction.code,
            chars=len(source),
            ms=round((time.perf_counter() - t0) * 1000.0, 2),
        )
        return Success(translated)

    def preload(
        self,
        directions: Iterable[TranslationDirection] = tuple(TranslationDirection),
    ) -> dict[TranslationDirection, Optional[ErrorKind]]:
        return self.pool.preload(directions)

    def cache_stats(self) -> tuple[int, int]:
        return self.cache.stats()

    def cleanup(self) -> None:
        self.pool.cleanup()
        self.cache.clear()
