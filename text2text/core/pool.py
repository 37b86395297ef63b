from __future__ import annotations

import logging
import threading
import time
from typing import Iterable, Optional

from text2text.app.logging_setup import log_event
from text2text.contracts import ErrorKind, TranslationDirection
from text2text.core.cache import ResultCache
from text2text.core.errors import CallTimeout, ModelReadyError, RequestCancelled
from text2text.core.timeouts import call_with_timeout
from text2text.nlp.translator.base import EngineHandle, TranslationEngine

MODEL_READY_TIMEOUT_SEC = 30.0

logger = logging.getLogger(__name__)


class TranslatorPool:
    """
    One lazily created engine handle per direction, kept until cleanup().
    Creation runs under a lock so concurrent callers never create a direction twice.
    """

    def __init__(
        self,
        engine: TranslationEngine,
        *,
        cache: Optional[ResultCache] = None,
        model_timeout_sec: float = MODEL_READY_TIMEOUT_SEC,
    ) -> None:
        self.engine = engine
        self.cache = cache
        self.model_timeout_sec = float(model_timeout_sec)
        self._handles: dict[TranslationDirection, EngineHandle] = {}
        self._lock = threading.Lock()

    def get_or_create(self, direction: TranslationDirection) -> EngineHandle:
        with self._lock:
            handle = self._handles.get(direction)
            if handle is None:
                handle = self.engine.create_handle(direction)
                self._handles[direction] = handle
                log_event(
                    logger,
                    logging.INFO,
                    "handle_created",
                    engine=self.engine.name,
                    direction=direction.code,
                )
            return handle

    def ensure_model_ready(
        self,
        handle: EngineHandle,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        t0 = time.perf_counter()
        try:
            call_with_timeout(
                handle.download_model_if_needed,
                self.model_timeout_sec,
                cancel=cancel,
                name="text2text-model-ready",
            )
        except RequestCancelled:
            raise
        except CallTimeout as e:
            raise ModelReadyError(ErrorKind.MODEL_DOWNLOAD_TIMEOUT, str(e)) from e
        except Exception as e:
            raise ModelReadyError(ErrorKind.MODEL_DOWNLOAD_FAILED, str(e)) from e
        log_event(
            logger,
            logging.DEBUG,
            "model_ready",
            direction=handle.direction.code,
            ms=round((time.perf_counter() - t0) * 1000.0, 2),
        )

    def preload(
        self,
        directions: Iterable[TranslationDirection] = tuple(TranslationDirection),
    ) -> dict[TranslationDirection, Optional[ErrorKind]]:
        """Warm every direction; failures are reported, never raised."""
        report: dict[TranslationDirection, Optional[ErrorKind]] = {}
        for direction in directions:
            try:
                self.ensure_model_ready(self.get_or_create(direction))
                report[direction] = None
            except ModelReadyError as e:
                report[direction] = e.kind
                log_event(
                    logger,
                    logging.WARNING,
                    "preload_failed",
                    direction=direction.code,
                    kind=e.kind.value,
                    detail=e.detail,
                )
            except Exception:
                report[direction] = ErrorKind.ENGINE_UNAVAILABLE
                logger.exception("preload_handle_failed", extra={"direction": direction.code})
        return report

    def cleanup(self) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            try:
                handle.close()
            except Exception:
                logger.exception("handle_close_failed", extra={"direction": handle.direction.code})
        if self.cache is not None:
            self.cache.clear()
        if handles:
            log_event(logger, logging.INFO, "pool_cleanup", closed=len(handles))

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
