from __future__ import annotations

from typing import Optional

from text2text.app.diagnostics import summarize_exception
from text2text.contracts import Error, ErrorKind


class RequestCancelled(Exception):
    """The request's cancel event was set before it finished."""


class CallTimeout(TimeoutError):
    pass


class ModelReadyError(RuntimeError):
    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        super().__init__(detail or kind.message)
        self.kind = kind
        self.detail = detail


def describe_exception(exc: BaseException) -> str:
    cls = type(exc)
    return f"{cls.__module__}.{cls.__qualname__}: {exc}"


def classify_failure(exc: BaseException, engine_marker: Optional[str] = None) -> Error:
    """Map an engine failure onto a user-facing error by its textual description."""
    description = describe_exception(exc)
    lowered = description.lower()
    if "network" in lowered:
        return Error.of(ErrorKind.NETWORK_ERROR, detail=description)
    if "model" in lowered:
        return Error.of(ErrorKind.MODEL_NOT_READY, detail=description)
    if engine_marker and engine_marker.lower() in lowered:
        return Error.of(ErrorKind.ENGINE_UNAVAILABLE, detail=description)
    return Error.of(ErrorKind.UNKNOWN, detail=summarize_exception(description))
