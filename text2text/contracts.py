from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class Language(Enum):
    ENGLISH = ("English", "en")
    FRENCH = ("French", "fr")

    def __init__(self, display_name: str, code: str) -> None:
        self.display_name = display_name
        self.code = code


class TranslationDirection(Enum):
    ENGLISH_TO_FRENCH = ("English → French", Language.ENGLISH, Language.FRENCH)
    FRENCH_TO_ENGLISH = ("French → English", Language.FRENCH, Language.ENGLISH)

    def __init__(self, display_name: str, source: Language, target: Language) -> None:
        if source is target:
            raise ValueError(f"source and target must differ: {source.code}")
        self.display_name = display_name
        self.source = source
        self.target = target

    @property
    def code(self) -> str:
        return f"{self.source.code}-{self.target.code}"

    def reversed(self) -> "TranslationDirection":
        return direction_for(self.target, self.source)

    @classmethod
    def parse(cls, value: str) -> "TranslationDirection":
        """Accept either a code like ``en-fr`` or a member name."""
        raw = str(value or "").strip()
        for member in cls:
            if raw.lower() == member.code or raw.upper() == member.name:
                return member
        raise ValueError(f"Unknown translation direction: {value!r}")


def direction_for(source: Language, target: Language) -> TranslationDirection:
    if source is target:
        raise ValueError(f"source and target must differ: {source.code}")
    for member in TranslationDirection:
        if member.source is source and member.target is target:
            return member
    raise ValueError(f"Unsupported translation direction: {source.code}->{target.code}")


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    direction: TranslationDirection = TranslationDirection.ENGLISH_TO_FRENCH


@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str
    provider: str


# --- translation outcome variants ---

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Success:
    text: str


class ErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    MODEL_DOWNLOAD_TIMEOUT = "model_download_timeout"
    MODEL_DOWNLOAD_FAILED = "model_download_failed"
    TRANSLATE_TIMEOUT = "translate_timeout"
    EMPTY_RESULT = "empty_result"
    NETWORK_ERROR = "network_error"
    MODEL_NOT_READY = "model_not_ready"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    UNKNOWN = "unknown"

    @property
    def message(self) -> str:
        return _ERROR_MESSAGES[self]


_ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.EMPTY_INPUT: "Please enter text to translate",
    ErrorKind.MODEL_DOWNLOAD_TIMEOUT: "Translation model download timed out.",
    ErrorKind.MODEL_DOWNLOAD_FAILED: (
        "Failed to download translation model. Please check your internet connection."
    ),
    ErrorKind.TRANSLATE_TIMEOUT: (
        "Translation timed out. Please check your connection and try again."
    ),
    ErrorKind.EMPTY_RESULT: "Translation returned empty result",
    ErrorKind.NETWORK_ERROR: "Network error. Please check your connection.",
    ErrorKind.MODEL_NOT_READY: "Translation model downloading. Please wait and try again.",
    ErrorKind.ENGINE_UNAVAILABLE: "Translation service unavailable. Please try again.",
    ErrorKind.UNKNOWN: "Translation failed. Please try again.",
}


@dataclass(frozen=True)
class Error:
    message: str
    kind: ErrorKind = ErrorKind.UNKNOWN
    # Raw failure detail for logs only; never shown to the user.
    detail: Optional[str] = None

    @classmethod
    def of(cls, kind: ErrorKind, detail: Optional[str] = None) -> "Error":
        return cls(message=kind.message, kind=kind, detail=detail)


TranslationOutcome = Union[Idle, Loading, Success, Error]


# --- speech outcome variants ---

@dataclass(frozen=True)
class SpeechIdle:
    pass


@dataclass(frozen=True)
class Listening:
    pass


@dataclass(frozen=True)
class SpeechSuccess:
    text: str


@dataclass(frozen=True)
class SpeechError:
    message: str


SpeechOutcome = Union[SpeechIdle, Listening, SpeechSuccess, SpeechError]


def is_terminal_speech(outcome: SpeechOutcome) -> bool:
    return isinstance(outcome, (SpeechSuccess, SpeechError))


@dataclass(frozen=True)
class CacheEntry:
    """A stored translation keyed by trimmed source text and direction."""
    original_text: str
    translated_text: str
    direction: TranslationDirection
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: float, expiry_sec: float) -> bool:
        return now - self.created_at > expiry_sec


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    original_text: str
    translated_text: str
    direction: TranslationDirection
    timestamp: float
    is_from_speech: bool = False

    def formatted_time(self) -> str:
        return time.strftime("%b %d, %H:%M", time.localtime(self.timestamp))
