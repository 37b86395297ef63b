from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Optional

from text2text.contracts import TranslationDirection, TranslationRequest, TranslationResult


class EngineHandle(ABC):
    """One engine resource bound to a single direction; owned by the handle pool."""

    def __init__(self, direction: TranslationDirection) -> None:
        self.direction = direction

    @abstractmethod
    def download_model_if_needed(self) -> None: ...

    @abstractmethod
    def translate(self, text: str) -> str: ...

    def close(self) -> None:
        return None


class TranslationEngine(ABC):
    # Lowercased substring that identifies this engine's own failures.
    error_marker: str = "engineerror"

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def create_handle(self, direction: TranslationDirection) -> EngineHandle: ...


class Translator(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def translate(
        self,
        req: TranslationRequest,
        cancel: Optional[threading.Event] = None,
    ) -> TranslationResult: ...
