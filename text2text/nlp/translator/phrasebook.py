from __future__ import annotations

import threading
from typing import Optional

from .base import EngineHandle, TranslationEngine, Translator
from text2text.contracts import TranslationDirection, TranslationRequest, TranslationResult
from text2text.core.errors import RequestCancelled

# Keys are lowercase; both directions share one table.
PHRASEBOOK: dict[str, str] = {
    "hello": "bonjour",
    "goodbye": "au revoir",
    "thank you": "merci",
    "please": "s'il vous plaît",
    "yes": "oui",
    "no": "non",
    "how are you": "comment allez-vous",
    "good morning": "bonjour",
    "good evening": "bonsoir",
    "excuse me": "excusez-moi",
    "bonjour": "hello",
    "au revoir": "goodbye",
    "merci": "thank you",
    "s'il vous plaît": "please",
    "oui": "yes",
    "non": "no",
    "comment allez-vous": "how are you",
    "bonsoir": "good evening",
    "excusez-moi": "excuse me",
}


def lookup(text: str) -> str:
    """Phrase table translation, or a placeholder echoing the input on a miss."""
    return PHRASEBOOK.get(text.strip().lower(), f"Translation for '{text}'")


class PhrasebookTranslator(Translator):
    """
    Lower-quality fallback tier: fixed delay, static table, never fails on non-blank text.
    """

    def __init__(self, delay_sec: float = 1.0) -> None:
        self.delay_sec = max(0.0, float(delay_sec))

    @property
    def name(self) -> str:
        return "phrasebook"

    def translate(
        self,
        req: TranslationRequest,
        cancel: Optional[threading.Event] = None,
    ) -> TranslationResult:
        if not req.text.strip():
            raise ValueError("text must not be blank")
        waiter = cancel if cancel is not None else threading.Event()
        if self.delay_sec and waiter.wait(self.delay_sec):
            raise RequestCancelled("phrasebook")
        return TranslationResult(
            source_text=req.text,
            translated_text=lookup(req.text),
            provider=self.name,
        )


class PhrasebookHandle(EngineHandle):
    def download_model_if_needed(self) -> None:
        return None

    def translate(self, text: str) -> str:
        return lookup(text)


class PhrasebookEngine(TranslationEngine):
    error_marker = "phrasebook"

    @property
    def name(self) -> str:
        return "phrasebook"

    def create_handle(self, direction: TranslationDirection) -> PhrasebookHandle:
        return PhrasebookHandle(direction)
