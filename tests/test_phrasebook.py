from __future__ import annotations

import threading

import pytest

from text2text.contracts import TranslationDirection, TranslationRequest
from text2text.core.errors import RequestCancelled
from text2text.nlp.translator.argos import ArgosEngine
from text2text.nlp.translator.factory import get_engine
from text2text.nlp.translator.phrasebook import PhrasebookEngine, PhrasebookTranslator, lookup

EN_FR = TranslationDirection.ENGLISH_TO_FRENCH
FR_EN = TranslationDirection.FRENCH_TO_ENGLISH


def test_lookup_is_trimmed_and_case_insensitive() -> None:
    assert lookup("hello") == "bonjour"
    assert lookup("  HeLLo ") == "bonjour"
    assert lookup("Thank You") == "merci"
    assert lookup("au revoir") == "goodbye"


def test_lookup_miss_echoes_input() -> None:
    assert lookup("the cat sleeps") == "Translation for 'the cat sleeps'"


def test_hello_round_trip() -> None:
    tr = PhrasebookTranslator(delay_sec=0)
    fr = tr.translate(TranslationRequest(text="hello", direction=EN_FR))
    back = tr.translate(TranslationRequest(text=fr.translated_text, direction=FR_EN))
    assert fr.translated_text == "bonjour"
    assert back.translated_text == "hello"
    assert fr.provider == "phrasebook"


def test_blank_text_is_rejected() -> None:
    with pytest.raises(ValueError):
        PhrasebookTranslator(delay_sec=0).translate(TranslationRequest(text="  "))


def test_cancel_during_delay_raises() -> None:
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(RequestCancelled):
        PhrasebookTranslator(delay_sec=5).translate(TranslationRequest(text="hello"), cancel=cancel)


def test_engine_handle_uses_same_table() -> None:
    handle = PhrasebookEngine().create_handle(FR_EN)
    handle.download_model_if_needed()
    assert handle.direction is FR_EN
    assert handle.translate("Merci") == "thank you"


def test_factory_providers(monkeypatch) -> None:
    monkeypatch.delenv("TEXT2TEXT_TRANSLATOR", raising=False)
    assert isinstance(get_engine(), ArgosEngine)
    assert isinstance(get_engine("phrasebook"), PhrasebookEngine)
    assert isinstance(get_engine(" STUB "), PhrasebookEngine)
    assert get_engine("argos", auto_install=False).auto_install is False


def test_factory_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("TEXT2TEXT_TRANSLATOR", "phrasebook")
    assert isinstance(get_engine(), PhrasebookEngine)


def test_factory_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError, match="Unknown translator provider"):
        get_engine("deepl")
