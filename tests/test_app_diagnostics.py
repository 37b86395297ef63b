from __future__ import annotations

from text2text.app.diagnostics import hint_for_exception, summarize_exception


def test_summarize_exception_picks_last_meaningful_line() -> None:
    detail = (
        "Traceback (most recent call last):\n"
        '  File "x.py", line 1, in <module>\n'
        "    boom()\n"
        "RuntimeError: failed to start worker"
    )
    assert summarize_exception(detail) == "RuntimeError: failed to start worker"


def test_summarize_exception_truncates_long_line() -> None:
    detail = "ValueError: " + ("x" * 500)
    out = summarize_exception(detail, max_len=60)
    assert out.startswith("ValueError: ")
    assert out.endswith("...")
    assert len(out) <= 60


def test_summarize_exception_empty() -> None:
    assert summarize_exception("") == "Unknown runtime error."


def test_hint_for_missing_argos() -> None:
    hint = hint_for_exception("ModuleNotFoundError: No module named 'argostranslate'")
    assert "--translator phrasebook" in hint


def test_hint_for_missing_language_package() -> None:
    hint = hint_for_exception("RuntimeError: No Argos package found for en->fr")
    assert "--preload" in hint


def test_hint_for_microphone_failure() -> None:
    hint = hint_for_exception("MicError: Failed to open microphone stream.")
    assert "--list-devices" in hint


def test_hint_for_exception_default() -> None:
    hint = hint_for_exception("RuntimeError: unknown")
    assert hint == "Check logs for full traceback."
