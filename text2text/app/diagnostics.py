from __future__ import annotations


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown runtime error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown runtime error."
    for ln in reversed(lines):
        if ln.startswith(("File ", "^", "Traceback ")):
            continue
        out = ln
        break
    else:
        out = lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    if "no module named 'argostranslate'" in s:
        return "Argos Translate is not installed. Reinstall dependencies or run with --translator phrasebook."
    if "no argos package" in s or "model not installed" in s:
        return "The language package is missing. Run once with --preload while online."
    if "no module named 'faster_whisper'" in s:
        return "Speech input needs faster-whisper. Reinstall dependencies and retry."
    if "no module named" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    if "config file not found" in s:
        return "Configured JSON file is missing. Update the config path or restore the file."
    if ("sounddevice" in s or "microphone" in s) and "fail" in s:
        return "Microphone init failed. Check --list-devices and pick one with --device."
    if "unknown translation direction" in s:
        return "Use --direction en-fr or --direction fr-en."
    return "Check logs for full traceback."
