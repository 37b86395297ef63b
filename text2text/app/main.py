from __future__ import annotations

import sys
import threading
import traceback
from typing import Any, Callable, Iterable, TextIO

from text2text.app.config import config_from_args, resolve_args, save_user_config
from text2text.app.diagnostics import hint_for_exception, summarize_exception
from text2text.app.logging_setup import setup_app_logger
from text2text.app.services import AppServices, build_services
from text2text.audio.mic import SoundDeviceMicSource
from text2text.contracts import (
    Error,
    HistoryEntry,
    Idle,
    Listening,
    Loading,
    SpeechError,
    SpeechIdle,
    SpeechOutcome,
    SpeechSuccess,
    Success,
    TranslationDirection,
    TranslationOutcome,
)

HELP = """\
Type any text to translate it. Commands:
  :dir en-fr|fr-en   change direction (retranslates current text)
  :swap              reverse the direction
  :speak / :stop     start or stop listening on the microphone
  :history           list history          :search QUERY   search history
  :pick N            reuse history item N  :remove N       delete history item N
  :clear             clear input and result
  :clear-history     delete all history    :stats          cache statistics
  :help              this text             :quit           exit"""


def render_outcome(outcome: TranslationOutcome) -> str:
    if isinstance(outcome, Idle):
        return ""
    if isinstance(outcome, Loading):
        return "Translating..."
    if isinstance(outcome, Success):
        return outcome.text
    if isinstance(outcome, Error):
        return f"Error: {outcome.message}"
    raise TypeError(f"Unknown translation outcome: {outcome!r}")


def render_speech(outcome: SpeechOutcome) -> str:
    if isinstance(outcome, SpeechIdle):
        return ""
    if isinstance(outcome, Listening):
        return "Listening..."
    if isinstance(outcome, SpeechSuccess):
        return f"Heard: {outcome.text}"
    if isinstance(outcome, SpeechError):
        return f"Speech error: {outcome.message}"
    raise TypeError(f"Unknown speech outcome: {outcome!r}")


def render_history(entries: Iterable[HistoryEntry]) -> list[str]:
    lines = []
    for i, e in enumerate(entries, start=1):
        source = " (speech)" if e.is_from_speech else ""
        lines.append(
            f"{i:>3}. [{e.formatted_time()}] {e.direction.code}{source}: "
            f"{e.original_text} -> {e.translated_text}"
        )
    return lines or ["(history is empty)"]


def _request_wait_sec(args: Any) -> float:
    return (
        float(args.translate_timeout_sec)
        + float(args.model_timeout_sec)
        + float(args.fallback_delay_sec)
        + 5.0
    )


def _run_once(services: AppServices, text: str, wait_sec: float, out: Callable[[str], None]) -> int:
    seq = services.sequencer
    seq.on_input_changed(text)
    seq.translate_now()
    outcome = seq.wait(wait_sec)
    out(render_outcome(outcome) or "Error: translation did not finish in time")
    return 0 if isinstance(outcome, Success) else 1


def _run_speech_once(services: AppServices, args: Any, out: Callable[[str], None]) -> int:
    seq = services.sequencer
    finished = threading.Event()

    def _on_outcome(outcome: TranslationOutcome) -> None:
        if isinstance(outcome, (Success, Error)):
            finished.set()

    def _on_speech(outcome: SpeechOutcome) -> None:
        line = render_speech(outcome)
        if line:
            out(line)
        if isinstance(outcome, SpeechError):
            finished.set()

    seq.add_listener(_on_outcome)
    seq.add_speech_listener(_on_speech)
    if not seq.start_listening():
        return 1
    # Whisper may need to load its model before the first transcript.
    finished.wait(float(args.max_listen_sec) + 60.0 + _request_wait_sec(args))
    if not isinstance(seq.speech_outcome, SpeechSuccess):
        return 1
    outcome = seq.outcome
    out(render_outcome(outcome))
    return 0 if isinstance(outcome, Success) else 1


def _run_repl(services: AppServices, args: Any, stdin: TextIO, out: Callable[[str], None]) -> int:
    seq = services.sequencer
    listing: list[HistoryEntry] = []

    def _on_outcome(outcome: TranslationOutcome) -> None:
        if isinstance(outcome, Loading) and not args.print_console:
            return
        line = render_outcome(outcome)
        if line:
            out(line)

    def _on_speech(outcome: SpeechOutcome) -> None:
        line = render_speech(outcome)
        if line and args.print_console:
            out(line)

    def _history_item(arg: str) -> HistoryEntry | None:
        try:
            return listing[int(arg) - 1]
        except (ValueError, IndexError):
            out("Run :history or :search first, then give an item number.")
            return None

    seq.add_listener(_on_outcome)
    seq.add_speech_listener(_on_speech)
    out(f"text2text ready ({seq.direction.display_name}). Type :help for commands.")

    wait_sec = _request_wait_sec(args)
    for raw in stdin:
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        if not line.startswith(":"):
            seq.on_input_changed(line)
            seq.translate_now()
            seq.wait(wait_sec)
            continue

        cmd, _, rest = line[1:].partition(" ")
        cmd = cmd.lower()
        rest = rest.strip()
        if cmd in ("quit", "exit", "q"):
            break
        elif cmd == "help":
            out(HELP)
        elif cmd == "dir":
            try:
                direction = TranslationDirection.parse(rest)
            except ValueError as e:
                out(str(e))
                continue
            out(f"Direction: {direction.display_name}")
            if seq.on_direction_changed(direction) is not None:
                seq.wait(wait_sec)
        elif cmd == "swap":
            direction = seq.direction.reversed()
            out(f"Direction: {direction.display_name}")
            if seq.on_direction_changed(direction) is not None:
                seq.wait(wait_sec)
        elif cmd == "speak":
            seq.start_listening()
        elif cmd == "stop":
            seq.stop_listening()
        elif cmd in ("history", "search"):
            listing = services.history.search(rest if cmd == "search" else "")
            for item in render_history(listing):
                out(item)
        elif cmd == "pick":
            entry = _history_item(rest)
            if entry is not None:
                out(f"{entry.direction.display_name}: {entry.original_text}")
                seq.select_from_history(entry)
        elif cmd == "remove":
            entry = _history_item(rest)
            if entry is not None and services.history.remove(entry.id):
                listing = [e for e in listing if e.id != entry.id]
                out("Removed.")
        elif cmd == "clear":
            seq.clear()
        elif cmd == "clear-history":
            services.history.clear()
            listing = []
            out("History cleared.")
        elif cmd == "stats":
            total, expired = services.orchestrator.cache_stats()
            out(f"Cache entries: {total} (expired: {expired}), engine handles: {len(services.pool)}")
        else:
            out(f"Unknown command :{cmd}. Type :help.")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(level=args.log_level)
    logger.info(
        "app_start",
        extra={"argv": argv or [], "translator": str(args.translator), "direction": str(args.direction)},
    )

    services: AppServices | None = None
    try:
        if args.list_devices:
            print(SoundDeviceMicSource.list_devices())
            return 0
        if args.save_config:
            saved = save_user_config(config_from_args(args), config_path=args.config)
            logger.info("config_saved", extra={"path": str(saved)})
            print(f"Saved settings to {saved}")
            return 0

        services = build_services(args)
        if args.history is not None:
            for line in render_history(services.history.search(args.history)):
                print(line)
            return 0

        if args.preload:
            for direction, kind in services.orchestrator.preload().items():
                status = "ready" if kind is None else kind.message
                print(f"{direction.display_name}: {status}")

        if args.text is not None:
            return _run_once(services, args.text, _request_wait_sec(args), print)
        if args.speak:
            return _run_speech_once(services, args, print)
        return _run_repl(services, args, sys.stdin, print)
    except KeyboardInterrupt:
        logger.info("app_interrupted")
        return 130
    except Exception:
        detail = traceback.format_exc()
        logger.exception("app_crash")
        summary = summarize_exception(detail)
        print(f"Error: {summary}", file=sys.stderr)
        print(f"Hint: {hint_for_exception(summary)}", file=sys.stderr)
        print(f"Logs: {log_path}", file=sys.stderr)
        return 1
    finally:
        if services is not None:
            services.close()
        logger.info("app_quit")


if __name__ == "__main__":
    raise SystemExit(main())
