from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Any

from text2text.app.logging_setup import log_event
from text2text.contracts import HistoryEntry, TranslationDirection

MAX_HISTORY_SIZE = 100

logger = logging.getLogger(__name__)


def _entry_to_json(entry: HistoryEntry) -> dict[str, Any]:
    payload = asdict(entry)
    payload["direction"] = entry.direction.name
    return payload


def _entry_from_json(payload: dict[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        id=str(payload["id"]),
        original_text=str(payload["original_text"]),
        translated_text=str(payload["translated_text"]),
        direction=TranslationDirection.parse(str(payload["direction"])),
        timestamp=float(payload["timestamp"]),
        is_from_speech=bool(payload.get("is_from_speech", False)),
    )


class HistoryStore:
    """
    Most-recent-first translation history kept as a JSON list on disk.
    One entry per (original text ignoring case, direction).
    """

    def __init__(self, path: Path, max_entries: int = MAX_HISTORY_SIZE) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self.path = Path(path)
        self.max_entries = int(max_entries)
        self._lock = threading.Lock()

    def _read(self) -> list[HistoryEntry]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8-sig") as f:
                loaded = json.load(f)
            if not isinstance(loaded, list):
                raise ValueError("history must be a JSON list")
            return [_entry_from_json(item) for item in loaded]
        except (OSError, ValueError, KeyError, TypeError) as e:
            log_event(logger, logging.WARNING, "history_unreadable", path=str(self.path), detail=str(e))
            return []

    def _write(self, entries: list[HistoryEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump([_entry_to_json(e) for e in entries], f, ensure_ascii=False, indent=2)
            f.write("\n")
        tmp.replace(self.path)

    def add(
        self,
        original_text: str,
        translated_text: str,
        direction: TranslationDirection,
        is_from_speech: bool = False,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=uuid.uuid4().hex,
            original_text=original_text,
            translated_text=translated_text,
            direction=direction,
            timestamp=time.time(),
            is_from_speech=is_from_speech,
        )
        needle = original_text.casefold()
        with self._lock:
            entries = [
                e
                for e in self._read()
                if not (e.original_text.casefold() == needle and e.direction is direction)
            ]
            entries.insert(0, entry)
            del entries[self.max_entries:]
            self._write(entries)
        log_event(
            logger,
            logging.DEBUG,
            "history_added",
            direction=direction.code,
            from_speech=is_from_speech,
            size=len(entries),
        )
        return entry

    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            return self._read()

    def search(self, query: str) -> list[HistoryEntry]:
        q = (query or "").strip().casefold()
        items = self.entries()
        if not q:
            return items
        return [
            e
            for e in items
            if q in e.original_text.casefold() or q in e.translated_text.casefold()
        ]

    def get(self, entry_id: str) -> HistoryEntry | None:
        for e in self.entries():
            if e.id == entry_id:
                return e
        return None

    def remove(self, entry_id: str) -> bool:
        with self._lock:
            entries = self._read()
            kept = [e for e in entries if e.id != entry_id]
            if len(kept) == len(entries):
                return False
            self._write(kept)
        return True

    def clear(self) -> None:
        with self._lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
        log_event(logger, logging.INFO, "history_cleared", path=str(self.path))
