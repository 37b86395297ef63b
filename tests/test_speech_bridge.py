from __future__ import annotations

import threading

from text2text.contracts import Language, Listening, SpeechError, SpeechSuccess
from text2text.speech.bridge import SpeechBridge
from text2text.speech.capture import SpeechCapture


class ScriptedCapture(SpeechCapture):
    def __init__(self, events=(), *, available: bool = True, hold: threading.Event | None = None) -> None:
        self.events = list(events)
        self.available = available
        self.hold = hold
        self.languages: list[Language] = []

    def is_available(self) -> bool:
        return self.available

    def listen(self, language, stop_event):
        self.languages.append(language)
        yield Listening()
        if self.hold is not None:
            self.hold.wait(5)
        for event in self.events:
            yield event


class BrokenCapture(SpeechCapture):
    def is_available(self) -> bool:
        raise RuntimeError("no audio backend")

    def listen(self, language, stop_event):
        yield Listening()
        raise RuntimeError("decoder crashed")


def test_events_are_forwarded_until_terminal() -> None:
    seen: list = []
    capture = ScriptedCapture([SpeechSuccess("hello"), SpeechSuccess("ignored")])
    bridge = SpeechBridge(capture)
    bridge.start(Language.ENGLISH, seen.append)
    bridge.join(2.0)
    assert seen == [Listening(), SpeechSuccess("hello")]
    assert capture.languages == [Language.ENGLISH]


def test_stop_silences_late_events() -> None:
    hold = threading.Event()
    seen: list = []
    bridge = SpeechBridge(ScriptedCapture([SpeechSuccess("late")], hold=hold))
    bridge.start(Language.FRENCH, seen.append)
    bridge.stop()
    hold.set()
    bridge.join(2.0)
    assert SpeechSuccess("late") not in seen


def test_new_session_replaces_old_one() -> None:
    hold = threading.Event()
    first: list = []
    second: list = []
    bridge = SpeechBridge(ScriptedCapture([SpeechSuccess("x")], hold=hold))
    s1 = bridge.start(Language.ENGLISH, first.append)
    s2 = bridge.start(Language.ENGLISH, second.append)
    hold.set()
    bridge.join(2.0)
    assert s2 == s1 + 1
    assert SpeechSuccess("x") in second
    assert SpeechSuccess("x") not in first


def test_capture_crash_becomes_speech_error() -> None:
    seen: list = []
    bridge = SpeechBridge(BrokenCapture())
    assert bridge.is_available() is False
    bridge.start(Language.ENGLISH, seen.append)
    bridge.join(2.0)
    assert seen == [Listening(), SpeechError("Speech recognition failed")]


def test_availability_is_delegated() -> None:
    assert SpeechBridge(ScriptedCapture(available=True)).is_available() is True
    assert SpeechBridge(ScriptedCapture(available=False)).is_available() is False
