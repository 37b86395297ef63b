from __future__ import annotations

import threading
from array import array

import pytest

from text2text.audio.mic import AudioChunk, MicError
from text2text.audio.vad import EnergyVAD, pcm16_rms
from text2text.contracts import Language, Listening, SpeechError, SpeechSuccess
from text2text.speech import capture as capture_mod
from text2text.speech.capture import MicSpeechCapture


def _chunk(level: int, idx: int = 0) -> AudioChunk:
    pcm = array("h", [level] * 800).tobytes()
    return AudioChunk(pcm16=pcm, sample_rate=16000, channels=1, start_time=idx * 0.25, duration=0.25)


LOUD = 1000
QUIET = 0


class FakeMic:
    def __init__(self, levels=(), *, fail: bool = False, has_device: bool = True) -> None:
        self.levels = list(levels)
        self.fail = fail
        self.has_device = has_device
        self.closed = False

    def has_input_device(self) -> bool:
        return self.has_device

    def chunks(self, stop_event=None):
        try:
            if self.fail:
                raise MicError("device busy")
            for i, level in enumerate(self.levels):
                if stop_event is not None and stop_event.is_set():
                    return
                yield _chunk(level, i)
        finally:
            self.closed = True


class FakeTranscriber:
    def __init__(self, text: str = "bonjour") -> None:
        self.text = text
        self.calls: list[tuple[int, int, int, str]] = []

    def transcribe(self, pcm16, *, sample_rate, channels, language=None):
        self.calls.append((len(pcm16), sample_rate, channels, language))
        return self.text


def _capture(mic: FakeMic, transcriber: FakeTranscriber | None = None, **kwargs) -> MicSpeechCapture:
    return MicSpeechCapture(
        mic=mic,
        vad=EnergyVAD(rms_threshold=250),
        transcriber=transcriber or FakeTranscriber(),
        **kwargs,
    )


def test_pcm16_rms() -> None:
    assert pcm16_rms(b"") == 0.0
    assert pcm16_rms(array("h", [300, -300]).tobytes()) == pytest.approx(300.0)
    assert EnergyVAD(250).is_speech(_chunk(LOUD).pcm16)
    assert not EnergyVAD(250).is_speech(_chunk(QUIET).pcm16)


def test_vad_rejects_negative_threshold() -> None:
    with pytest.raises(ValueError):
        EnergyVAD(-1)


def test_utterance_ends_on_trailing_silence() -> None:
    mic = FakeMic([QUIET, LOUD, LOUD, QUIET, QUIET, LOUD])
    tr = FakeTranscriber("  hello there ")
    events = list(_capture(mic, tr).listen(Language.ENGLISH, threading.Event()))

    assert events == [Listening(), SpeechSuccess("hello there")]
    # Only the two speech chunks are transcribed, in the source language.
    assert tr.calls == [(3200, 16000, 1, "en")]
    assert mic.closed


def test_utterance_stops_at_max_listen() -> None:
    mic = FakeMic([LOUD] * 100)
    tr = FakeTranscriber()
    events = list(_capture(mic, tr, max_listen_sec=1.0).listen(Language.FRENCH, threading.Event()))
    assert events[-1] == SpeechSuccess("bonjour")
    assert tr.calls[0][0] == 4 * 1600
    assert tr.calls[0][3] == "fr"


def test_no_speech_detected() -> None:
    events = list(_capture(FakeMic([QUIET] * 5)).listen(Language.ENGLISH, threading.Event()))
    assert events == [Listening(), SpeechError("No speech input detected")]


def test_blank_transcript_is_no_match() -> None:
    mic = FakeMic([LOUD, QUIET, QUIET])
    events = list(_capture(mic, FakeTranscriber("   ")).listen(Language.ENGLISH, threading.Event()))
    assert events == [Listening(), SpeechError("No speech recognized")]


def test_mic_failure_is_reported() -> None:
    events = list(_capture(FakeMic(fail=True)).listen(Language.ENGLISH, threading.Event()))
    assert events == [Listening(), SpeechError("Audio recording error")]


def test_stopped_session_yields_nothing_after_listening() -> None:
    stop = threading.Event()
    stop.set()
    tr = FakeTranscriber()
    events = list(_capture(FakeMic([LOUD, QUIET, QUIET]), tr).listen(Language.ENGLISH, stop))
    assert events == [Listening()]
    assert tr.calls == []


def test_invalid_settings() -> None:
    with pytest.raises(ValueError):
        _capture(FakeMic(), silence_chunks=0)
    with pytest.raises(ValueError):
        _capture(FakeMic(), max_listen_sec=0)


def test_availability_needs_whisper_and_device(monkeypatch) -> None:
    monkeypatch.setattr(capture_mod.importlib.util, "find_spec", lambda name: object())
    assert _capture(FakeMic()).is_available() is True
    assert _capture(FakeMic(has_device=False)).is_available() is False

    monkeypatch.setattr(capture_mod.importlib.util, "find_spec", lambda name: None)
    assert _capture(FakeMic()).is_available() is False
