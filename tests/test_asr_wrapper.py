import os
import wave
from array import array
from unittest.mock import MagicMock

from text2text.asr.whisper_pcm16 import WhisperUtteranceTranscriber


def test_transcribe_joins_segments_and_passes_language(monkeypatch):
    fake_model = MagicMock()
    seen = {}

    def fake_transcribe(path, **kwargs):
        with wave.open(path, "rb") as wf:
            seen["rate"] = wf.getframerate()
            seen["channels"] = wf.getnchannels()
            seen["frames"] = wf.getnframes()
        seen["path"] = path
        seen.update(kwargs)
        segs = [MagicMock(text=" Bonjour "), MagicMock(text=""), MagicMock(text="tout le monde.")]
        return segs, MagicMock()

    fake_model.transcribe.side_effect = fake_transcribe

    tr = WhisperUtteranceTranscriber(model_size="tiny", beam_size=2)

    # Replace _get_model to avoid loading real model
    monkeypatch.setattr(tr, "_get_model", lambda: fake_model)

    pcm = array("h", [100] * 1600).tobytes()
    out = tr.transcribe(pcm, sample_rate=16000, channels=1, language="fr")

    assert out == "Bonjour tout le monde."
    assert seen["rate"] == 16000
    assert seen["channels"] == 1
    assert seen["frames"] == 1600
    assert seen["language"] == "fr"
    assert seen["beam_size"] == 2
    assert not os.path.exists(seen["path"])


def test_empty_audio_skips_model(monkeypatch):
    tr = WhisperUtteranceTranscriber()
    monkeypatch.setattr(tr, "_get_model", lambda: (_ for _ in ()).throw(AssertionError("loaded")))
    assert tr.transcribe(b"", sample_rate=16000, channels=1) == ""
