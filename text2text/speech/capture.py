from __future__ import annotations

import importlib.util
import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterator, Optional, Protocol

from text2text.app.logging_setup import log_event
from text2text.asr.whisper_pcm16 import WhisperUtteranceTranscriber
from text2text.audio.mic import AudioChunk, MicError
from text2text.audio.vad import EnergyVAD
from text2text.contracts import Language, Listening, SpeechError, SpeechOutcome, SpeechSuccess

logger = logging.getLogger(__name__)


class SpeechCapture(ABC):
    """One recognition session per listen() call: Listening, then one terminal event."""

    @abstractmethod
    def is_available(self) -> bool: ...

    @abstractmethod
    def listen(self, language: Language, stop_event: threading.Event) -> Iterator[SpeechOutcome]: ...


class ChunkSource(Protocol):
    def chunks(self, stop_event: Optional[threading.Event] = None) -> Iterator[AudioChunk]:
        ...

    def has_input_device(self) -> bool:
        ...


class MicSpeechCapture(SpeechCapture):
    def __init__(
        self,
        *,
        mic: ChunkSource,
        vad: EnergyVAD,
        transcriber: WhisperUtteranceTranscriber,
        silence_chunks: int = 2,
        max_listen_sec: float = 10.0,
    ) -> None:
        if silence_chunks <= 0:
            raise ValueError("silence_chunks must be > 0")
        if max_listen_sec <= 0:
            raise ValueError("max_listen_sec must be > 0")
        self.mic = mic
        self.vad = vad
        self.transcriber = transcriber
        self.silence_chunks = int(silence_chunks)
        self.max_listen_sec = float(max_listen_sec)

    def is_available(self) -> bool:
        if importlib.util.find_spec("faster_whisper") is None:
            return False
        return self.mic.has_input_device()

    def listen(self, language: Language, stop_event: threading.Event) -> Iterator[SpeechOutcome]:
        yield Listening()

        parts: list[bytes] = []
        sample_rate = 0
        channels = 0
        trailing_silence = 0
        heard_sec = 0.0
        reason = "max_listen_sec"

        chunks = self.mic.chunks(stop_event)
        try:
            for chunk in chunks:
                if stop_event.is_set():
                    return
                heard_sec += chunk.duration
                if self.vad.is_speech(chunk.pcm16):
                    if not parts:
                        sample_rate = int(chunk.sample_rate)
                        channels = int(chunk.channels)
                    parts.append(chunk.pcm16)
                    trailing_silence = 0
                elif parts:
                    trailing_silence += 1
                    if trailing_silence >= self.silence_chunks:
                        reason = "silence"
                        break
                if heard_sec >= self.max_listen_sec:
                    break
        except MicError:
            logger.exception("mic_failed")
            yield SpeechError("Audio recording error")
            return
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()

        if stop_event.is_set():
            return
        if not parts:
            yield SpeechError("No speech input detected")
            return

        pcm16 = b"".join(parts)
        text = self.transcriber.transcribe(
            pcm16,
            sample_rate=sample_rate,
            channels=channels,
            language=language.code,
        )
        log_event(
            logger,
            logging.INFO,
            "speech_utterance",
            reason=reason,
            language=language.code,
            bytes=len(pcm16),
            chars=len(text),
        )
        if stop_event.is_set():
            return
        if not text.strip():
            yield SpeechError("No speech recognized")
            return
        yield SpeechSuccess(text.strip())
