from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from text2text.app.config import app_paths
from text2text.asr.whisper_pcm16 import WhisperUtteranceTranscriber
from text2text.audio.mic import SoundDeviceMicSource
from text2text.audio.vad import EnergyVAD
from text2text.contracts import TranslationDirection
from text2text.core.cache import ResultCache
from text2text.core.orchestrator import TranslationOrchestrator
from text2text.core.pool import TranslatorPool
from text2text.core.sequencer import RequestSequencer
from text2text.history.store import HistoryStore
from text2text.nlp.translator.factory import get_engine
from text2text.nlp.translator.phrasebook import PhrasebookTranslator
from text2text.speech.bridge import SpeechBridge
from text2text.speech.capture import MicSpeechCapture


@dataclass(frozen=True)
class AppServices:
    cache: ResultCache
    pool: TranslatorPool
    orchestrator: TranslationOrchestrator
    fallback: Optional[PhrasebookTranslator]
    history: HistoryStore
    speech: SpeechBridge
    sequencer: RequestSequencer

    def close(self) -> None:
        self.sequencer.clear()
        self.orchestrator.cleanup()


def build_speech_bridge(args: Any) -> SpeechBridge:
    mic = SoundDeviceMicSource(
        chunk_seconds=float(args.chunk_sec),
        sample_rate=int(args.sr),
        channels=int(args.channels),
        device=args.device,
    )
    capture = MicSpeechCapture(
        mic=mic,
        vad=EnergyVAD(rms_threshold=float(args.rms_th)),
        transcriber=WhisperUtteranceTranscriber(model_size=str(args.model)),
        silence_chunks=max(1, int(args.silence_chunks)),
        max_listen_sec=max(1.0, float(args.max_listen_sec)),
    )
    return SpeechBridge(capture)


def build_services(args: Any) -> AppServices:
    cache = ResultCache(expiry_sec=float(args.cache_expiry_hours) * 3600.0)
    engine = get_engine(str(args.translator), auto_install=bool(args.auto_install))
    pool = TranslatorPool(engine, cache=cache, model_timeout_sec=float(args.model_timeout_sec))
    orchestrator = TranslationOrchestrator(
        pool,
        cache,
        translate_timeout_sec=float(args.translate_timeout_sec),
    )
    fallback = PhrasebookTranslator(delay_sec=float(args.fallback_delay_sec)) if args.fallback else None
    history = HistoryStore(app_paths().history_path, max_entries=max(1, int(args.history_max)))
    speech = build_speech_bridge(args)
    sequencer = RequestSequencer(
        orchestrator,
        fallback=fallback,
        history=history if args.history_enabled else None,
        speech=speech,
        direction=TranslationDirection.parse(str(args.direction)),
        debounce_sec=max(0, int(args.debounce_ms)) / 1000.0,
    )
    return AppServices(
        cache=cache,
        pool=pool,
        orchestrator=orchestrator,
        fallback=fallback,
        history=history,
        speech=speech,
        sequencer=sequencer,
    )
