from __future__ import annotations
import os
from .base import TranslationEngine
from .argos import ArgosEngine
from .phrasebook import PhrasebookEngine

def get_engine(provider: str | None = None, *, auto_install: bool = True) -> TranslationEngine:
    provider = (provider or os.getenv("TEXT2TEXT_TRANSLATOR", "argos")).lower().strip()

    if provider == "argos":
        return ArgosEngine(auto_install=auto_install)
    if provider in ("phrasebook", "stub"):
        # Offline mode: the fallback phrase table doubles as the primary engine.
        return PhrasebookEngine()

    raise ValueError(f"Unknown translator provider: {provider}")
