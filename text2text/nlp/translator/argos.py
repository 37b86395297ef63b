from __future__ import annotations

import logging
import threading

from .base import EngineHandle, TranslationEngine
from text2text.app.logging_setup import log_event
from text2text.contracts import TranslationDirection

logger = logging.getLogger(__name__)


class ArgosHandle(EngineHandle):
    def __init__(self, direction: TranslationDirection, auto_install: bool = True) -> None:
        super().__init__(direction)
        self.from_code = direction.source.code
        self.to_code = direction.target.code
        self.auto_install = auto_install
        self._ready = False
        self._closed = False
        self._install_lock = threading.Lock()

    def _pair_installed(self) -> bool:
        import argostranslate.package

        # Both languages may be present through the opposite direction's package.
        return any(
            p.from_code == self.from_code and p.to_code == self.to_code
            for p in argostranslate.package.get_installed_packages()
        )

    def download_model_if_needed(self) -> None:
        if self._ready:
            return
        with self._install_lock:
            if self._ready:
                return
            if not self._pair_installed():
                self._install_package()
            self._ready = True

    def _install_package(self) -> None:
        import argostranslate.package

        if not self.auto_install:
            raise RuntimeError(
                f"Argos model not installed for {self.from_code}->{self.to_code} and auto_install=False"
            )

        log_event(logger, logging.INFO, "argos_package_install", direction=self.direction.code)
        argostranslate.package.update_package_index()
        available = argostranslate.package.get_available_packages()

        pkg = None
        for p in available:
            if p.from_code == self.from_code and p.to_code == self.to_code:
                pkg = p
                break
        if pkg is None:
            raise RuntimeError(f"No Argos package found for {self.from_code}->{self.to_code}")

        path = pkg.download()
        argostranslate.package.install_from_path(path)
        log_event(logger, logging.INFO, "argos_package_installed", direction=self.direction.code)

    def translate(self, text: str) -> str:
        if self._closed:
            raise RuntimeError(f"Argos handle for {self.direction.code} is closed")
        import argostranslate.translate

        return argostranslate.translate.translate(text, self.from_code, self.to_code)

    def close(self) -> None:
        self._closed = True
        self._ready = False


class ArgosEngine(TranslationEngine):
    error_marker = "argostranslate"

    def __init__(self, auto_install: bool = True) -> None:
        self.auto_install = auto_install

    @property
    def name(self) -> str:
        return "argos"

    def create_handle(self, direction: TranslationDirection) -> ArgosHandle:
        return ArgosHandle(direction, auto_install=self.auto_install)
