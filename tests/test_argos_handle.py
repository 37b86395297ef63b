from __future__ import annotations

import sys
import threading
import time
from types import ModuleType, SimpleNamespace

import pytest

from text2text.contracts import TranslationDirection
from text2text.nlp.translator.argos import ArgosEngine

EN_FR = TranslationDirection.ENGLISH_TO_FRENCH
FR_EN = TranslationDirection.FRENCH_TO_ENGLISH


class FakeArgos:
    """In-memory stand-in for argostranslate's package index and installed packages."""

    def __init__(self, installed=(), available=(("en", "fr"), ("fr", "en")), download_sec: float = 0.0) -> None:
        self.installed = [SimpleNamespace(from_code=f, to_code=t) for f, t in installed]
        self.available = list(available)
        self.download_sec = download_sec
        self.installs: list[str] = []
        self.index_updates = 0
        self._lock = threading.Lock()

    def _package(self, from_code: str, to_code: str):
        def _download() -> str:
            time.sleep(self.download_sec)
            return f"{from_code}_{to_code}"

        return SimpleNamespace(from_code=from_code, to_code=to_code, download=_download)

    def update_package_index(self) -> None:
        self.index_updates += 1

    def get_available_packages(self):
        return [self._package(f, t) for f, t in self.available]

    def get_installed_packages(self):
        with self._lock:
            return list(self.installed)

    def install_from_path(self, path: str) -> None:
        from_code, to_code = path.split("_")
        with self._lock:
            self.installs.append(path)
            self.installed.append(SimpleNamespace(from_code=from_code, to_code=to_code))

    def translate(self, text: str, from_code: str, to_code: str) -> str:
        return f"{from_code}>{to_code}:{text}"


@pytest.fixture
def argos(monkeypatch) -> FakeArgos:
    fake = FakeArgos()
    root = ModuleType("argostranslate")
    package = ModuleType("argostranslate.package")
    translate = ModuleType("argostranslate.translate")
    for name in ("update_package_index", "get_available_packages", "get_installed_packages", "install_from_path"):
        setattr(package, name, getattr(fake, name))
    translate.translate = fake.translate
    root.package = package
    root.translate = translate
    monkeypatch.setitem(sys.modules, "argostranslate", root)
    monkeypatch.setitem(sys.modules, "argostranslate.package", package)
    monkeypatch.setitem(sys.modules, "argostranslate.translate", translate)
    return fake


def test_ready_when_pair_installed(argos: FakeArgos) -> None:
    argos.installed = [SimpleNamespace(from_code="en", to_code="fr")]
    handle = ArgosEngine().create_handle(EN_FR)
    handle.download_model_if_needed()
    assert argos.index_updates == 0
    assert argos.installs == []
    assert handle.translate("hello") == "en>fr:hello"


def test_each_direction_installs_its_own_package(argos: FakeArgos) -> None:
    engine = ArgosEngine()
    engine.create_handle(EN_FR).download_model_if_needed()
    # Both languages are now known, but the reverse pair is not.
    engine.create_handle(FR_EN).download_model_if_needed()
    assert argos.installs == ["en_fr", "fr_en"]


def test_concurrent_readiness_installs_once(argos: FakeArgos) -> None:
    argos.download_sec = 0.3
    handle = ArgosEngine().create_handle(EN_FR)
    start = threading.Barrier(3)

    def _worker() -> None:
        start.wait()
        handle.download_model_if_needed()

    threads = [threading.Thread(target=_worker) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert argos.installs == ["en_fr"]
    assert argos.index_updates == 1


def test_missing_model_without_auto_install(argos: FakeArgos) -> None:
    handle = ArgosEngine(auto_install=False).create_handle(EN_FR)
    with pytest.raises(RuntimeError, match="model not installed"):
        handle.download_model_if_needed()
    assert argos.installs == []


def test_no_package_available(argos: FakeArgos) -> None:
    argos.available = [("fr", "en")]
    handle = ArgosEngine().create_handle(EN_FR)
    with pytest.raises(RuntimeError, match="No Argos package found"):
        handle.download_model_if_needed()
    # A failed install leaves the handle retryable.
    argos.available = [("en", "fr")]
    handle.download_model_if_needed()
    assert argos.installs == ["en_fr"]


def test_closed_handle_refuses_work(argos: FakeArgos) -> None:
    handle = ArgosEngine().create_handle(EN_FR)
    handle.close()
    with pytest.raises(RuntimeError, match="closed"):
        handle.translate("hello")
