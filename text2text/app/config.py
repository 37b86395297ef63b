from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir, user_data_dir

from text2text.contracts import TranslationDirection

APP_NAME = "text2text"

DEFAULTS: dict[str, Any] = {
    "translator": "argos",
    "direction": "en-fr",
    "debounce_ms": 500,
    "translate_timeout_sec": 10.0,
    "model_timeout_sec": 30.0,
    "cache_expiry_hours": 24.0,
    "fallback": True,
    "fallback_delay_sec": 1.0,
    "history": True,
    "history_max": 100,
    "auto_install": True,
    "preload": False,
    "model": "tiny",
    "device": None,
    "sr": 16000,
    "channels": 1,
    "chunk_sec": 0.5,
    "rms_th": 250.0,
    "silence_chunks": 2,
    "max_listen_sec": 10.0,
    "print_console": True,
    "log_level": "INFO",
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())
DIRECTION_CHOICES: tuple[str, ...] = tuple(d.code for d in TranslationDirection)


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path
    data_dir: Path
    history_path: Path


def default_asset_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "assets" / "config" / "default.json"


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir(APP_NAME, APP_NAME))
    data_dir = Path(user_data_dir(APP_NAME, APP_NAME))
    return AppPaths(
        config_dir=config_dir,
        config_path=config_dir / "config.json",
        data_dir=data_dir,
        history_path=data_dir / "history.json",
    )


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: payload[key] for key in CONFIG_KEYS if key in payload}


def load_default_config() -> dict[str, Any]:
    path = default_asset_config_path()
    out = copy.deepcopy(DEFAULTS)
    if not path.exists():
        return out
    out.update(_known_only(_load_json_dict(path)))
    return out


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    merged = dict(defaults)
    merged.update(_known_only(_load_json_dict(chosen)))
    return merged, chosen


def save_user_config(values: dict[str, Any], config_path: str | None = None) -> Path:
    payload = _known_only(values)
    defaults = load_default_config()
    if config_path:
        path = Path(config_path)
        existing = _known_only(_load_json_dict(path)) if path.exists() else {}
    else:
        path = ensure_user_config_exists(defaults)
        existing = _known_only(_load_json_dict(path))
    merged = dict(defaults)
    merged.update(existing)
    merged.update(payload)
    _write_json_dict(path, _known_only(merged))
    return path


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or load_default_config())
    return paths.config_path


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="text2text", description="English/French text and speech translator")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--text", default=None, help="translate this text once and exit")
    p.add_argument("--speak", action="store_true", help="listen once on the microphone, translate, exit")
    p.add_argument(
        "--history",
        nargs="?",
        const="",
        default=None,
        metavar="QUERY",
        help="print stored history (optionally filtered) and exit",
    )
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument(
        "--save-config",
        action="store_true",
        help="write the effective settings (config plus flags) to the config file and exit",
    )
    p.add_argument(
        "--preload",
        action=argparse.BooleanOptionalAction,
        default=defaults["preload"],
        help="download translation models for every direction at startup",
    )
    p.add_argument("--translator", default=defaults["translator"], help="argos | phrasebook")
    p.add_argument(
        "--direction",
        default=defaults["direction"],
        choices=DIRECTION_CHOICES,
        help="translation direction",
    )
    p.add_argument(
        "--debounce-ms",
        type=int,
        default=defaults["debounce_ms"],
        help="quiet period before translating typed input",
    )
    p.add_argument(
        "--translate-timeout-sec",
        type=float,
        default=defaults["translate_timeout_sec"],
        help="upper bound for one engine translate call",
    )
    p.add_argument(
        "--model-timeout-sec",
        type=float,
        default=defaults["model_timeout_sec"],
        help="upper bound for the model download/readiness step",
    )
    p.add_argument(
        "--cache-expiry-hours",
        type=float,
        default=defaults["cache_expiry_hours"],
        help="how long cached translations stay valid",
    )
    p.add_argument(
        "--fallback",
        action=argparse.BooleanOptionalAction,
        default=defaults["fallback"],
        help="use the phrasebook translator when the engine fails",
    )
    p.add_argument(
        "--fallback-delay-sec",
        type=float,
        default=defaults["fallback_delay_sec"],
        help="artificial delay of the phrasebook fallback",
    )
    p.add_argument(
        "--save-history",
        dest="history_enabled",
        action=argparse.BooleanOptionalAction,
        default=defaults["history"],
        help="record successful translations in history",
    )
    p.add_argument("--history-max", type=int, default=defaults["history_max"], help="history entries kept")
    p.add_argument(
        "--auto-install",
        action=argparse.BooleanOptionalAction,
        default=defaults["auto_install"],
        help="download missing Argos packages on demand",
    )
    p.add_argument("--model", default=defaults["model"], help="faster-whisper model size")
    p.add_argument("--device", type=int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument("--sr", type=int, default=defaults["sr"], help="sample rate (Hz)")
    p.add_argument("--channels", type=int, default=defaults["channels"], help="input channels")
    p.add_argument("--chunk-sec", type=float, default=defaults["chunk_sec"], help="mic chunk size in seconds")
    p.add_argument("--rms-th", type=float, default=defaults["rms_th"], help="RMS threshold for speech VAD")
    p.add_argument(
        "--silence-chunks",
        type=int,
        default=defaults["silence_chunks"],
        help="end the utterance after this many non-speech chunks",
    )
    p.add_argument(
        "--max-listen-sec",
        type=float,
        default=defaults["max_listen_sec"],
        help="give up listening after this many seconds",
    )
    p.add_argument(
        "--print-console",
        action=argparse.BooleanOptionalAction,
        default=defaults["print_console"],
        help="print loading and speech states to the console",
    )
    p.add_argument(
        "--log-level",
        default=defaults["log_level"],
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="file log level",
    )
    return p


def config_from_args(args: argparse.Namespace) -> dict[str, Any]:
    values = {key: getattr(args, key) for key in CONFIG_KEYS if hasattr(args, key)}
    # --save-history stores into the "history" key; args.history is the CLI query.
    values["history"] = bool(args.history_enabled)
    return values


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    return parser.parse_args(argv)
