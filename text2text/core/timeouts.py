from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional, TypeVar

from text2text.core.errors import CallTimeout, RequestCancelled

T = TypeVar("T")


def raise_if_cancelled(cancel: Optional[threading.Event], what: str = "request") -> None:
    if cancel is not None and cancel.is_set():
        raise RequestCancelled(what)


def call_with_timeout(
    fn: Callable[[], T],
    timeout: float,
    *,
    cancel: Optional[threading.Event] = None,
    name: str = "text2text-call",
    poll_sec: float = 0.05,
) -> T:
    """
    Run fn on a daemon thread and wait at most `timeout` seconds for it.
    A worker that times out or is cancelled is abandoned; its result is discarded.
    """
    raise_if_cancelled(cancel, name)
    done = threading.Event()
    box: dict[str, Any] = {}

    def _target() -> None:
        try:
            box["value"] = fn()
        except Exception as e:  # handed back to the waiting caller
            box["error"] = e
        finally:
            done.set()

    threading.Thread(target=_target, name=name, daemon=True).start()

    deadline = time.monotonic() + max(0.0, float(timeout))
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise CallTimeout(f"{name} timed out after {timeout:.1f}s")
        if done.wait(min(poll_sec, remaining)):
            break
        # A call that finished in the meantime wins over a late cancel.
        if not done.is_set():
            raise_if_cancelled(cancel, name)

    if "error" in box:
        raise box["error"]
    return box["value"]
