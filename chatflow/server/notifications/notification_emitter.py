"""
NotificationEmitter: fan-out of user-facing notifications to registered
listeners (the Socket.IO bridge, loggers, tests ...).

The core never calls this; the session state fires notifications after it has
run a validator.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List


logger = logging.getLogger(__name__)


class NotificationEmitter:
    def __init__(self) -> None:
        self._listeners: List[Callable[[Dict[str, Any]], None]] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def on_notification(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Register a callback that receives every emitted notification."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    def fire(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Stamp the payload with a millisecond timestamp and broadcast it."""
        if not payload.get("ts"):
            payload["ts"] = _now_ms()
        for cb in list(self._listeners):
            try:
                cb(payload)
            except Exception:
                # listener failures never reach the caller
                logger.exception("Notification listener %r failed", cb)
        return payload


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

global_notifier = NotificationEmitter()


# ---------------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------------

def _now_ms() -> int:
    return int(time.time() * 1000)
