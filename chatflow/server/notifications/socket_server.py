"""
Socket.IO server: pushes notifications to the browser client.

Uses python-socketio in ASGI mode so it can wrap FastAPI.
`create_socket_app(fastapi_app)` returns the composite ASGI application to
pass to uvicorn.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Set

import socketio

from .notification_emitter import global_notifier


logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Socket.IO instance (async, ASGI mode)
# ---------------------------------------------------------------------------

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*",
    logger=False,
    engineio_logger=False,
)


# ---------------------------------------------------------------------------
# Notification fan-out: wire global_notifier → Socket.IO emit
# ---------------------------------------------------------------------------

# emit tasks in flight, held until they finish
_pending: Set[asyncio.Task] = set()


def _on_notification(event: Dict[str, Any]) -> None:
    """
    Called synchronously by NotificationEmitter.fire().
    Schedules an async emit when a loop is running (always the case under uvicorn).
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running event loop, notification %s not pushed", event.get("title"))
        return
    task = loop.create_task(sio.emit("notification", event))
    _pending.add(task)
    task.add_done_callback(_emit_done)


def _emit_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error("Pushing notification failed", exc_info=task.exception())


global_notifier.on_notification(_on_notification)


# ---------------------------------------------------------------------------
# Socket.IO lifecycle events
# ---------------------------------------------------------------------------

@sio.event
async def connect(sid: str, environ: dict) -> None:  # noqa: D401
    logger.debug("Client %s connected", sid)


@sio.event
async def disconnect(sid: str) -> None:
    logger.debug("Client %s disconnected", sid)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_socket_app(fastapi_app: Any) -> socketio.ASGIApp:
    """Wrap *fastapi_app* inside a Socket.IO ASGI application."""
    return socketio.ASGIApp(sio, other_asgi_app=fastapi_app)
