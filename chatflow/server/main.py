"""
Python FastAPI + Socket.IO server for the chatbot flow builder.

Start with:
    python -m chatflow.server.main

Or via uvicorn directly:
    uvicorn chatflow.server.main:socket_app --port 3001 --reload

Configuration comes from the environment, optionally loaded from a .env file
at the project root:

    CHATFLOW_HOST          bind address            (default 0.0.0.0)
    CHATFLOW_PORT          bind port               (default 3001)
    CHATFLOW_LOG_LEVEL     logging level name      (default INFO)
    CHATFLOW_CORS_ORIGINS  comma separated origins (default *)
"""
from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

# .env lives at the project root, two levels up from this file
_env_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../..", ".env"))
load_dotenv(_env_path)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatflow.server.notifications.socket_server import create_socket_app
from chatflow.server.routes.flow_routes import router

HOST = os.environ.get("CHATFLOW_HOST", "0.0.0.0")
PORT = int(os.environ.get("CHATFLOW_PORT", "3001"))
LOG_LEVEL = os.environ.get("CHATFLOW_LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.environ.get("CHATFLOW_CORS_ORIGINS", "*").split(",") if o.strip()]

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(title="Chatbot Flow Builder API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Wrap with Socket.IO ASGI layer
# ---------------------------------------------------------------------------

# socket_app is the top-level ASGI app passed to uvicorn.
# Socket.IO connections (notifications) are handled at the root; all other
# requests are forwarded to the inner FastAPI app.
socket_app = create_socket_app(app)

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "chatflow.server.main:socket_app",
        host=HOST,
        port=PORT,
        reload=True,
    )
