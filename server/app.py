from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from core.config import Config, load_config
from core.logging import setup_logging
from core.session import ActivitySession
from remote import create_remote, create_sink
from remote.analysis import RemoteAnalysisClient
from server.pointer_handler import PointerHandler

# Global state, initialized on startup. Sessions are per connection.
config: Config | None = None
remote: RemoteAnalysisClient | None = None
sessions: dict[str, ActivitySession] = {}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    global config, remote

    config = load_config()
    setup_logging(config.logging)
    remote = create_remote(config)

    yield

    # Cleanup
    for session in list(sessions.values()):
        await session.stop()
    sessions.clear()
    remote = None
    config = None


app = FastAPI(title="Tactiva", lifespan=lifespan)


@app.get("/health")
async def health() -> dict[str, Any]:
    remote_health: dict[str, Any] = await remote.health() if remote else {"status": "disabled"}
    return {
        "status": "ok" if config else "not initialized",
        "remote": remote_health,
        "sensitivity": config.sensitivity.level.value if config else None,
        "active_sessions": len(sessions),
    }


@app.websocket("/ws/session")
async def websocket_session(ws: WebSocket) -> None:
    await ws.accept()
    if not config:
        await ws.close(code=1011, reason="Server not initialized")
        return
    session = ActivitySession(config, remote=remote)
    session.sink = create_sink(config, session.session_id)
    sessions[session.session_id] = session
    handler = PointerHandler(ws, session)
    try:
        await handler.run()
    except WebSocketDisconnect:
        pass
    finally:
        sessions.pop(session.session_id, None)
        await session.stop()
