import asyncio
import json
import sys

import uvicorn

from core.config import load_config
from core.logging import setup_logging
from core.session import ActivitySession
from core.types import GestureType, Suggestion
from remote import create_remote
from server.pointer_handler import parse_element


async def replay(path: str) -> None:
    """Replay a recorded pointer stream (one JSON message per line) offline.

    Lines carry a "t" timestamp in ms; evaluations use the recorded clock.
    """
    config = load_config()
    setup_logging(config.logging)
    recorded_t = 0.0
    session = ActivitySession(config, remote=create_remote(config), clock=lambda: recorded_t)

    async def show(suggestion: Suggestion) -> None:
        print(f"[{suggestion.created_at_ms / 1000:8.1f}s] {suggestion.kind} ({suggestion.priority}): {suggestion.reasoning}")

    session.on_suggestion = show

    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            msg = json.loads(line)
            t = recorded_t = float(msg["t"])
            msg_type = msg["type"]
            if msg_type == "start":
                session.start(t)
            elif msg_type == "elements":
                session.set_elements([parse_element(e) for e in msg["elements"]])
            elif msg_type == "pointer" and msg["phase"] == "down":
                session.pointer_down(msg["x"], msg["y"], msg.get("touches", 1), t_ms=t)
            elif msg_type == "pointer" and msg["phase"] == "move":
                session.pointer_move(msg["dx"], msg["dy"], msg.get("touches", 1), t_ms=t)
            elif msg_type == "pointer" and msg["phase"] == "up":
                await session.pointer_up(msg["x"], msg["y"], t_ms=t)
            elif msg_type == "touch":
                await session.record_touch(
                    msg["x"], msg["y"], GestureType(msg.get("gesture", "tap")), msg.get("target"), t_ms=t
                )
            await session.wait_idle()

    summary = await session.stop()
    print("-" * 40)
    print(f"Accepted: {summary.accepted}  Debounced: {summary.debounced}  Dropped: {summary.dropped}")
    print(f"Suggestions: {summary.suggestions_emitted} emitted, {summary.suggestions_suppressed} suppressed")
    if summary.remote_failures:
        print(f"Remote failures: {summary.remote_failures}")


def server() -> None:
    """Start FastAPI server for presentation clients."""
    config = load_config()
    print(f"Tactiva starting (sensitivity={config.sensitivity.level})")
    print(f"Server: http://{config.server.host}:{config.server.port}")
    uvicorn.run(
        "server.app:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
    )


if __name__ == "__main__":
    if "--replay" in sys.argv:
        asyncio.run(replay(sys.argv[sys.argv.index("--replay") + 1]))
    else:
        server()
