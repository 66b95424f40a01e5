import json
import logging
from dataclasses import asdict
from typing import Any

from fastapi import WebSocket

from core.session import ActivitySession
from core.types import FeedbackEvent, GestureType, InteractiveElement, PerformanceSample, Point, Size, Suggestion

logger = logging.getLogger(__name__)


def parse_element(data: dict[str, Any]) -> InteractiveElement:
    pos = data["position"]
    size = data["size"]
    return InteractiveElement(
        id=str(data["id"]),
        position=Point(float(pos["x"]), float(pos["y"])),
        size=Size(float(size["w"]), float(size["h"])),
        active=bool(data.get("active", True)),
        visible=bool(data.get("visible", True)),
    )


class PointerHandler:
    """WebSocket protocol handler: pointer events in, feedback and suggestions out."""

    def __init__(self, ws: WebSocket, session: ActivitySession):
        self.ws = ws
        self.session = session
        self._setup_callbacks()

    def _setup_callbacks(self) -> None:
        """Wire session callbacks to WebSocket sends."""
        self.session.on_feedback = self._on_feedback
        self.session.on_suggestion = self._on_suggestion

    async def _on_feedback(self, event: FeedbackEvent) -> None:
        await self.ws.send_json({
            "type": "feedback",
            "x": event.position.x,
            "y": event.position.y,
            "precision": round(event.precision, 3),
            "gesture": event.gesture_type.value,
            "target": event.target_element_id,
        })

    async def _on_suggestion(self, suggestion: Suggestion) -> None:
        await self.ws.send_json({"type": "suggestion", **asdict(suggestion)})

    async def run(self) -> None:
        """Main loop: receive messages from the WebSocket."""
        while True:
            message = await self.ws.receive()

            if message["type"] == "websocket.receive":
                if "text" in message and message["text"]:
                    try:
                        data: dict[str, Any] = json.loads(message["text"])
                        await self._handle_message(data)
                    except (ValueError, KeyError, TypeError) as e:
                        logger.debug("Rejected malformed message: %s", e)
                        await self.ws.send_json({"type": "error", "error": f"{type(e).__name__}: {e}"})

            elif message["type"] == "websocket.disconnect":
                break

    async def _handle_message(self, data: dict[str, Any]) -> None:
        msg_type = data.get("type")
        session = self.session

        if msg_type == "start":
            session.start()
            await self._send_state()

        elif msg_type == "elements":
            session.set_elements([parse_element(e) for e in data["elements"]])

        elif msg_type == "pointer":
            phase = data["phase"]
            touches = int(data.get("touches", 1))
            if phase == "down":
                session.pointer_down(float(data["x"]), float(data["y"]), touches)
            elif phase == "move":
                session.pointer_move(float(data["dx"]), float(data["dy"]), touches)
            elif phase == "up":
                await session.pointer_up(float(data["x"]), float(data["y"]))
            else:
                raise ValueError(f"unknown pointer phase {phase!r}")

        elif msg_type == "touch":
            await session.record_touch(
                float(data["x"]),
                float(data["y"]),
                GestureType(data.get("gesture", GestureType.TAP)),
                data.get("target"),
            )

        elif msg_type == "pause":
            session.pause()
            await self._send_state()

        elif msg_type == "resume":
            session.resume()
            await self._send_state()

        elif msg_type == "difficulty":
            sample = PerformanceSample(
                success_rate=float(data["successRate"]),
                mean_time_seconds=float(data.get("meanTimeSeconds", 0.0)),
                mean_attempts=float(data["meanAttempts"]),
            )
            action = session.recommend_difficulty(sample)
            await self.ws.send_json({"type": "difficulty", "action": action.value})

        else:
            raise ValueError(f"unknown message type {msg_type!r}")

    async def _send_state(self) -> None:
        await self.ws.send_json({"type": "state", "session": self.session.state.value})
