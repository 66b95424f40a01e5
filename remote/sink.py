import asyncio
import logging
from dataclasses import asdict
from typing import Any

import httpx

from core.config import TelemetryConfig
from core.types import InteractionRecord, Suggestion

logger = logging.getLogger(__name__)


class TelemetrySink:
    """Fire-and-forget event forwarding.

    emit() never raises and never blocks the caller; delivery failures are
    logged and dropped.
    """

    def __init__(self, config: TelemetryConfig, session_id: str = "", transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self.session_id = session_id
        self._client = httpx.AsyncClient(transport=transport, timeout=config.timeout_s)
        self._pending: set[asyncio.Task] = set()
        self.failures = 0

    def emit(self, event_type: str, payload: dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, dropping %s telemetry", event_type)
            return
        body = {"type": event_type, "sessionId": self.session_id, "payload": payload}
        task = loop.create_task(self._send(body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def interaction(self, record: InteractionRecord) -> None:
        self.emit("interaction", asdict(record))

    def suggestion(self, suggestion: Suggestion) -> None:
        self.emit("suggestion", asdict(suggestion))

    async def _send(self, body: dict[str, Any]) -> None:
        try:
            resp = await self._client.post(self.config.url, json=body)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            self.failures += 1
            logger.warning("Telemetry delivery failed: %s: %s", type(e).__name__, e)

    async def flush(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*self._pending, return_exceptions=True)
        await self._client.aclose()
