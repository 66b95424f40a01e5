import os
from collections import Counter
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from core.config import RemoteConfig
from core.types import BehaviorMetrics, GestureType, InteractionRecord, RemoteAnalysis


class RemoteAnalysisError(Exception):
    """The remote collaborator was unreachable or answered with something unusable."""


class AnalysisResponse(BaseModel):
    suggestions: list[str] = []
    frustration_score: float = Field(alias="frustrationScore", ge=0, le=100)
    engagement_score: float = Field(alias="engagementScore", ge=0, le=100)
    confidence: float | None = Field(default=None, ge=0, le=100)


def sample_features(metrics: BehaviorMetrics, records: Sequence[InteractionRecord]) -> dict[str, Any]:
    return {
        "meanPrecision": metrics.mean_precision,
        "interactionsPerSecond": metrics.interactions_per_second,
        "sampleSize": metrics.sample_size,
        "lowPrecisionRun": metrics.low_precision_run,
        "highPrecisionRun": metrics.high_precision_run,
        "precisionTrend": metrics.precision_trend,
        "responseTimeTrend": metrics.response_time_trend,
        "responseTimesMs": [r.response_time_ms for r in records[-20:]],
    }


def dominant_gesture(records: Sequence[InteractionRecord]) -> GestureType:
    if not records:
        return GestureType.TAP
    return Counter(r.gesture_type for r in records).most_common(1)[0][0]


class RemoteAnalysisClient:
    def __init__(self, config: RemoteConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self.url = config.base_url.rstrip("/") + config.endpoint
        token = os.environ.get(config.api_key_env, "")
        self.headers = {"Content-Type": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self._transport = transport

    async def analyze(
        self,
        gesture_type: GestureType,
        features: dict[str, Any],
    ) -> RemoteAnalysis:
        """POST one analysis request. Any failure surfaces as RemoteAnalysisError."""
        payload = {
            "gestureType": gesture_type.value,
            "rawSampleFeatures": features,
            "confidenceThreshold": self.config.min_confidence,
        }
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.config.timeout_s) as client:
                resp = await client.post(self.url, headers=self.headers, json=payload)
                resp.raise_for_status()
                data = AnalysisResponse.model_validate(resp.json())
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            raise RemoteAnalysisError(f"{type(e).__name__}: {e}") from e

        return RemoteAnalysis(
            suggestions=data.suggestions,
            frustration_score=data.frustration_score,
            engagement_score=data.engagement_score,
            confidence=data.confidence,
        )

    def accepts(self, result: RemoteAnalysis) -> bool:
        """Results without a confidence were already filtered by the collaborator."""
        return result.confidence is None or result.confidence >= self.config.min_confidence

    async def health(self) -> dict:
        """Check if the analysis endpoint is reachable."""
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.config.timeout_s) as client:
                await client.get(self.config.base_url)
            return {"status": "ok", "url": self.url}
        except httpx.HTTPError as e:
            return {"status": "error", "error": str(e)}
