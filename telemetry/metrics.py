"""
Behavior metrics over the interaction window.

Frustration and engagement are 0-100 scores built from a few bounded terms so
each stays monotonic in the inputs it depends on:

    frustration = 50 * (1 - basis_precision)
                + 30 * min(low_precision_run / sustained_count, 1)
                + 20 if the low-precision run is sustained

    engagement  = 60 * mean_precision
                + 40 * min(interactions_per_second / overstimulation_rate, 1)

basis_precision is the window mean, or the mean of the trailing low-precision
run once that run is sustained. A late run of misses after a good start then
scores above 85 instead of being diluted by the earlier hits. Without a
sustained run frustration tops out below 80, so the "high" band is only
reached once the run is observed.

Overstimulation is measured on the activity timestamps rather than on the
record window: at a fast pace the window fills up before the sustained
duration has elapsed.
"""
import logging
from collections.abc import Sequence

import numpy as np

from core.config import MetricsConfig
from core.types import BehaviorMetrics, InteractionRecord, Pattern

logger = logging.getLogger(__name__)


def trailing_run(values: Sequence[float], predicate) -> int:
    """Length of the run at the end of values where predicate holds."""
    count = 0
    for value in reversed(values):
        if not predicate(value):
            break
        count += 1
    return count


def linear_trend(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index."""
    if len(values) < 2:
        return 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float)
    slope, _ = np.polyfit(x, y, 1)
    return float(slope)


def sustained_rate_ms(timestamps: Sequence[float], rate_per_s: float, segment_ms: float) -> float:
    """How long, ending at the newest timestamp, the rate has stayed above rate_per_s.

    The window is cut into consecutive segments of segment_ms walking back from
    the newest record; the result is the number of consecutive hot segments
    times segment_ms.
    """
    if not timestamps:
        return 0.0
    ts = np.asarray(timestamps, dtype=float)
    end = ts[-1]
    first = ts[0]
    threshold = rate_per_s * segment_ms / 1000.0
    hot = 0
    while end >= first:
        start = end - segment_ms
        count = int(np.count_nonzero((ts > start) & (ts <= end)))
        if count <= threshold:
            break
        hot += 1
        end = start
    return hot * segment_ms


class BehaviorMetricsCalculator:
    def __init__(self, config: MetricsConfig):
        self.config = config

    def compute(
        self,
        records: Sequence[InteractionRecord],
        activity_timestamps: Sequence[float] | None = None,
    ) -> BehaviorMetrics | None:
        """Derive metrics from a window snapshot; None means insufficient data.

        activity_timestamps, when given, covers a longer span than the window
        and is used for overstimulation. It defaults to the record timestamps.
        """
        cfg = self.config
        sample_size = len(records)
        if sample_size < cfg.minimum_sample_size:
            return None

        precisions = np.fromiter((r.precision for r in records), dtype=float, count=sample_size)
        timestamps = [r.timestamp_ms for r in records]
        mean_precision = float(precisions.mean())

        duration_s = max((timestamps[-1] - timestamps[0]) / 1000.0, 1.0)
        rate = sample_size / duration_s

        low_run = trailing_run(precisions, lambda p: p < cfg.low_precision_threshold)
        high_run = trailing_run(precisions, lambda p: p > cfg.high_precision_threshold)
        sustained_low = low_run >= cfg.sustained_low_precision_count

        basis_precision = float(precisions[-low_run:].mean()) if sustained_low else mean_precision
        frustration = 50.0 * (1.0 - basis_precision)
        frustration += 30.0 * min(low_run / cfg.sustained_low_precision_count, 1.0)
        if sustained_low:
            frustration += 20.0

        engagement = 60.0 * mean_precision + 40.0 * min(rate / cfg.overstimulation_rate_per_s, 1.0)

        overstimulated_ms = sustained_rate_ms(
            timestamps if activity_timestamps is None else activity_timestamps,
            cfg.overstimulation_rate_per_s,
            cfg.overstimulation_segment_ms,
        )

        recent = records[-cfg.trend_window :]
        precision_trend = linear_trend([r.precision for r in recent])
        response_trend = linear_trend([r.response_time_ms for r in recent])
        patterns: list[Pattern] = []
        if len(recent) >= cfg.minimum_sample_size:
            if precision_trend < cfg.accuracy_decline_slope:
                patterns.append(Pattern.ACCURACY_DECLINE)
            if response_trend > cfg.slowing_response_slope_ms:
                patterns.append(Pattern.SLOWING_RESPONSES)

        return BehaviorMetrics(
            mean_precision=mean_precision,
            interactions_per_second=rate,
            frustration_score=min(100.0, max(0.0, frustration)),
            engagement_score=min(100.0, max(0.0, engagement)),
            sample_size=sample_size,
            low_precision_run=low_run,
            high_precision_run=high_run,
            overstimulated_ms=overstimulated_ms,
            overstimulated=overstimulated_ms >= cfg.overstimulation_sustained_ms,
            celebration_streak=high_run >= cfg.celebration_streak_count,
            precision_trend=precision_trend,
            response_time_trend=response_trend,
            patterns=tuple(patterns),
        )
