import logging
import math
from collections import deque
from collections.abc import Sequence

from core.config import RecorderConfig, ScreenConfig
from core.types import GestureType, InteractionRecord, InteractiveElement, Point
from gestures.hit_test import is_eligible

logger = logging.getLogger(__name__)


def touch_precision(position: Point, ideal: Point, max_relevant_distance: float) -> float:
    """Normalized inverse distance to the ideal point, clamped to [0, 1]."""
    distance = math.hypot(position.x - ideal.x, position.y - ideal.y)
    return min(1.0, max(0.0, 1.0 - distance / max_relevant_distance))


class InteractionRecorder:
    """Rolling window of accepted interactions.

    Records are appended in arrival order and evicted oldest-first, either
    when the window is over capacity or when they are older than the max age
    relative to the newest record.
    """

    def __init__(self, config: RecorderConfig, screen: ScreenConfig | None = None):
        self.config = config
        screen = screen or ScreenConfig()
        self.focal_point = Point(screen.width / 2, screen.height / 2)
        self.max_relevant_distance = config.max_relevant_distance_px or screen.width / 2
        self._window: deque[InteractionRecord] = deque(maxlen=config.window_capacity)
        # Age-bounded only, so overstimulation sees the whole sustained span
        self._timestamps: deque[float] = deque()
        self._started_at_ms: float | None = None
        self._last_accepted_ms: float | None = None
        self.accepted = 0
        self.debounced = 0
        self.dropped = 0

    def start(self, t_ms: float) -> None:
        """Mark activity start; the first record's response time counts from here."""
        self._started_at_ms = t_ms

    def ideal_point(
        self,
        position: Point,
        target: InteractiveElement | None,
        candidates: Sequence[InteractiveElement] = (),
    ) -> Point:
        if target is not None:
            return target.center
        centers = [e.center for e in candidates if is_eligible(e)]
        if centers:
            return min(centers, key=lambda c: math.hypot(position.x - c.x, position.y - c.y))
        return self.focal_point

    def record(
        self,
        position: Point,
        gesture_type: GestureType,
        t_ms: float,
        target: InteractiveElement | None = None,
        candidates: Sequence[InteractiveElement] = (),
    ) -> InteractionRecord | None:
        """Materialize and append a record, or return None if it was rejected."""
        if not (math.isfinite(position.x) and math.isfinite(position.y) and math.isfinite(t_ms)):
            self.dropped += 1
            logger.debug("Dropped malformed interaction at (%s, %s) t=%s", position.x, position.y, t_ms)
            return None

        if self._last_accepted_ms is not None and t_ms - self._last_accepted_ms < self.config.debounce_ms:
            self.debounced += 1
            logger.debug("Debounced interaction %.1fms after previous", t_ms - self._last_accepted_ms)
            return None

        if self._started_at_ms is None:
            self._started_at_ms = t_ms
        since = self._last_accepted_ms if self._last_accepted_ms is not None else self._started_at_ms

        ideal = self.ideal_point(position, target, candidates)
        record = InteractionRecord(
            timestamp_ms=t_ms,
            position=position,
            gesture_type=gesture_type,
            precision=touch_precision(position, ideal, self.max_relevant_distance),
            response_time_ms=max(0.0, t_ms - since),
            target_element_id=target.id if target is not None else None,
        )

        self._window.append(record)
        self._timestamps.append(t_ms)
        self._last_accepted_ms = t_ms
        self.accepted += 1
        self._evict(t_ms)
        return record

    def _evict(self, now_ms: float) -> None:
        cutoff = now_ms - self.config.window_max_age_ms
        while self._window and self._window[0].timestamp_ms < cutoff:
            self._window.popleft()
        while self._timestamps and self._timestamps[0] < cutoff:
            self._timestamps.popleft()

    def snapshot(self) -> tuple[InteractionRecord, ...]:
        """Immutable view of the window for a compute pass."""
        return tuple(self._window)

    def activity_timestamps(self) -> tuple[float, ...]:
        """Accepted timestamps within the max age, regardless of window capacity."""
        return tuple(self._timestamps)

    def __len__(self) -> int:
        return len(self._window)

    def clear(self) -> None:
        self._window.clear()
        self._timestamps.clear()
        self._last_accepted_ms = None
