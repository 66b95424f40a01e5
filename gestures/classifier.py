import math

from core.config import SensitivityProfile
from core.types import GestureType, PointerSample


def classify_gesture(sample: PointerSample, profile: SensitivityProfile) -> GestureType:
    """Classify a pointer sample. Multitouch wins over any displacement."""
    if sample.active_touch_count >= 2:
        return GestureType.MULTITOUCH
    if math.hypot(sample.dx, sample.dy) > profile.drag_threshold_px:
        return GestureType.DRAG
    return GestureType.TAP


class GestureTracker:
    """Follows one gesture from grant to release.

    The classification is recomputed on every move; the value returned by
    release() is the one that ends up on the InteractionRecord. Fingers of a
    multitouch gesture rarely lift together, so a gesture that saw two or more
    touches within the profile's multitouch debounce before release is still
    finalized as multitouch.
    """

    def __init__(self, profile: SensitivityProfile):
        self.profile = profile
        self._sample: PointerSample | None = None
        self._last_multitouch_ms: float | None = None
        self.current: GestureType | None = None

    @property
    def active(self) -> bool:
        return self._sample is not None

    def grant(self, t_ms: float, active_touch_count: int = 1) -> GestureType:
        self._sample = PointerSample(dx=0.0, dy=0.0, active_touch_count=active_touch_count)
        self._last_multitouch_ms = t_ms if active_touch_count >= 2 else None
        self.current = classify_gesture(self._sample, self.profile)
        return self.current

    def move(self, dx: float, dy: float, active_touch_count: int, t_ms: float) -> GestureType | None:
        if self._sample is None:
            return None
        self._sample = PointerSample(dx=dx, dy=dy, active_touch_count=active_touch_count)
        if active_touch_count >= 2:
            self._last_multitouch_ms = t_ms
        self.current = classify_gesture(self._sample, self.profile)
        return self.current

    def release(self, t_ms: float) -> GestureType | None:
        if self._sample is None:
            return None
        final = classify_gesture(self._sample, self.profile)
        if (
            self._last_multitouch_ms is not None
            and t_ms - self._last_multitouch_ms <= self.profile.multitouch_debounce_ms
        ):
            final = GestureType.MULTITOUCH
        self.reset()
        return final

    def reset(self) -> None:
        self._sample = None
        self._last_multitouch_ms = None
        self.current = None
