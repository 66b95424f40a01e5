from collections.abc import Iterable

from core.config import SensitivityProfile
from core.types import InteractiveElement, Point


def expanded_bounds(element: InteractiveElement, tolerance: float) -> tuple[float, float, float, float]:
    """Return (left, top, right, bottom) grown by tolerance on every side."""
    return (
        element.position.x - tolerance,
        element.position.y - tolerance,
        element.position.x + element.size.w + tolerance,
        element.position.y + element.size.h + tolerance,
    )


def is_eligible(element: InteractiveElement) -> bool:
    return element.active and element.visible


def hit_test(point: Point, elements: Iterable[InteractiveElement], tolerance: float) -> InteractiveElement | None:
    """Resolve the element under point.

    Overlapping matches are resolved by input order: the first eligible
    element whose expanded box contains the point wins. Callers that need a
    different stacking order must sort before calling.
    """
    for element in elements:
        if not is_eligible(element):
            continue
        left, top, right, bottom = expanded_bounds(element, tolerance)
        if left <= point.x <= right and top <= point.y <= bottom:
            return element
    return None


class HitTester:
    def __init__(self, profile: SensitivityProfile):
        self.profile = profile

    @property
    def tolerance(self) -> float:
        return self.profile.touch_tolerance_outer_px

    def resolve(self, point: Point, elements: Iterable[InteractiveElement]) -> InteractiveElement | None:
        return hit_test(point, elements, self.tolerance)
