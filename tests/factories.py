from core.types import GestureType, InteractionRecord, Point


def make_records(precisions: list[float], spacing_ms: float = 1000.0, start_ms: float = 0.0) -> list[InteractionRecord]:
    """Evenly spaced tap records with the given precisions."""
    return [
        InteractionRecord(
            timestamp_ms=start_ms + i * spacing_ms,
            position=Point(195.0, 422.0),
            gesture_type=GestureType.TAP,
            precision=p,
            response_time_ms=spacing_ms,
        )
        for i, p in enumerate(precisions)
    ]
