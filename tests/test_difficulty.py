import math

import pytest

from core.config import DifficultyConfig
from core.types import DifficultyAction, PerformanceSample
from suggestions.difficulty import recommend_difficulty


def _sample(success_rate: float, attempts: float, seconds: float = 12.0) -> PerformanceSample:
    return PerformanceSample(success_rate=success_rate, mean_time_seconds=seconds, mean_attempts=attempts)


@pytest.mark.parametrize(
    "success_rate,attempts,expected",
    [
        (30, 3, DifficultyAction.LOWER),
        (90, 1, DifficultyAction.RAISE),
        (60, 2, DifficultyAction.HOLD),
        (39.9, 1, DifficultyAction.LOWER),
        (40, 5, DifficultyAction.HOLD),
        (85, 1, DifficultyAction.HOLD),
        (95, 2, DifficultyAction.HOLD),
        (100, 1.9, DifficultyAction.RAISE),
    ],
)
def test_recommend_difficulty(success_rate, attempts, expected):
    assert recommend_difficulty(_sample(success_rate, attempts)) == expected


def test_time_does_not_affect_decision():
    assert recommend_difficulty(_sample(90, 1, seconds=300)) == DifficultyAction.RAISE


def test_non_finite_input_holds():
    assert recommend_difficulty(_sample(math.nan, 1)) == DifficultyAction.HOLD
    assert recommend_difficulty(_sample(90, math.inf)) == DifficultyAction.HOLD


def test_custom_thresholds():
    config = DifficultyConfig(lower_below=50, raise_above=70, raise_max_attempts=3)
    assert recommend_difficulty(_sample(45, 1), config) == DifficultyAction.LOWER
    assert recommend_difficulty(_sample(75, 2.5), config) == DifficultyAction.RAISE
