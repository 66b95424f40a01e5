import math

from core.config import DifficultyConfig
from core.types import DifficultyAction, PerformanceSample


def recommend_difficulty(sample: PerformanceSample, config: DifficultyConfig | None = None) -> DifficultyAction:
    """Map recent performance to raise / hold / lower.

    Called at activity end or every few completions, not per interaction.
    """
    config = config or DifficultyConfig()
    if not (math.isfinite(sample.success_rate) and math.isfinite(sample.mean_attempts)):
        return DifficultyAction.HOLD

    if sample.success_rate < config.lower_below:
        return DifficultyAction.LOWER
    if sample.success_rate > config.raise_above and sample.mean_attempts < config.raise_max_attempts:
        return DifficultyAction.RAISE
    return DifficultyAction.HOLD
