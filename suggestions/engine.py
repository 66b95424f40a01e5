import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace

from core.config import SuggestionsConfig
from core.types import (
    BehaviorMetrics,
    EngineState,
    EvaluationResult,
    Pattern,
    RemoteAnalysis,
    Suggestion,
    SuggestionKind,
    SuggestionPriority,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConditionMatch:
    name: str
    kind: SuggestionKind
    priority: SuggestionPriority
    reasoning: str


# A rule inspects metrics and returns a match, or None
Rule = Callable[[BehaviorMetrics, SuggestionsConfig], ConditionMatch | None]


def _overstimulation(m: BehaviorMetrics, cfg: SuggestionsConfig) -> ConditionMatch | None:
    if not m.overstimulated:
        return None
    return ConditionMatch(
        name="overstimulation",
        kind=SuggestionKind.REST,
        priority=SuggestionPriority.HIGH,
        reasoning=(
            f"interactionsPerSecond {m.interactions_per_second:.2f} stayed above the overstimulation rate "
            f"for {m.overstimulated_ms / 1000:.0f}s"
        ),
    )


def _frustration(m: BehaviorMetrics, cfg: SuggestionsConfig) -> ConditionMatch | None:
    bands = cfg.frustration
    if m.frustration_score >= bands.high:
        band, priority, threshold = "high", SuggestionPriority.HIGH, bands.high
    elif m.frustration_score >= bands.medium:
        band, priority, threshold = "medium", SuggestionPriority.MEDIUM, bands.medium
    else:
        return None
    return ConditionMatch(
        name="frustration",
        kind=SuggestionKind.HELP,
        priority=priority,
        reasoning=(
            f"frustrationScore {m.frustration_score:.1f} >= {band} threshold {threshold:g} "
            f"(meanPrecision {m.mean_precision:.2f}, low-precision run {m.low_precision_run})"
        ),
    )


def _celebration(m: BehaviorMetrics, cfg: SuggestionsConfig) -> ConditionMatch | None:
    if not m.celebration_streak:
        return None
    return ConditionMatch(
        name="celebration",
        kind=SuggestionKind.CELEBRATION,
        priority=SuggestionPriority.MEDIUM,
        reasoning=f"high-precision streak of {m.high_precision_run} interactions",
    )


def _struggle(m: BehaviorMetrics, cfg: SuggestionsConfig) -> ConditionMatch | None:
    if Pattern.ACCURACY_DECLINE not in m.patterns or m.frustration_score < cfg.frustration.low:
        return None
    return ConditionMatch(
        name="struggle",
        kind=SuggestionKind.CHANGE_ACTIVITY,
        priority=SuggestionPriority.LOW,
        reasoning=(
            f"precision trend {m.precision_trend:+.3f}/interaction with frustrationScore "
            f"{m.frustration_score:.1f} >= low threshold {cfg.frustration.low:g}"
        ),
    )


def _fatigue(m: BehaviorMetrics, cfg: SuggestionsConfig) -> ConditionMatch | None:
    if Pattern.SLOWING_RESPONSES not in m.patterns:
        return None
    return ConditionMatch(
        name="fatigue",
        kind=SuggestionKind.REST,
        priority=SuggestionPriority.LOW,
        reasoning=f"response time trend {m.response_time_trend:+.0f}ms/interaction",
    )


# Evaluated in order; the first match wins.
RULES: tuple[Rule, ...] = (
    _overstimulation,
    _frustration,
    _celebration,
    _struggle,
    _fatigue,
)


def match_condition(metrics: BehaviorMetrics, config: SuggestionsConfig) -> ConditionMatch | None:
    for rule in RULES:
        match = rule(metrics, config)
        if match is not None:
            return match
    return None


def merge_remote(metrics: BehaviorMetrics, remote: RemoteAnalysis) -> BehaviorMetrics:
    """Replace local scores with the remote collaborator's."""
    return replace(
        metrics,
        frustration_score=min(100.0, max(0.0, remote.frustration_score)),
        engagement_score=min(100.0, max(0.0, remote.engagement_score)),
    )


class SuggestionEngine:
    """State machine: IDLE → EVALUATING → SUPPRESSED | EMITTED.

    At most one suggestion per evaluation. The cooldown is a hard floor: a
    match inside the cooldown is discarded, not deferred or merged into the
    next cycle.
    """

    def __init__(self, config: SuggestionsConfig):
        self.config = config
        self.state = EngineState.IDLE
        self.last_suggestion_at_ms: float | None = None

    def cooling_down(self, now_ms: float) -> bool:
        return (
            self.last_suggestion_at_ms is not None
            and now_ms - self.last_suggestion_at_ms < self.config.cooldown_ms
        )

    def evaluate(
        self,
        metrics: BehaviorMetrics | None,
        now_ms: float,
        remote: RemoteAnalysis | None = None,
    ) -> EvaluationResult:
        if metrics is None:
            self.state = EngineState.IDLE
            return EvaluationResult(state=self.state)

        self.state = EngineState.EVALUATING
        if remote is not None:
            metrics = merge_remote(metrics, remote)

        match = match_condition(metrics, self.config)
        if match is None:
            self.state = EngineState.IDLE
            return EvaluationResult(state=self.state, metrics=metrics, used_remote=remote is not None)

        if self.cooling_down(now_ms):
            self.state = EngineState.SUPPRESSED
            logger.debug("Suppressed %s suggestion inside cooldown", match.name)
            return EvaluationResult(
                state=self.state,
                metrics=metrics,
                used_remote=remote is not None,
                condition=match.name,
            )

        reasoning = match.reasoning
        if remote is not None and remote.suggestions:
            reasoning += "; remote: " + ", ".join(remote.suggestions)

        suggestion = Suggestion(
            id=str(uuid.uuid4())[:8],
            kind=match.kind,
            priority=match.priority,
            reasoning=reasoning,
            created_at_ms=now_ms,
            source="remote" if remote is not None else "local",
        )
        self.last_suggestion_at_ms = now_ms
        self.state = EngineState.EMITTED
        logger.info("Suggestion %s (%s/%s): %s", suggestion.id, suggestion.kind, suggestion.priority, reasoning)
        return EvaluationResult(
            state=self.state,
            suggestion=suggestion,
            metrics=metrics,
            used_remote=remote is not None,
            condition=match.name,
        )

    def reset(self) -> None:
        self.state = EngineState.IDLE
        self.last_suggestion_at_ms = None
