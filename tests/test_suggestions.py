import pytest

from core.config import SuggestionsConfig
from core.types import (
    BehaviorMetrics,
    EngineState,
    Pattern,
    RemoteAnalysis,
    SuggestionKind,
    SuggestionPriority,
)
from suggestions.engine import SuggestionEngine, match_condition, merge_remote


def _metrics(**overrides) -> BehaviorMetrics:
    values = dict(
        mean_precision=0.6,
        interactions_per_second=0.5,
        frustration_score=20.0,
        engagement_score=50.0,
        sample_size=10,
    )
    values.update(overrides)
    return BehaviorMetrics(**values)


@pytest.fixture
def engine() -> SuggestionEngine:
    return SuggestionEngine(SuggestionsConfig())


def test_insufficient_data_never_emits(engine):
    result = engine.evaluate(None, now_ms=1000)
    assert result.state == EngineState.IDLE
    assert result.suggestion is None
    assert engine.last_suggestion_at_ms is None


def test_calm_metrics_stay_idle(engine):
    result = engine.evaluate(_metrics(), now_ms=1000)
    assert result.state == EngineState.IDLE
    assert result.metrics is not None


def test_high_frustration_emits_high_help(engine):
    result = engine.evaluate(_metrics(frustration_score=85, low_precision_run=15), now_ms=1000)
    assert result.state == EngineState.EMITTED
    assert result.suggestion.kind == SuggestionKind.HELP
    assert result.suggestion.priority == SuggestionPriority.HIGH
    assert "frustrationScore 85.0" in result.suggestion.reasoning
    assert result.suggestion.source == "local"


def test_medium_frustration_band(engine):
    result = engine.evaluate(_metrics(frustration_score=65), now_ms=1000)
    assert result.suggestion.kind == SuggestionKind.HELP
    assert result.suggestion.priority == SuggestionPriority.MEDIUM


def test_frustration_below_medium_is_ignored():
    assert match_condition(_metrics(frustration_score=59.9), SuggestionsConfig()) is None


def test_cooldown_suppresses_same_condition(engine):
    metrics = _metrics(frustration_score=90)
    first = engine.evaluate(metrics, now_ms=10_000)
    second = engine.evaluate(metrics, now_ms=40_000)
    assert first.state == EngineState.EMITTED
    assert second.state == EngineState.SUPPRESSED
    assert second.suggestion is None
    assert second.condition == "frustration"
    # the suppressed match does not move the cooldown
    assert engine.last_suggestion_at_ms == 10_000


def test_cooldown_elapsed_emits_again(engine):
    metrics = _metrics(frustration_score=90)
    engine.evaluate(metrics, now_ms=0)
    assert engine.evaluate(metrics, now_ms=60_000).state == EngineState.EMITTED


def test_cooldown_applies_across_kinds(engine):
    engine.evaluate(_metrics(frustration_score=90), now_ms=0)
    result = engine.evaluate(_metrics(celebration_streak=True, high_precision_run=30), now_ms=5_000)
    assert result.state == EngineState.SUPPRESSED
    assert result.condition == "celebration"


def test_overstimulation_wins_over_celebration(engine):
    metrics = _metrics(
        overstimulated=True,
        overstimulated_ms=300_000,
        interactions_per_second=1.7,
        celebration_streak=True,
        high_precision_run=40,
    )
    result = engine.evaluate(metrics, now_ms=1000)
    assert result.suggestion.kind == SuggestionKind.REST
    assert result.suggestion.priority == SuggestionPriority.HIGH
    assert result.condition == "overstimulation"


def test_overstimulation_wins_over_frustration():
    match = match_condition(_metrics(overstimulated=True, frustration_score=95), SuggestionsConfig())
    assert match.name == "overstimulation"


def test_frustration_wins_over_celebration():
    match = match_condition(_metrics(frustration_score=70, celebration_streak=True), SuggestionsConfig())
    assert match.kind == SuggestionKind.HELP


def test_celebration_is_medium(engine):
    result = engine.evaluate(_metrics(celebration_streak=True, high_precision_run=25), now_ms=1000)
    assert result.suggestion.kind == SuggestionKind.CELEBRATION
    assert result.suggestion.priority == SuggestionPriority.MEDIUM


def test_accuracy_decline_suggests_change_of_activity():
    config = SuggestionsConfig()
    declining = _metrics(frustration_score=35, precision_trend=-0.05, patterns=(Pattern.ACCURACY_DECLINE,))
    match = match_condition(declining, config)
    assert match.kind == SuggestionKind.CHANGE_ACTIVITY
    assert match.priority == SuggestionPriority.LOW
    # decline alone, with a calm score, is not enough
    assert match_condition(_metrics(frustration_score=10, patterns=(Pattern.ACCURACY_DECLINE,)), config) is None


def test_slowing_responses_suggest_rest():
    match = match_condition(_metrics(patterns=(Pattern.SLOWING_RESPONSES,), response_time_trend=350), SuggestionsConfig())
    assert match.name == "fatigue"
    assert match.kind == SuggestionKind.REST
    assert match.priority == SuggestionPriority.LOW


def test_custom_bands_are_respected():
    config = SuggestionsConfig(frustration={"low": 10, "medium": 20, "high": 40})
    match = match_condition(_metrics(frustration_score=45), config)
    assert match.priority == SuggestionPriority.HIGH


def test_merge_remote_replaces_scores():
    remote = RemoteAnalysis(suggestions=["pausa"], frustration_score=120, engagement_score=-5)
    merged = merge_remote(_metrics(), remote)
    assert merged.frustration_score == 100.0
    assert merged.engagement_score == 0.0
    assert merged.mean_precision == 0.6


def test_remote_scores_drive_decision(engine):
    remote = RemoteAnalysis(suggestions=["offer a hint"], frustration_score=82, engagement_score=40, confidence=90)
    result = engine.evaluate(_metrics(frustration_score=10), now_ms=1000, remote=remote)
    assert result.used_remote
    assert result.suggestion.kind == SuggestionKind.HELP
    assert result.suggestion.source == "remote"
    assert result.suggestion.reasoning.endswith("remote: offer a hint")


def test_suggestion_ids_are_unique(engine):
    first = engine.evaluate(_metrics(frustration_score=90), now_ms=0).suggestion
    second = engine.evaluate(_metrics(frustration_score=90), now_ms=120_000).suggestion
    assert first.id != second.id
    assert second.created_at_ms == 120_000


def test_reset_clears_cooldown(engine):
    engine.evaluate(_metrics(frustration_score=90), now_ms=0)
    engine.reset()
    assert engine.state == EngineState.IDLE
    assert not engine.cooling_down(1000)
