from dataclasses import dataclass, field
from enum import StrEnum


class GestureType(StrEnum):
    TAP = "tap"
    DRAG = "drag"
    MULTITOUCH = "multitouch"


class SensitivityLevel(StrEnum):
    ALTA = "alta"
    MEDIA = "media"
    BAJA = "baja"


class SuggestionKind(StrEnum):
    REST = "rest"
    HELP = "help"
    CELEBRATION = "celebration"
    CHANGE_ACTIVITY = "changeActivity"


class SuggestionPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EngineState(StrEnum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    SUPPRESSED = "suppressed"
    EMITTED = "emitted"


class SessionState(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"


class DifficultyAction(StrEnum):
    RAISE = "raise"
    HOLD = "hold"
    LOWER = "lower"


class Pattern(StrEnum):
    ACCURACY_DECLINE = "accuracy_decline"
    SLOWING_RESPONSES = "slowing_responses"


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    w: float
    h: float


@dataclass(frozen=True)
class PointerSample:
    """Displacement since gesture start plus the current touch count."""

    dx: float
    dy: float
    active_touch_count: int = 1


@dataclass(frozen=True)
class InteractiveElement:
    id: str
    position: Point  # top-left corner
    size: Size
    active: bool = True
    visible: bool = True

    @property
    def center(self) -> Point:
        return Point(self.position.x + self.size.w / 2, self.position.y + self.size.h / 2)


@dataclass(frozen=True)
class InteractionRecord:
    timestamp_ms: float
    position: Point
    gesture_type: GestureType
    precision: float  # 0..1
    response_time_ms: float
    target_element_id: str | None = None


@dataclass(frozen=True)
class BehaviorMetrics:
    mean_precision: float
    interactions_per_second: float
    frustration_score: float  # 0..100
    engagement_score: float  # 0..100
    sample_size: int
    low_precision_run: int = 0
    high_precision_run: int = 0
    overstimulated_ms: float = 0.0
    overstimulated: bool = False
    celebration_streak: bool = False
    precision_trend: float = 0.0
    response_time_trend: float = 0.0
    patterns: tuple[Pattern, ...] = ()


@dataclass(frozen=True)
class Suggestion:
    id: str
    kind: SuggestionKind
    priority: SuggestionPriority
    reasoning: str
    created_at_ms: float
    source: str = "local"  # "local" | "remote"


@dataclass(frozen=True)
class PerformanceSample:
    success_rate: float  # 0..100
    mean_time_seconds: float
    mean_attempts: float


@dataclass(frozen=True)
class RemoteAnalysis:
    suggestions: list[str]
    frustration_score: float
    engagement_score: float
    confidence: float | None = None


@dataclass(frozen=True)
class FeedbackEvent:
    """Presentation hint: show touch feedback at a position."""

    position: Point
    precision: float
    gesture_type: GestureType
    target_element_id: str | None = None


@dataclass
class EvaluationResult:
    state: EngineState
    suggestion: Suggestion | None = None
    metrics: BehaviorMetrics | None = None
    used_remote: bool = False
    condition: str | None = None


@dataclass
class SessionSummary:
    accepted: int = 0
    debounced: int = 0
    dropped: int = 0
    evaluations: int = 0
    suggestions_emitted: int = 0
    suggestions_suppressed: int = 0
    remote_failures: int = 0
    emitted_kinds: list[SuggestionKind] = field(default_factory=list)
