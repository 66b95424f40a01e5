import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Coroutine, Sequence
from typing import Any

from core.config import Config
from core.types import (
    BehaviorMetrics,
    DifficultyAction,
    EngineState,
    EvaluationResult,
    FeedbackEvent,
    GestureType,
    InteractionRecord,
    InteractiveElement,
    PerformanceSample,
    Point,
    RemoteAnalysis,
    SessionState,
    SessionSummary,
)
from gestures.classifier import GestureTracker
from gestures.hit_test import HitTester
from remote.analysis import RemoteAnalysisClient, dominant_gesture, sample_features
from remote.sink import TelemetrySink
from suggestions.difficulty import recommend_difficulty
from suggestions.engine import SuggestionEngine
from telemetry.metrics import BehaviorMetricsCalculator
from telemetry.recorder import InteractionRecorder

logger = logging.getLogger(__name__)

# Type alias for async callbacks
AsyncCallback = Callable[..., Coroutine[Any, Any, None]]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ActivitySession:
    """Interaction analysis for one running activity.

    Lifecycle: IDLE → ACTIVE ⇄ PAUSED → STOPPED. Each activity owns its own
    session; nothing here is shared across sessions.

    Pointer and evaluation entry points never raise. Evaluations read an
    immutable window snapshot, so interactions arriving while a pass is
    awaiting the remote collaborator land in the next pass.
    """

    def __init__(
        self,
        config: Config,
        remote: RemoteAnalysisClient | None = None,
        sink: TelemetrySink | None = None,
        clock: Callable[[], float] | None = None,
        session_id: str | None = None,
    ):
        self.config = config
        profile = config.sensitivity.profile
        self.tracker = GestureTracker(profile)
        self.hit_tester = HitTester(profile)
        self.recorder = InteractionRecorder(config.recorder, config.screen)
        self.calculator = BehaviorMetricsCalculator(config.metrics)
        self.engine = SuggestionEngine(config.suggestions)
        self.remote = remote
        self.sink = sink
        self.session_id = session_id or str(uuid.uuid4())[:8]
        self.state = SessionState.IDLE
        self.elements: list[InteractiveElement] = []
        self._clock = clock or _monotonic_ms
        self._summary = SessionSummary()
        self._timer: asyncio.Task | None = None
        self._evaluation: asyncio.Task | None = None

        # Callbacks, set by the presentation layer
        self.on_suggestion: AsyncCallback | None = None
        self.on_feedback: AsyncCallback | None = None

    # --- Lifecycle ---

    def start(self, t_ms: float | None = None) -> None:
        if self.state != SessionState.IDLE:
            return
        self.state = SessionState.ACTIVE
        self.recorder.start(self._now(t_ms))
        self._start_timer()
        logger.info("Session %s started (sensitivity=%s)", self.session_id, self.config.sensitivity.level)

    def pause(self) -> None:
        if self.state != SessionState.ACTIVE:
            return
        self.state = SessionState.PAUSED
        self.tracker.reset()
        self._cancel_tasks()

    def resume(self) -> None:
        if self.state != SessionState.PAUSED:
            return
        self.state = SessionState.ACTIVE
        self._start_timer()

    async def stop(self) -> SessionSummary:
        self.state = SessionState.STOPPED
        self.tracker.reset()
        tasks = self._cancel_tasks()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self.sink is not None:
            await self.sink.aclose()
        summary = self.summary()
        logger.info("Session %s stopped: %s", self.session_id, summary)
        return summary

    def set_elements(self, elements: Sequence[InteractiveElement]) -> None:
        self.elements = list(elements)

    # --- Pointer stream ---

    def pointer_down(self, x: float, y: float, touches: int = 1, t_ms: float | None = None) -> GestureType | None:
        try:
            now = self._now(t_ms)
            if not self._accepting(now):
                return None
            return self.tracker.grant(now, touches)
        except Exception:
            logger.exception("pointer_down failed")
            return None

    def pointer_move(self, dx: float, dy: float, touches: int = 1, t_ms: float | None = None) -> GestureType | None:
        try:
            now = self._now(t_ms)
            if not self._accepting(now):
                return None
            return self.tracker.move(dx, dy, touches, now)
        except Exception:
            logger.exception("pointer_move failed")
            return None

    async def pointer_up(self, x: float, y: float, t_ms: float | None = None) -> InteractionRecord | None:
        """Finalize the gesture at release and record it against the element under (x, y)."""
        try:
            now = self._now(t_ms)
            if not self._accepting(now):
                return None
            gesture = self.tracker.release(now)
            if gesture is None:
                return None
            position = Point(x, y)
            target = self.hit_tester.resolve(position, self.elements)
            return await self._accept(position, gesture, now, target)
        except Exception:
            logger.exception("pointer_up failed")
            return None

    async def record_touch(
        self,
        x: float,
        y: float,
        gesture_type: GestureType = GestureType.TAP,
        target_element_id: str | None = None,
        t_ms: float | None = None,
    ) -> InteractionRecord | None:
        """Record an interaction whose gesture was classified upstream."""
        try:
            now = self._now(t_ms)
            if not self._accepting(now):
                return None
            position = Point(x, y)
            if target_element_id is not None:
                target = next((e for e in self.elements if e.id == target_element_id), None)
            else:
                target = self.hit_tester.resolve(position, self.elements)
            return await self._accept(position, gesture_type, now, target)
        except Exception:
            logger.exception("record_touch failed")
            return None

    async def _accept(
        self,
        position: Point,
        gesture: GestureType,
        now: float,
        target: InteractiveElement | None,
    ) -> InteractionRecord | None:
        record = self.recorder.record(position, gesture, now, target=target, candidates=self.elements)
        if record is None:
            return None

        if self.sink is not None:
            self.sink.interaction(record)
        await self._notify(
            self.on_feedback,
            FeedbackEvent(
                position=record.position,
                precision=record.precision,
                gesture_type=record.gesture_type,
                target_element_id=record.target_element_id,
            ),
        )

        if self.recorder.accepted % self.config.metrics.evaluate_every_n == 0:
            self._schedule_evaluation(now)
        return record

    # --- Evaluation ---

    async def evaluate(self, now_ms: float | None = None) -> EvaluationResult:
        """Run one evaluation cycle. Never raises; cancellation propagates."""
        try:
            return await self._evaluate(self._now(now_ms))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Evaluation failed, skipping cycle")
            return EvaluationResult(state=EngineState.IDLE)

    async def _evaluate(self, now: float) -> EvaluationResult:
        if self._torn_down():
            return EvaluationResult(state=EngineState.IDLE)

        records = self.recorder.snapshot()
        metrics = self.calculator.compute(records, self.recorder.activity_timestamps())
        self._summary.evaluations += 1

        remote_result = None
        if metrics is not None and self.remote is not None:
            remote_result = await self._analyze_remote(self.remote, metrics, records)
            # Paused or stopped while waiting: drop the partial result
            if self._torn_down():
                return EvaluationResult(state=EngineState.IDLE)

        result = self.engine.evaluate(metrics, now, remote_result)
        if result.state == EngineState.SUPPRESSED:
            self._summary.suggestions_suppressed += 1
        if result.suggestion is not None:
            self._summary.suggestions_emitted += 1
            self._summary.emitted_kinds.append(result.suggestion.kind)
            if self.sink is not None:
                self.sink.suggestion(result.suggestion)
            await self._notify(self.on_suggestion, result.suggestion)
        return result

    async def _analyze_remote(
        self,
        remote: RemoteAnalysisClient,
        metrics: BehaviorMetrics,
        records: Sequence[InteractionRecord],
    ) -> RemoteAnalysis | None:
        try:
            result = await asyncio.wait_for(
                remote.analyze(dominant_gesture(records), sample_features(metrics, records)),
                timeout=self.config.remote.timeout_s,
            )
        except Exception as e:
            # Any remote failure (timeout, transport, bad payload) falls back to local scores
            self._summary.remote_failures += 1
            logger.warning("Remote analysis unavailable, using local heuristic: %s: %s", type(e).__name__, e)
            return None

        if not remote.accepts(result):
            logger.info(
                "Ignoring remote analysis below confidence %.0f (got %s)",
                self.config.remote.min_confidence,
                result.confidence,
            )
            return None
        return result

    def current_metrics(self) -> BehaviorMetrics | None:
        return self.calculator.compute(self.recorder.snapshot(), self.recorder.activity_timestamps())

    def recommend_difficulty(self, sample: PerformanceSample) -> DifficultyAction:
        action = recommend_difficulty(sample, self.config.difficulty)
        logger.info(
            "Difficulty %s for successRate=%.0f attempts=%.1f",
            action,
            sample.success_rate,
            sample.mean_attempts,
        )
        return action

    def summary(self) -> SessionSummary:
        self._summary.accepted = self.recorder.accepted
        self._summary.debounced = self.recorder.debounced
        self._summary.dropped = self.recorder.dropped
        return self._summary

    async def wait_idle(self) -> None:
        """Wait for a scheduled evaluation, if any, to finish."""
        if self._evaluation is not None and not self._evaluation.done():
            await asyncio.gather(self._evaluation, return_exceptions=True)

    # --- Internals ---

    def _now(self, t_ms: float | None) -> float:
        return self._clock() if t_ms is None else t_ms

    def _accepting(self, now: float) -> bool:
        if self.state == SessionState.IDLE:
            self.start(now)
        if self.state != SessionState.ACTIVE:
            self.recorder.dropped += 1
            return False
        return True

    def _torn_down(self) -> bool:
        return self.state in (SessionState.PAUSED, SessionState.STOPPED)

    def _schedule_evaluation(self, now: float) -> None:
        if self._evaluation is not None and not self._evaluation.done():
            return  # one pass in flight; new records land in the next one
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._evaluation = loop.create_task(self.evaluate(now))

    def _start_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timer = loop.create_task(self._periodic())

    async def _periodic(self) -> None:
        interval = self.config.metrics.evaluate_interval_s
        while True:
            await asyncio.sleep(interval)
            # Joins a pass already in flight instead of starting a second one
            self._schedule_evaluation(self._now(None))
            await self.wait_idle()

    def _cancel_tasks(self) -> list[asyncio.Task]:
        tasks = [t for t in (self._timer, self._evaluation) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        self._timer = None
        self._evaluation = None
        return tasks

    async def _notify(self, callback: AsyncCallback | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            await callback(*args)
        except Exception:
            logger.exception("Presentation callback failed")
