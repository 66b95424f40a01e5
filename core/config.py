import tomli
from pydantic import BaseModel, Field, model_validator

from core.types import SensitivityLevel


class SensitivityProfile(BaseModel):
    model_config = {"frozen": True}

    touch_tolerance_outer_px: float
    drag_threshold_px: float
    multitouch_debounce_ms: int


# Tolerance shrinks and drag threshold grows from alta to baja.
SENSITIVITY_PROFILES: dict[SensitivityLevel, SensitivityProfile] = {
    SensitivityLevel.ALTA: SensitivityProfile(touch_tolerance_outer_px=20, drag_threshold_px=5, multitouch_debounce_ms=150),
    SensitivityLevel.MEDIA: SensitivityProfile(touch_tolerance_outer_px=15, drag_threshold_px=10, multitouch_debounce_ms=100),
    SensitivityLevel.BAJA: SensitivityProfile(touch_tolerance_outer_px=10, drag_threshold_px=15, multitouch_debounce_ms=50),
}


def resolve_profile(level: SensitivityLevel | str) -> SensitivityProfile:
    """Look up a sensitivity profile, failing fast on unknown names."""
    try:
        return SENSITIVITY_PROFILES[SensitivityLevel(level)]
    except ValueError:
        valid = ", ".join(lv.value for lv in SensitivityLevel)
        raise ValueError(f"Unknown sensitivity profile {level!r} (expected one of: {valid})") from None


class SensitivityConfig(BaseModel):
    level: SensitivityLevel = SensitivityLevel.MEDIA

    @property
    def profile(self) -> SensitivityProfile:
        return resolve_profile(self.level)


class ScreenConfig(BaseModel):
    width: float = Field(default=390.0, gt=0)
    height: float = Field(default=844.0, gt=0)


class RecorderConfig(BaseModel):
    debounce_ms: float = Field(default=50.0, ge=0)
    window_capacity: int = Field(default=1000, gt=0)
    window_max_age_ms: float = Field(default=600_000.0, gt=0)
    # None means half the screen width
    max_relevant_distance_px: float | None = Field(default=None, gt=0)


class MetricsConfig(BaseModel):
    minimum_sample_size: int = Field(default=5, ge=1)
    evaluate_every_n: int = Field(default=5, ge=1)
    evaluate_interval_s: float = Field(default=30.0, gt=0)
    low_precision_threshold: float = Field(default=0.3, ge=0, le=1)
    sustained_low_precision_count: int = Field(default=15, ge=1)
    high_precision_threshold: float = Field(default=0.9, ge=0, le=1)
    celebration_streak_count: int = Field(default=25, ge=1)
    overstimulation_rate_per_s: float = Field(default=1.5, gt=0)
    overstimulation_segment_ms: float = Field(default=60_000.0, gt=0)
    overstimulation_sustained_ms: float = Field(default=300_000.0, gt=0)
    trend_window: int = Field(default=20, ge=2)
    accuracy_decline_slope: float = -0.02
    slowing_response_slope_ms: float = 200.0


class FrustrationBands(BaseModel):
    low: float = 30.0
    medium: float = 60.0
    high: float = 80.0

    @model_validator(mode="after")
    def _check_order(self) -> "FrustrationBands":
        if not 0 <= self.low < self.medium < self.high <= 100:
            raise ValueError(
                f"frustration bands must satisfy 0 <= low < medium < high <= 100, "
                f"got {self.low}/{self.medium}/{self.high}"
            )
        return self


class SuggestionsConfig(BaseModel):
    cooldown_ms: float = Field(default=60_000.0, ge=0)
    frustration: FrustrationBands = FrustrationBands()


class DifficultyConfig(BaseModel):
    lower_below: float = 40.0
    raise_above: float = 85.0
    raise_max_attempts: float = 2.0


class RemoteConfig(BaseModel):
    enabled: bool = False
    base_url: str = "http://localhost:8080"
    endpoint: str = "/analizarPatron"
    api_key_env: str = "TACTIVA_ANALYSIS_KEY"
    timeout_s: float = Field(default=2.0, gt=0)
    min_confidence: float = Field(default=70.0, ge=0, le=100)


class TelemetryConfig(BaseModel):
    enabled: bool = False
    url: str = "http://localhost:8080/events"
    timeout_s: float = Field(default=2.0, gt=0)


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 7860


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class Config(BaseModel):
    sensitivity: SensitivityConfig = SensitivityConfig()
    screen: ScreenConfig = ScreenConfig()
    recorder: RecorderConfig = RecorderConfig()
    metrics: MetricsConfig = MetricsConfig()
    suggestions: SuggestionsConfig = SuggestionsConfig()
    difficulty: DifficultyConfig = DifficultyConfig()
    remote: RemoteConfig = RemoteConfig()
    telemetry: TelemetryConfig = TelemetryConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(path: str = "config/default.toml") -> Config:
    """Load config from TOML file, validate with Pydantic."""
    with open(path, "rb") as f:
        data = tomli.load(f)
    return Config(**data)
