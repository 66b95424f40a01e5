import logging

import pytest
from pydantic import ValidationError

from core.config import (
    SENSITIVITY_PROFILES,
    Config,
    FrustrationBands,
    LoggingConfig,
    load_config,
    resolve_profile,
)
from core.logging import setup_logging
from core.types import DifficultyAction, GestureType, SensitivityLevel, SuggestionKind, SuggestionPriority


def test_load_default_config():
    config = load_config()
    assert isinstance(config, Config)
    assert config.server.port == 7860


def test_config_defaults():
    config = Config()
    assert config.sensitivity.level == SensitivityLevel.MEDIA
    assert config.recorder.debounce_ms == 50.0
    assert config.metrics.minimum_sample_size == 5
    assert config.metrics.evaluate_every_n == 5
    assert config.metrics.evaluate_interval_s == 30.0
    assert config.suggestions.cooldown_ms == 60_000.0
    assert config.remote.enabled is False
    assert config.remote.min_confidence == 70.0


def test_config_frustration_bands():
    config = load_config()
    bands = config.suggestions.frustration
    assert (bands.low, bands.medium, bands.high) == (30.0, 60.0, 80.0)


def test_default_toml_matches_model_defaults():
    assert load_config().model_dump() == Config().model_dump()


def test_profile_table_values():
    alta = SENSITIVITY_PROFILES[SensitivityLevel.ALTA]
    media = SENSITIVITY_PROFILES[SensitivityLevel.MEDIA]
    baja = SENSITIVITY_PROFILES[SensitivityLevel.BAJA]
    assert (alta.touch_tolerance_outer_px, media.touch_tolerance_outer_px, baja.touch_tolerance_outer_px) == (20, 15, 10)
    assert (alta.drag_threshold_px, media.drag_threshold_px, baja.drag_threshold_px) == (5, 10, 15)


def test_profile_ordering_invariant():
    alta, media, baja = (resolve_profile(lv) for lv in ("alta", "media", "baja"))
    assert alta.touch_tolerance_outer_px > media.touch_tolerance_outer_px > baja.touch_tolerance_outer_px
    assert alta.drag_threshold_px < media.drag_threshold_px < baja.drag_threshold_px


def test_unknown_profile_fails_fast():
    with pytest.raises(ValueError, match="Unknown sensitivity profile 'extrema'"):
        resolve_profile("extrema")


def test_unknown_profile_in_config_fails_fast():
    with pytest.raises(ValidationError):
        Config(sensitivity={"level": "extrema"})


def test_frustration_bands_must_increase():
    with pytest.raises(ValidationError):
        FrustrationBands(low=60, medium=50, high=80)


def test_non_positive_interval_rejected():
    with pytest.raises(ValidationError):
        Config(metrics={"evaluate_interval_s": 0})


def test_temp_config(temp_config):
    assert temp_config.sensitivity.level == SensitivityLevel.ALTA
    assert temp_config.sensitivity.profile.touch_tolerance_outer_px == 20
    assert temp_config.recorder.debounce_ms == 80.0
    assert temp_config.suggestions.frustration.high == 70.0
    assert temp_config.remote.enabled is True
    # untouched sections keep their defaults
    assert temp_config.difficulty.lower_below == 40.0


def test_types_enums():
    assert GestureType.MULTITOUCH.value == "multitouch"
    assert SuggestionKind.CHANGE_ACTIVITY.value == "changeActivity"
    assert SuggestionPriority.HIGH.value == "high"
    assert DifficultyAction.LOWER.value == "lower"


def test_setup_logging_levels():
    setup_logging(LoggingConfig(level="debug"))
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    with pytest.raises(ValueError, match="Unknown log level"):
        setup_logging(LoggingConfig(level="chatty"))
