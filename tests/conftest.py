import pytest

from core.config import Config, load_config
from core.types import InteractiveElement, Point, Size
from tests.factories import make_records


@pytest.fixture
def config() -> Config:
    """Load default config for tests."""
    return load_config()


@pytest.fixture
def temp_config(tmp_path):
    """Create a temp config TOML for isolated tests."""
    toml_content = """
[sensitivity]
level = "alta"
[recorder]
debounce_ms = 80.0
window_capacity = 50
[metrics]
minimum_sample_size = 3
evaluate_every_n = 2
[suggestions]
cooldown_ms = 10000.0
[suggestions.frustration]
low = 20.0
medium = 50.0
high = 70.0
[remote]
enabled = true
base_url = "http://analysis.test"
timeout_s = 0.5
min_confidence = 80.0
[logging]
level = "DEBUG"
"""
    config_path = tmp_path / "test.toml"
    config_path.write_text(toml_content)
    return load_config(str(config_path))


@pytest.fixture
def records_factory():
    return make_records


@pytest.fixture
def elements() -> list[InteractiveElement]:
    return [
        InteractiveElement(id="leo", position=Point(145, 372), size=Size(100, 100)),
        InteractiveElement(id="star", position=Point(20, 20), size=Size(40, 40)),
        InteractiveElement(id="hidden", position=Point(300, 700), size=Size(60, 60), visible=False),
    ]
