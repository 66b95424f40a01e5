from core.config import Config
from remote.analysis import RemoteAnalysisClient
from remote.sink import TelemetrySink


def create_remote(config: Config) -> RemoteAnalysisClient | None:
    """Create the remote analysis client if enabled."""
    if config.remote.enabled:
        return RemoteAnalysisClient(config.remote)
    return None


def create_sink(config: Config, session_id: str) -> TelemetrySink | None:
    """Create a per-session telemetry sink if enabled."""
    if config.telemetry.enabled:
        return TelemetrySink(config.telemetry, session_id=session_id)
    return None
