"""Global configuration — loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class NeuralGraphSettings(BaseSettings):
    workspace_dir: Path = Path(".neuralgraph")
    db_path: Path = Path(".neuralgraph/graph.db")
    station_id: str = "iot-hub"
    log_level: str = "INFO"

    # Evolution settings
    evolution_interval_minutes: int = 15
    evolution_initial_delay: int = 0  # Seconds to wait before the first cycle

    # Routing settings
    classifier_timeout_seconds: float = 2.0

    # HTTP API
    api_host: str = "127.0.0.1"
    api_port: int = 8430

    model_config = {"env_prefix": "NEURALGRAPH_"}


settings = NeuralGraphSettings()
