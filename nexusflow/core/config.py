"""Engine configuration loaded from ``.nexusflow/config.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator

CONFIG_DIR = ".nexusflow"
CONFIG_FILE = "config.yaml"

DEFAULT_CONFIG_YAML = """# Nexus Flow engine configuration

# Simulated handler latency (milliseconds), drawn uniformly per node.
# Set both to 0 to run without artificial delay.
min_latency_ms: 300
max_latency_ms: 500

# Per-node timeout in seconds (null disables)
node_timeout: 30

# Logging level for the CLI: DEBUG, INFO, WARNING, ERROR.
# INFO repeats the live trace on stderr; --verbose forces DEBUG.
log_level: WARNING
"""


class EngineConfig(BaseModel):
    """Runtime knobs for the execution engine."""

    min_latency_ms: float = Field(default=0.0, ge=0)
    max_latency_ms: float = Field(default=0.0, ge=0)
    node_timeout: float | None = Field(default=None, gt=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @model_validator(mode="after")
    def check_latency_range(self) -> "EngineConfig":
        if self.max_latency_ms < self.min_latency_ms:
            raise ValueError(
                f"max_latency_ms ({self.max_latency_ms}) is below "
                f"min_latency_ms ({self.min_latency_ms})"
            )
        return self


def config_path(repo_path: Path) -> Path:
    return repo_path / CONFIG_DIR / CONFIG_FILE


def load_config(repo_path: Path) -> EngineConfig:
    """Load engine config from ``<repo_path>/.nexusflow/config.yaml``.

    A missing or empty file yields defaults.

    Raises:
        yaml.YAMLError: If the file is not valid YAML
        pydantic.ValidationError: If a value is out of range
        ValueError: If the top level is not a mapping
    """
    path = config_path(repo_path)
    if not path.exists():
        return EngineConfig()

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return EngineConfig()
    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config in '{path}': expected a mapping, got {type(data).__name__}"
        )
    return EngineConfig(**data)
