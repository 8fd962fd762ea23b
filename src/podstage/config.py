"""Configuration management for podstage."""

import os
import tomllib
from datetime import timedelta
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field

from .constants import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_EXPIRE_PREPARED,
    DEFAULT_GC_GRACE_PERIOD,
    DEFAULT_PODS_DIR,
)


class PodsConfig(BaseModel):
    """Where the pod directory set lives."""

    dir: Path = Field(default=DEFAULT_PODS_DIR, description="Root of the pod directory set")


class GCConfig(BaseModel):
    """Garbage collection windows."""

    grace_period_seconds: int = Field(
        default=DEFAULT_GC_GRACE_PERIOD,
        ge=0,
        description="Minimum time an exited pod stays in garbage before deletion",
    )
    expire_prepared_seconds: int = Field(
        default=DEFAULT_EXPIRE_PREPARED,
        description="Age after which an unused prepared pod is collected (<= 0 disables)",
    )

    @property
    def grace_period(self) -> timedelta:
        return timedelta(seconds=self.grace_period_seconds)

    @property
    def expire_prepared(self) -> timedelta | None:
        if self.expire_prepared_seconds <= 0:
            return None
        return timedelta(seconds=self.expire_prepared_seconds)


class PodStageConfig(BaseModel):
    """Root configuration for podstage."""

    pods: PodsConfig = Field(default_factory=PodsConfig)
    gc: GCConfig = Field(default_factory=GCConfig)


def get_config_path(override: Path | None = None) -> Path:
    """Resolve the config file location.

    An explicit path wins over the environment variable, which wins over
    the system default.
    """
    if override is not None:
        return override
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None) -> PodStageConfig:
    """Load config from a TOML file.

    Args:
        config_path: Path to config.toml, resolved with get_config_path if omitted

    Returns:
        Loaded configuration, or defaults if the file doesn't exist
    """
    path = get_config_path(config_path)
    if not path.exists():
        return PodStageConfig()
    with open(path, "rb") as f:
        data = tomllib.load(f)
    return PodStageConfig.model_validate(data)


def write_config_template(config_path: Path, pods_dir: Path | None = None) -> Path:
    """Write a config.toml populated with the defaults.

    Args:
        config_path: Destination file, parent directories are created
        pods_dir: Pod directory root to record instead of the default

    Returns:
        Path to the written config file
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)
    template = {
        "pods": {"dir": str(pods_dir or DEFAULT_PODS_DIR)},
        "gc": {
            "grace_period_seconds": DEFAULT_GC_GRACE_PERIOD,
            "expire_prepared_seconds": DEFAULT_EXPIRE_PREPARED,
        },
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path


# Set by the cli.py main callback
_active: PodStageConfig | None = None


def get_active_config() -> PodStageConfig:
    """Get the configuration selected by the CLI, or defaults."""
    if _active is None:
        return PodStageConfig()
    return _active


def set_active_config(config: PodStageConfig) -> None:
    """Set the configuration used by CLI commands."""
    global _active
    _active = config
