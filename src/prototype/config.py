"""Configuration management.

Process-wide defaults for the clone engine, loaded from an optional TOML
file and ``PROTOTYPE_*`` environment variables. Uses pydantic-settings for
validation and env var overriding. Per-call options (see ``options``)
fall back to these values.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings


class PrototypeSettings(BaseSettings):
    """Engine defaults."""

    tag_key: str = "prototype"
    getter_prefix: str = ""
    setter_prefix: str = ""
    # Cycle tracking starts once this many references have been followed.
    cycle_depth: int = Field(default=64, ge=0)
    interrupt_on_error: bool = True
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"

    model_config = {"env_prefix": "PROTOTYPE_"}


_settings: PrototypeSettings | None = None


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> PrototypeSettings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to a TOML file; keys live at the top level or
            under a ``[prototype]`` table.
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                loaded = tomli.load(f)
            data = dict(loaded.get("prototype", loaded))

    if overrides:
        data.update(overrides)

    return PrototypeSettings(**data)


def get_settings() -> PrototypeSettings:
    """Process-wide settings, loaded lazily from the environment."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def configure(settings: PrototypeSettings) -> None:
    """Install ``settings`` as the process-wide defaults."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Forget cached settings so the next lookup re-reads the environment."""
    global _settings
    _settings = None
