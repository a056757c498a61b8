"""Configuration loading utilities for pointrender."""

from .schema import (
    ScenarioConfig,
    load_config,
)

__all__ = ["ScenarioConfig", "load_config"]
