# Copyright (c) Syntropy Systems
"""Configuration management for odesweep."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import cast

import yaml

from odesweep.model import SolverControl

CONFIG_DIR_NAME = ".odesweep"
CONFIG_FILE_NAME = "config.yaml"


@dataclass
class OdesweepConfig:
    """Configuration for odesweep."""

    # Number of times each solution is sampled at when finding extremes
    n_points_for_extremes: int = 501

    # Level for the CLI's log handler
    log_level: str = "WARNING"

    # Solver defaults, overridden by a sweep file's 'control' section
    rtol: float = 1e-6
    atol: float = 1e-6
    max_steps: int = 10000
    method: str = "DOP853"

    def solver_control(self, overrides: dict[str, object] | None = None) -> SolverControl:
        """Build solver control from these defaults and any overrides."""
        data: dict[str, object] = {
            "method": self.method,
            "rtol": self.rtol,
            "atol": self.atol,
            "max_steps": self.max_steps,
        }
        if overrides:
            data.update(overrides)
        return SolverControl.model_validate(data)


def find_config_dir(start_path: Path | None = None) -> Path | None:
    """Find the nearest .odesweep directory by walking up from start_path.

    Returns None if no .odesweep directory is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        config_dir = current / CONFIG_DIR_NAME
        if config_dir.is_dir():
            return config_dir
        current = current.parent

    # Check root
    config_dir = current / CONFIG_DIR_NAME
    if config_dir.is_dir():
        return config_dir

    return None


def get_global_config_dir() -> Path:
    """Get the global odesweep config directory (~/.odesweep)."""
    return Path.home() / CONFIG_DIR_NAME


def load_config(config_dir: Path | None = None) -> OdesweepConfig:
    """Load configuration from .odesweep/config.yaml or defaults.

    Looks for config in:
    1. Provided config_dir
    2. Nearest .odesweep directory walking up
    3. ~/.odesweep/config.yaml
    4. Defaults
    """
    config = OdesweepConfig()

    config_path = None

    if config_dir is not None:
        config_path = config_dir / CONFIG_FILE_NAME
    else:
        found_dir = find_config_dir()
        if found_dir is not None:
            config_path = found_dir / CONFIG_FILE_NAME
        else:
            global_config = get_global_config_dir() / CONFIG_FILE_NAME
            if global_config.exists():
                config_path = global_config

    if config_path is not None and config_path.exists():
        with config_path.open() as f:
            data = cast("dict[str, object]", yaml.safe_load(f) or {})

        n_points = data.get("n_points_for_extremes")
        if isinstance(n_points, int) and n_points >= 1:
            config.n_points_for_extremes = n_points
        log_level = data.get("log_level")
        if isinstance(log_level, str) and isinstance(
            logging.getLevelName(log_level.upper()), int
        ):
            config.log_level = log_level.upper()
        for key in ("rtol", "atol"):
            value = data.get(key)
            if isinstance(value, (int, float)) and value > 0:
                setattr(config, key, float(value))
        max_steps = data.get("max_steps")
        if isinstance(max_steps, int) and max_steps >= 1:
            config.max_steps = max_steps
        method = data.get("method")
        if isinstance(method, str):
            config.method = method

    return config
