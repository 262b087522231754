"""
Configuration loader for the Rectification module.

Loads and validates configuration from config.yaml file.
"""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from src.common.types import validate_pixel
from src.rectification.types import (
    CornerConfig,
    FilterType,
    Interpolation,
    OutputConfig,
    RectificationConfig,
    ScanMode,
    SolverConfig,
    WarpConfig,
    parse_enum,
)

logger = logging.getLogger(__name__)

# Default configuration path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> RectificationConfig:
    """
    Load rectification configuration from YAML file.

    Args:
        config_path: Path to the configuration YAML file.

    Returns:
        Validated RectificationConfig object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config is invalid or missing required fields.

    Example:
        >>> config = load_config()
        >>> print(config.output.max_dimension)
        2400
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading rectification config from {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    try:
        config = _parse_config(raw_config)
        _validate_config(config)
        logger.info("Successfully loaded rectification configuration")
        return config
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration file: {e}") from e


def _parse_config(raw: Dict[str, Any]) -> RectificationConfig:
    """Parse raw dictionary into structured config objects."""
    return RectificationConfig(
        solver=SolverConfig(
            pivot_tolerance=float(raw["solver"]["pivot_tolerance"]),
            collinearity_tolerance=float(raw["solver"]["collinearity_tolerance"]),
            strict_pivots=bool(raw["solver"]["strict_pivots"]),
        ),
        warp=WarpConfig(
            interpolation=parse_enum(
                Interpolation, raw["warp"]["interpolation"], "interpolation"
            ),
            background_fill=validate_pixel(raw["warp"]["background_fill"]),
            workers=int(raw["warp"]["workers"]),
        ),
        output=OutputConfig(
            max_dimension=int(raw["output"]["max_dimension"]),
            min_edge_length=float(raw["output"]["min_edge_length"]),
            require_convex=bool(raw["output"]["require_convex"]),
            default_filter=parse_enum(
                FilterType, raw["output"]["default_filter"], "default_filter"
            ),
        ),
        corners=CornerConfig(
            scan_mode=parse_enum(ScanMode, raw["corners"]["scan_mode"], "scan_mode"),
        ),
    )


def _validate_config(config: RectificationConfig) -> None:
    """
    Validate configuration values for logical consistency.

    Raises:
        ValueError: If any configuration value is invalid.
    """
    if config.solver.pivot_tolerance <= 0:
        raise ValueError("pivot_tolerance must be positive")

    if config.solver.collinearity_tolerance < 0:
        raise ValueError("collinearity_tolerance cannot be negative")

    if config.warp.workers < 1:
        raise ValueError("workers must be at least 1")

    if config.output.max_dimension < 1:
        raise ValueError("max_dimension must be at least 1")

    if config.output.min_edge_length < 0:
        raise ValueError("min_edge_length cannot be negative")

    logger.debug("Configuration validation passed")
