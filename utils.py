# utils.py
"""
Utility functions for the galaxy application.

This module provides helper functions (logging setup, configuration
loading, color parsing and parameter import/export) that are used across
different parts of the application but do not belong to the generator or
the renderer.
"""
import logging
import logging.handlers
import json
import os
import pygame
from typing import Any, Dict, List, Optional, Sequence, Tuple

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary containing a "logging" key with "level",
#       "format", and "log_file" sub-keys.
#   - Side Effects: Configures the root Python logger with a console handler
#     and a rotating file handler. Creates the log directory if needed.
#
# export_parameters(params, rotation_points, density_points, path, rotation_speed_multiplier) -> None:
#   - Side Effects: Writes a JSON document with every galaxy parameter,
#     the animation speed multiplier and both curves' control points.
#
# import_parameters(path) -> Tuple[GalaxyParameters, list, list, float]:
#   - Outputs: The parameters, the rotation and density control points
#     (None when absent) and the speed multiplier (default 0.1).

DEFAULT_ROTATION_SPEED_MULTIPLIER = 0.1


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to both the console and a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/galaxy.log')

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(log_level)
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotates when the log reaches 1MB, keeps 5 backup logs.
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path, maxBytes=1024*1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Numba's compiler is extremely chatty at DEBUG level.
    logging.getLogger('numba').setLevel(logging.WARNING)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}. Log file path: {log_file_path}")


def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise


def parse_color(value: Any) -> Tuple[float, float, float]:
    """
    Converts a color to an RGB tuple of floats in [0, 1].

    Accepts anything pygame.Color understands (e.g. "#ffaa44", "gold") or a
    list of three numbers, either 0-255 integers or 0-1 floats.
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 3:
            raise ValueError(f"Expected an RGB triple, got {value!r}.")
        if any(float(c) > 1.0 for c in value):
            return tuple(min(255.0, max(0.0, float(c))) / 255.0 for c in value)
        return tuple(min(1.0, max(0.0, float(c))) for c in value)

    try:
        color = pygame.Color(value)
    except (ValueError, TypeError) as e:
        logging.error(f"Could not parse color {value!r}: {e}")
        raise ValueError(f"Invalid color: {value!r}") from e
    return (color.r / 255.0, color.g / 255.0, color.b / 255.0)


def color_to_hex(rgb: Sequence[float]) -> str:
    """Formats an RGB triple in [0, 1] as "#rrggbb"."""
    r, g, b = (int(round(min(1.0, max(0.0, c)) * 255)) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def _points_from_json(points: Optional[list]) -> Optional[List[Tuple[float, float]]]:
    if points is None:
        return None
    result = []
    for p in points:
        if isinstance(p, dict):
            result.append((float(p['x']), float(p['y'])))
        else:
            result.append((float(p[0]), float(p[1])))
    return result


def export_parameters(
    params,
    rotation_points: Sequence[Tuple[float, float]],
    density_points: Sequence[Tuple[float, float]],
    path: str,
    rotation_speed_multiplier: float = DEFAULT_ROTATION_SPEED_MULTIPLIER
) -> None:
    """Writes galaxy parameters and curve control points to a JSON file."""
    data = params.to_dict()
    data['inside_color'] = color_to_hex(params.inside_color)
    data['outside_color'] = color_to_hex(params.outside_color)
    data['rotation_speed_multiplier'] = rotation_speed_multiplier
    data['rotation_curve_points'] = [[float(x), float(y)] for x, y in rotation_points]
    data['density_curve_points'] = [[float(x), float(y)] for x, y in density_points]

    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
    logging.info(f"Galaxy parameters exported to {path}.")


def import_parameters(path: str):
    """
    Reads a parameter file written by export_parameters().

    Returns:
        Tuple: (GalaxyParameters, rotation_points, density_points,
        rotation_speed_multiplier). Missing curves are returned as None.
    """
    from galaxy import GalaxyParameters

    data = load_config(path)
    rotation_points = _points_from_json(data.pop('rotation_curve_points', None))
    density_points = _points_from_json(data.pop('density_curve_points', None))
    multiplier = float(data.pop('rotation_speed_multiplier', DEFAULT_ROTATION_SPEED_MULTIPLIER))

    params = GalaxyParameters.from_config(data)
    logging.info(f"Galaxy parameters imported from {path}.")
    return params, rotation_points, density_points, multiplier
