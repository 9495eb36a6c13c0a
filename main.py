# main.py
"""
Main entry point for the spiral galaxy visualization.

This script orchestrates the entire application lifecycle:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Builds the galaxy parameters and snapshots the editable curves.
4. Generates the particles and runs the animation loop.
5. Handles clean shutdown.
"""
import logging
import sys
import time
from typing import Any, Dict

from utils import setup_logging, load_config, export_parameters, import_parameters


def build_curves(curve_params: Dict[str, Any]):
    """Creates the rotation and density curves enabled in the config."""
    from curve import BezierCurve

    rotation_curve = None
    density_curve = None
    if curve_params.get('use_rotation_curve', True):
        rotation_curve = BezierCurve(curve_params.get('rotation_curve_points'))
    if curve_params.get('use_density_curve', True):
        density_curve = BezierCurve(curve_params.get('density_curve_points'))
    return rotation_curve, density_curve


def main():
    """
    The main function to run the galaxy animation.

    An optional command-line argument names a parameter file written by the
    export key; it overrides the galaxy and curve sections of the config.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config('config.json')
    except Exception as e:
        print(f"FATAL: Could not load config.json. Error: {e}")
        return

    setup_logging(config)
    logging.info("--- Spiral Galaxy Starting ---")

    galaxy_section = config.get('galaxy', {})
    curve_params = config.get('curves', {})
    run_params = config.get('run_control', {})
    vis_params = config.get('visualization', {})

    from curve import BezierCurve
    from galaxy import GalaxyParameters, generate, curve_functions
    from rotation import RotationModel
    from simulation import AnimationDriver
    from visualization import Visualizer

    rotation_curve, density_curve = build_curves(curve_params)
    params = GalaxyParameters.from_config(galaxy_section)
    speed_multiplier = run_params.get('rotation_speed_multiplier', 0.1)

    if len(sys.argv) > 1:
        params, rotation_points, density_points, speed_multiplier = import_parameters(sys.argv[1])
        if rotation_points is not None:
            rotation_curve = BezierCurve(rotation_points)
        if density_points is not None:
            density_curve = BezierCurve(density_points)

    # --- Component Initialization ---
    visualizer = Visualizer(vis_params=vis_params)
    driver = AnimationDriver(params.rotation_direction, speed_multiplier)

    rotation_fn, density_fn = curve_functions(params, rotation_curve, density_curve)
    particles = generate(params, rotation_fn, density_fn)
    rotation_model = RotationModel(params, rotation_fn)

    log_throttle = run_params.get('log_throttle_steps', 300)
    max_steps = run_params.get('max_steps', 0)  # 0 runs until the window is closed

    running = True
    step_num = 0
    while running:
        driver.advance(visualizer.tick())
        step_num += 1

        if not visualizer.draw(particles, driver, params, rotation_model):
            running = False

        if visualizer.regenerate_requested:
            visualizer.regenerate_requested = False
            # A new seed each time; a fixed seed would regenerate the same galaxy.
            params = params.replace(seed=None, rotation_direction=driver.rotation_direction)
            rotation_fn, density_fn = curve_functions(params, rotation_curve, density_curve)
            particles = generate(params, rotation_fn, density_fn)
            rotation_model = RotationModel(params, rotation_fn)
            driver.reset()

        if visualizer.export_requested:
            visualizer.export_requested = False
            default_points = BezierCurve().get_control_points()
            export_parameters(
                params.replace(rotation_direction=driver.rotation_direction),
                rotation_curve.get_control_points() if rotation_curve else default_points,
                density_curve.get_control_points() if density_curve else default_points,
                f"galaxy-params-{int(time.time() * 1000)}.json",
                driver.rotation_speed_multiplier,
            )

        if step_num % log_throttle == 0:
            logging.info(f"Frame {step_num} | Animation time {driver.elapsed_time:.2f}")

        if max_steps and step_num >= max_steps:
            logging.info(f"Reached max_steps ({max_steps}). Stopping animation.")
            running = False

    visualizer.close()
    logging.info("--- Spiral Galaxy Shutting Down ---")


if __name__ == "__main__":
    main()
