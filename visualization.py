# visualization.py
"""
Handles the visualization of the galaxy animation using Pygame.
"""
import logging
import pygame
import numpy as np
from typing import Dict, Optional, Tuple

from constants import (
    BACKGROUND_COLOR, FULLSCREEN, WINDOW_WIDTH, WINDOW_HEIGHT, UI_PANEL_WIDTH,
    FPS, UI_BACKGROUND_ALPHA, PIXELS_PER_SIZE_UNIT, CLOUD_HALO_ALPHA,
    CLOUD_HALO_THRESHOLD
)
from galaxy import GalaxyParameters
from particle import ParticleSet
from rotation import RotationModel
from simulation import AnimationDriver


# --- Data Contracts ---
#
# class Visualizer:
#   - __init__(self, vis_params: Optional[dict] = None):
#     - Inputs:
#       - vis_params: The "visualization" config section
#         ("scale_pixels_per_unit", "tilt" in radians).
#     - Side Effects: Initializes Pygame and creates a display surface.
#
#   - draw(self, particles, driver, params, rotation_model) -> bool:
#     - Outputs:
#       - bool: False if the user has quit, True otherwise.
#     - Side Effects: Renders particles and UI, handles events. Keyboard
#       input may flip the driver's direction, change its speed multiplier,
#       or set regenerate_requested / export_requested for the caller.


def parameter_rows(params: GalaxyParameters, driver: AnimationDriver) -> Dict[str, object]:
    """Label -> value pairs shown in the parameter panel."""
    return {
        "Particles": params.count,
        "Radius": params.radius,
        "Arms": params.arm_count,
        "Arm Tightness": params.arm_tightness,
        "Arm Density": params.arm_density,
        "Arm Width": params.arm_width,
        "Viscosity": params.viscosity,
        "Cloud Ratio": params.cloud_ratio,
        # Sign of the angle increment; the on-screen sense depends on the tilt.
        "Direction": f"{driver.rotation_direction:+d}",
        "Speed Multiplier": driver.rotation_speed_multiplier,
        "Time": driver.elapsed_time,
    }


class Visualizer:
    """
    Renders the animated galaxy and a read-only parameter panel.
    """
    def __init__(self, vis_params: Optional[dict] = None):
        """
        Initializes Pygame and the display window.
        """
        pygame.init()
        pygame.font.init()

        if FULLSCREEN:
            display_info = pygame.display.Info()
            width, height = display_info.current_w, display_info.current_h
            self.screen = pygame.display.set_mode((width, height), pygame.FULLSCREEN)
        else:
            width, height = WINDOW_WIDTH, WINDOW_HEIGHT
            self.screen = pygame.display.set_mode((width, height))

        # The galaxy view is the total width minus the UI panel
        self.sim_width = width - UI_PANEL_WIDTH
        self.sim_height = height
        self.sim_surface = pygame.Surface((self.sim_width, self.sim_height))

        self.ui_panel_surface = pygame.Surface((UI_PANEL_WIDTH, self.sim_height), pygame.SRCALPHA)
        self.ui_panel_surface.fill((40, 40, 40, UI_BACKGROUND_ALPHA))

        pygame.display.set_caption("Spiral Galaxy")
        self.clock = pygame.time.Clock()

        vis_params = vis_params if vis_params is not None else {}
        self.scale = float(vis_params.get('scale_pixels_per_unit', min(self.sim_width, self.sim_height) / 15.0))
        self.tilt = float(vis_params.get('tilt', 0.9))
        self.center = (self.sim_width / 2.0, self.sim_height / 2.0)

        try:
            self.font_title = pygame.font.SysFont("Segoe UI", 16, bold=True)
            self.font_main = pygame.font.SysFont("Segoe UI", 14)
            self.font_main_bold = pygame.font.SysFont("Segoe UI", 14, bold=True)
        except pygame.error:
            logging.warning("Segoe UI font not found, falling back to default sans-serif.")
            self.font_title = pygame.font.SysFont(None, 20, bold=True)
            self.font_main = pygame.font.SysFont(None, 18)
            self.font_main_bold = pygame.font.SysFont(None, 18, bold=True)

        self.text_color_title = (255, 255, 255)
        self.text_color_key = (200, 200, 200)
        self.text_color_value = (255, 255, 255)
        self.param_box_color = (60, 60, 60, 160)
        self.param_box_spacing = 4
        self.panel_x = self.sim_width + 20
        self.panel_width = UI_PANEL_WIDTH - 40
        self.curve_rect = pygame.Rect(self.panel_x, 40, self.panel_width, 120)

        self.halo_cache: Dict[Tuple[int, Tuple[int, int, int]], pygame.Surface] = {}

        # Set by key presses; the caller acts on them and clears them.
        self.regenerate_requested = False
        self.export_requested = False

        logging.info(f"Visualizer initialized with Pygame display ({width}x{height}).")

    def project(self, positions: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Projects (N, 3) scene positions onto the galaxy view. The disk plane
        (x, z) is viewed from above and tilted toward the camera.
        """
        cos_t, sin_t = np.cos(self.tilt), np.sin(self.tilt)
        screen_x = self.center[0] + positions[:, 0] * self.scale
        screen_y = self.center[1] + (positions[:, 2] * cos_t - positions[:, 1] * sin_t) * self.scale
        return screen_x.astype(np.int32), screen_y.astype(np.int32)

    def _particle_intensities(self, particles: ParticleSet, params: GalaxyParameters) -> np.ndarray:
        """Per-particle RGB contribution (0-255 scale) before additive blending."""
        sizes = particles.sizes
        if params.random_size:
            sizes = np.clip(sizes, params.size_range[0], params.size_range[1])
        size_factor = sizes / params.size
        # Glow intensity is tuned for a bloom pass; scale it down for plain pixels.
        gain = params.glow_intensity * 0.125 * particles.brightnesses * size_factor
        return particles.colors * gain[:, np.newaxis] * 255.0

    def _get_halo_surface(self, radius: int, color: Tuple[int, int, int]) -> pygame.Surface:
        """Pre-rendered, cached halo circle for cloud particles."""
        key = (radius, color)
        surf = self.halo_cache.get(key)
        if surf is None:
            surf = pygame.Surface((radius * 2, radius * 2), pygame.SRCALPHA)
            pygame.draw.circle(surf, (*color, CLOUD_HALO_ALPHA), (radius, radius), radius)
            self.halo_cache[key] = surf
        return surf

    def _draw_particles(self, particles: ParticleSet, driver: AnimationDriver, params: GalaxyParameters):
        positions = driver.positions_at(particles)
        xs, ys = self.project(positions)
        inside = (xs >= 0) & (xs < self.sim_width) & (ys >= 0) & (ys < self.sim_height)

        # Additive splat of every particle into a float image
        image = np.zeros((self.sim_width, self.sim_height, 3), dtype=np.float32)
        intensities = self._particle_intensities(particles, params)
        np.add.at(image, (xs[inside], ys[inside]), intensities[inside])
        image[...] += BACKGROUND_COLOR
        pygame.surfarray.blit_array(self.sim_surface, np.clip(image, 0, 255).astype(np.uint8))

        # Cloud particles get a soft halo on top
        cloud_mask = inside & (particles.halo_sizes > params.halo_size * CLOUD_HALO_THRESHOLD)
        for i in np.flatnonzero(cloud_mask):
            radius = max(2, int(particles.halo_sizes[i] * particles.sizes[i] * PIXELS_PER_SIZE_UNIT * 4))
            color = tuple(int(c) for c in np.clip(particles.colors[i] * 255.0, 0, 255))
            halo_surf = self._get_halo_surface(radius, color)
            self.sim_surface.blit(
                halo_surf, (int(xs[i]) - radius, int(ys[i]) - radius), special_flags=pygame.BLEND_RGB_ADD
            )

    def _draw_rotation_curve(self, rotation_model: RotationModel):
        """Plots the base rotation curve from centre to edge."""
        rect = self.curve_rect
        pygame.draw.rect(self.screen, self.param_box_color, rect, border_radius=6)
        radii, speeds = rotation_model.profile(samples=rect.width // 2)
        top = max(float(speeds.max()), 1e-6)
        points = [
            (rect.left + r / radii[-1] * (rect.width - 1), rect.bottom - 1 - s / top * (rect.height - 1))
            for r, s in zip(radii, speeds)
        ]
        if len(points) > 1:
            pygame.draw.lines(self.screen, (100, 170, 255), False, points, 2)
        title = self.font_title.render(f"Rotation curve (max {top:.0f} km/s)", True, self.text_color_title)
        self.screen.blit(title, (rect.left, rect.top - 25))

    def _draw_galaxy_parameters(self, params: GalaxyParameters, driver: AnimationDriver):
        """Renders galaxy parameters in a list of individual, transparent boxes."""
        shown = parameter_rows(params, driver)

        box_v_padding = 8
        line_height = self.font_main.get_linesize()
        key_value_gap = 20
        current_y = self.curve_rect.bottom + 20
        key_max_width = (self.panel_width - key_value_gap) / 2 - box_v_padding
        key_column_right_x = self.panel_x + box_v_padding + key_max_width
        value_column_left_x = key_column_right_x + key_value_gap

        for key, value in shown.items():
            display_value = f"{value:.2f}" if isinstance(value, float) else str(value)
            key_surfs = self._render_text_wrapped(key, self.font_main_bold, key_max_width, self.text_color_key)
            value_surfs = self._render_text_wrapped(display_value, self.font_main, key_max_width, self.text_color_value)

            num_lines = max(len(key_surfs), len(value_surfs))
            box_height = num_lines * line_height + (box_v_padding * 2)
            box_rect = pygame.Rect(self.panel_x, current_y, self.panel_width, box_height)
            pygame.draw.rect(self.screen, self.param_box_color, box_rect, border_radius=6)

            line_y = current_y + box_v_padding
            for surf in key_surfs:
                self.screen.blit(surf, surf.get_rect(topright=(key_column_right_x, line_y)))
                line_y += line_height
            line_y = current_y + box_v_padding
            for surf in value_surfs:
                self.screen.blit(surf, surf.get_rect(topleft=(value_column_left_x, line_y)))
                line_y += line_height

            current_y += box_height + self.param_box_spacing

        help_text = "R: regenerate  D: direction  +/-: speed  E: export"
        for surf in self._render_text_wrapped(help_text, self.font_main, self.panel_width, self.text_color_key):
            self.screen.blit(surf, (self.panel_x, current_y + 10))
            current_y += line_height

    def _render_text_wrapped(
        self, text: str, font: pygame.font.Font, max_width: float, color: tuple
    ) -> list:
        """
        Renders text, wrapping it to a new line if it exceeds max_width.
        Returns a list of rendered surfaces, one for each line.
        """
        lines = []
        current_line = ""
        for word in text.split(' '):
            test_line = f"{current_line} {word}".strip()
            if font.size(test_line)[0] <= max_width:
                current_line = test_line
            else:
                lines.append(current_line)
                current_line = word
        lines.append(current_line)
        return [font.render(line, True, color) for line in lines if line]

    def _handle_key(self, key: int, driver: AnimationDriver) -> bool:
        if key == pygame.K_ESCAPE:
            logging.info("ESC key pressed. Shutting down visualizer.")
            return False
        if key == pygame.K_r:
            self.regenerate_requested = True
        elif key == pygame.K_e:
            self.export_requested = True
        elif key == pygame.K_d:
            driver.set_rotation_direction(-driver.rotation_direction)
        elif key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            driver.set_rotation_speed_multiplier(driver.rotation_speed_multiplier * 1.25)
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            driver.set_rotation_speed_multiplier(driver.rotation_speed_multiplier / 1.25)
        return True

    def tick(self) -> float:
        """Waits for the next frame and returns the elapsed wall-clock seconds."""
        return self.clock.tick(FPS) / 1000.0

    def draw(
        self,
        particles: ParticleSet,
        driver: AnimationDriver,
        params: GalaxyParameters,
        rotation_model: RotationModel
    ) -> bool:
        """
        Draws all particles and UI, and handles events.

        Returns:
            bool: False if the application should exit, True otherwise.
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False
            if event.type == pygame.KEYDOWN:
                if not self._handle_key(event.key, driver):
                    return False

        self._draw_particles(particles, driver, params)
        self.screen.blit(self.sim_surface, (0, 0))

        self.screen.blit(self.ui_panel_surface, (self.sim_width, 0))
        self._draw_rotation_curve(rotation_model)
        self._draw_galaxy_parameters(params, driver)

        pygame.display.flip()
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()
