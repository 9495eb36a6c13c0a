# constants.py
"""
Application-level constants.

These values are static and do not change between galaxy generations.
They are fundamental to the application's framework, such as rendering
properties, default window sizes, or the fixed numeric settings of the
particle generator that are not part of the experimental configuration.
"""

# Visualization settings
# Set to True to run in borderless fullscreen mode.
# Set to False to run in a fixed-size window (1500x900).
FULLSCREEN = False
WINDOW_WIDTH = 1500
WINDOW_HEIGHT = 900
UI_PANEL_WIDTH = 300
FPS = 60
BACKGROUND_COLOR = (4, 4, 12) # Near black
UI_BACKGROUND_ALPHA = 100

# --- Particle Rendering ---
# Pixel radius of a particle with base size 1.0.
PIXELS_PER_SIZE_UNIT = 0.35
# Alpha value for the light halo around cloud particles (0-255).
CLOUD_HALO_ALPHA = 40
# A halo this many times larger than the configured halo size marks a cloud particle.
CLOUD_HALO_THRESHOLD = 1.5

# --- Rotation Curve ---
# Scene units per kiloparsec.
KPC_SCALE = 0.1
# Default radius (kpc) where the closed-form curve stops rising.
DEFAULT_R_PEAK = 2.0
# Default radius (kpc) where the flat plateau ends and the falloff begins.
DEFAULT_R_FLAT = 8.0
# Default maximum rotation speed (km/s) when none is configured.
DEFAULT_V_MAX = 220.0
# Conversion from km/s to radians per unit of elapsed time in the animation.
ANGULAR_SPEED_SCALE = 0.01

# --- Spiral Arms ---
# Offset added to the radius inside the logarithm of the spiral equation.
SPIRAL_LOG_OFFSET = 0.1
# Arm width is multiplied by this before being used as the Gaussian width.
ARM_WIDTH_FACTOR = 0.7

# --- Disk Geometry ---
DISK_THICKNESS = 0.3
JITTER_PLANAR = 0.1
JITTER_VERTICAL = 0.05
SIZE_VARIATION = 0.3

# --- Cloud Particles ---
CLOUD_BRIGHTNESS_MULTIPLIER = 2.5

# --- Radial Rejection Sampling ---
DENSITY_SCAN_STEPS = 100
MAX_REJECTION_ATTEMPTS = 100
MIN_MAX_PROBABILITY = 0.001
MIN_AREA_ELEMENT = 0.001

# --- NaN Repair Defaults ---
NAN_COLOR_FILL = 0.5
NAN_BRIGHTNESS_FILL = 1.0

# Default Bezier control points for both editable curves (concave shape,
# interior points pulled toward the lower left corner).
DEFAULT_CURVE_POINTS = [
    (0.0, 1.0),
    (0.2, 0.2),
    (0.2, 0.1),
    (1.0, 0.0),
]
