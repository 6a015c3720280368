"""
config.py - Engine Constants
=============================
Tuning values shared by every part of the engine. Anything an instance
needs to vary (gravity) is also a constructor argument; these are the
defaults.
"""

# ── Physics ───────────────────────────────────────────────────────────────────
DEFAULT_GRAVITY = 0.1          # shift per step = gravity * |y_a - y_b|

# ── Numerics ──────────────────────────────────────────────────────────────────
MINIMUM_FLUID_VOLUME = 0.00001 # anything smaller is treated as empty
POINT_TOLERANCE = 1e-6         # two vertices closer than this are the same point
MINIMUM_POTENTIAL = 1e-9       # heads smaller than this do not push fluid

# ── Generated networks ────────────────────────────────────────────────────────
DEFAULT_SITES = 40
DEFAULT_WIDTH = 300.0
DEFAULT_HEIGHT = 300.0
BORDER_PRECISION = 10          # decimal places used to detect border edges
