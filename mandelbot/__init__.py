"""
Mandelbot - Incremental Mandelbrot Set Explorer

Computes Mandelbrot views a little at a time so the display never
blocks: each view's grid is advanced by a calibrated number of
escape-time iterations per tick, round-robin across every open view.
Pygame provides the window; Numba compiles the float hot loop; deep
zooms can switch to decimal arithmetic.

Quick Start:
    from mandelbot import run
    run()

Or from command line:
    python -m mandelbot

Package Structure:
    - compute.py: Escape-time iteration (Numba JIT for floats)
    - numeric.py: Float and decimal arithmetic backends
    - colormaps.py: Palettes and smooth coloring
    - calibrate.py: Iterations-per-timeslice measurement
    - grid.py: Resumable, budgeted grid computation
    - scheduler.py: Round-robin cooperative scheduler
    - viewport.py: Views, pan/zoom remapping, persistence
    - config.py: settings.json and ViewConfig
    - app.py: Pygame window and event loop
"""

from .app import run, MandelbrotApp
from .calibrate import IterationBudget, calibrate
from .colormaps import PALETTES, color_for, get_palette, list_palette_names
from .compute import EscapeResult, evaluate
from .config import ViewConfig, load_settings
from .errors import (
    CalibrationAnomaly,
    DegenerateRegionError,
    InitializationError,
    MandelbotError,
)
from .grid import DirtyRect, GridComputer, PlaneRegion
from .numeric import DecimalBackend, FloatBackend, get_backend
from .scheduler import IdleQueue, Scheduler
from .viewport import Viewport

__version__ = "1.0.0"
__all__ = [
    "run",
    "MandelbrotApp",
    "IterationBudget",
    "calibrate",
    "PALETTES",
    "color_for",
    "get_palette",
    "list_palette_names",
    "EscapeResult",
    "evaluate",
    "ViewConfig",
    "load_settings",
    "CalibrationAnomaly",
    "DegenerateRegionError",
    "InitializationError",
    "MandelbotError",
    "DirtyRect",
    "GridComputer",
    "PlaneRegion",
    "DecimalBackend",
    "FloatBackend",
    "get_backend",
    "IdleQueue",
    "Scheduler",
    "Viewport",
]
