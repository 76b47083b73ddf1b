"""
Exception types raised by the Mandelbot engine.

Failures only happen while a view is being set up or re-seeded; the
escape-time and coloring code paths never raise for valid input.
"""


class MandelbotError(Exception):
    """Base class for all engine errors."""


class InitializationError(MandelbotError):
    """A grid or view could not be created (bad dimensions, no surface)."""


class DegenerateRegionError(MandelbotError):
    """A plane region has a half-width or half-height that is not positive."""


class CalibrationAnomaly(MandelbotError):
    """A calibration trial never reached the timeslice threshold."""
