"""
Palette definitions for Mandelbrot pixels.

A palette turns an escape-time result into an (r, g, b) tuple. Points in
the set are always black; escaped points are colored from a smooth
(continuous) iteration count so that adjacent escape bands blend instead
of forming visible steps.

Palette ids:
    0 MONOCHROME   white for every escaped point
    1 HSV_BRIGHT   full saturation and value, hue from the smooth count
    2 HSV_MUTED    value ramps up with the smooth count
    3 HSV_BLUE     the muted ramp with red and blue swapped; this is the
                   red/blue-swapped muted-HSV variant, named for the blue
                   tint the swap gives the outer bands
    4 GRAYSCALE    gray level from the smooth count

The per-pixel functions are Numba-compiled so the grid scan kernel in
compute.py can color pixels without returning to Python. color_for() and
smooth_value() are the Python entry points taking an EscapeResult.

To add a palette, give it an id, a branch in pixel_color() and an entry
in the PALETTES dictionary at the bottom of this file.
"""

import math

import numpy as np
from numba import jit


PALETTE_MONOCHROME = 0
PALETTE_HSV_BRIGHT = 1
PALETTE_HSV_MUTED = 2
PALETTE_HSV_BLUE = 3
PALETTE_GRAYSCALE = 4

DEFAULT_PALETTE = PALETTE_GRAYSCALE

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)

LOG_BASE = 1.0 / math.log(2.0)
LOG_HALFBASE = math.log(0.5) * LOG_BASE


@jit(nopython=True, cache=True)
def _to_byte(value):
    """Truncate toward zero and keep the low 8 bits (0 for inf/nan)."""
    if not math.isfinite(value):
        return 0
    return int(value) & 0xff


@jit(nopython=True, cache=True)
def hsv_to_rgb(h, s, v):
    """
    Convert HSV to an RGB tuple using six 60-degree hue sectors.

    Args:
        h: Hue in degrees (0 to 360; larger values land in the last sector)
        s: Saturation (0.0 to 1.0)
        v: Value (clamped to at most 1.0)

    Returns:
        (r, g, b) tuple of ints 0-255
    """
    v = min(v, 1.0)

    hp = h / 60.0
    c = v * s
    x = c * (1 - abs(np.fmod(hp, 2.0) - 1))

    r = g = b = 0.0
    if hp < 1:
        r, g = c, x
    elif hp < 2:
        r, g = x, c
    elif hp < 3:
        g, b = c, x
    elif hp < 4:
        g, b = x, c
    elif hp < 5:
        r, b = x, c
    else:
        r, b = c, x

    m = v - c
    return (_to_byte((r + m) * 255), _to_byte((g + m) * 255), _to_byte((b + m) * 255))


@jit(nopython=True, cache=True)
def smooth_count(max_iter, remaining, last_real_sq, last_imag_sq):
    """Continuous iteration count from the raw escape-time values."""
    n = max_iter - remaining
    magnitude_sq = last_real_sq + last_imag_sq
    if not magnitude_sq > 1.0:
        return 0.0
    v = 5.0 + n - LOG_HALFBASE - math.log(math.log(magnitude_sq)) * LOG_BASE
    if not math.isfinite(v):
        return 0.0
    return v


@jit(nopython=True, cache=True)
def pixel_color(palette, max_iter, remaining, last_real_sq, last_imag_sq):
    """
    Color of one pixel from the raw escape-time values.

    The palette id is not checked here; ids other than 0-4 fall through
    to the muted ramp. Use color_for() from Python code.
    """
    if remaining == 0:
        return 0, 0, 0

    if palette == PALETTE_MONOCHROME:
        return 255, 255, 255

    v = smooth_count(max_iter, remaining, last_real_sq, last_imag_sq)
    ratio = v / max_iter

    if palette == PALETTE_GRAYSCALE:
        level = min(255, max(0, int(math.floor(512.0 * ratio))))
        return level, level, level

    if palette == PALETTE_HSV_BRIGHT:
        return hsv_to_rgb(360.0 * ratio, 1.0, 1.0)

    r, g, b = hsv_to_rgb(360.0 * ratio, 1.0, 10.0 * ratio)
    if palette == PALETTE_HSV_BLUE:
        return b, g, r
    return r, g, b


def smooth_value(result):
    """
    Continuous iteration count for an escaped point.

    Args:
        result: EscapeResult with remaining > 0

    Returns:
        float; 0.0 if the refinement squares overflowed or never left
        the unit circle
    """
    return smooth_count(int(result.max_iter), int(result.remaining),
                        float(result.last_real_sq), float(result.last_imag_sq))


def color_for(palette, result):
    """
    Map an escape-time result to a color.

    Args:
        palette: Palette id (PALETTE_*)
        result: EscapeResult from compute.evaluate

    Returns:
        (r, g, b) tuple of ints 0-255

    Raises:
        ValueError if palette is not a known id
    """
    if palette not in PALETTES.values():
        raise ValueError(f"Unknown palette id: {palette}")
    return pixel_color(int(palette), int(result.max_iter), int(result.remaining),
                       float(result.last_real_sq), float(result.last_imag_sq))


# Registry of all available palettes.
# Keys are display names, values are palette ids.
PALETTES = {
    'Monochrome': PALETTE_MONOCHROME,
    'HSV Bright': PALETTE_HSV_BRIGHT,
    'HSV Muted': PALETTE_HSV_MUTED,
    'HSV Blue': PALETTE_HSV_BLUE,
    'Grayscale': PALETTE_GRAYSCALE,
}


def get_palette(name):
    """
    Get a palette id by display name or id.

    Args:
        name: Key from PALETTES, or an int palette id

    Returns:
        int palette id

    Raises:
        KeyError if name is not a known palette
    """
    if isinstance(name, (int, np.integer)):
        if int(name) not in PALETTES.values():
            raise KeyError(name)
        return int(name)
    return PALETTES[name]


def palette_name(palette):
    """Display name for a palette id."""
    for name, pid in PALETTES.items():
        if pid == palette:
            return name
    raise KeyError(palette)


def list_palette_names():
    """Get list of available palette names."""
    return list(PALETTES.keys())


def next_palette(palette):
    """Palette id that follows `palette`, wrapping around."""
    ids = sorted(PALETTES.values())
    return ids[(ids.index(palette) + 1) % len(ids)]
