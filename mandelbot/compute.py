"""
Escape-time computation for the Mandelbrot set.

This module holds the per-point iteration of z <- z^2 + c that decides
set membership and produces the data used for smooth coloring:
- escape_time_float: Numba JIT-compiled kernel for native floats
- escape_time_generic: the same loop over any numeric backend's operations
- advance_float: Numba kernel that scans, colors and writes a budgeted
  run of float grid pixels, so Python overhead is paid per call
- evaluate: backend-agnostic entry point returning an EscapeResult

The escape test is |z|^2 >= 4 (Scientific American, August 1985). After a
point escapes, REFINEMENT_ITERATIONS more iterations are run without the
escape test; the final squares sharpen the smooth-coloring estimate
(http://linas.org/art-gallery/escape/escape.html).
"""

import math
from collections import namedtuple

import numpy as np
from numba import jit

from .colormaps import DEFAULT_PALETTE, pixel_color


ESCAPE_MAGNITUDE_SQ = 4.0
REFINEMENT_ITERATIONS = 4

# Default per-point cap, used as the calibration starting increment
DEFAULT_MAX_ITERATIONS = 100

# The calibration point sits deep inside the main cardioid
INTERIOR_X = -0.5
INTERIOR_Y = 0.0


EscapeResult = namedtuple(
    'EscapeResult', ['max_iter', 'remaining', 'last_real_sq', 'last_imag_sq']
)
EscapeResult.__doc__ = """
Outcome of one escape-time evaluation.

remaining == 0 means the point is presumed to be in the set; the two
squares are only meaningful for points that escaped.
"""


@jit(nopython=True, cache=True)
def escape_time_float(x, y, max_iter, refine):
    """
    Iterate z <- z^2 + c for c = x + yi, starting at z = 0.

    Args:
        x, y: Real and imaginary parts of c
        max_iter: Iteration cap (at least 1)
        refine: Run the extra refinement iterations after escape

    Returns:
        (remaining, last_real_sq, last_imag_sq): iterations left when the
        loop stopped (0 = presumed member) and the last squares of z
    """
    a = 0.0
    b = 0.0
    ta = 0.0
    tb = 0.0
    n = max_iter
    while True:
        b = 2.0 * a * b + y
        a = ta - tb + x
        ta = a * a
        tb = b * b
        n -= 1
        if n <= 0 or ta + tb >= 4.0:
            break
    if refine and n > 0:
        for _ in range(4):
            b = 2.0 * a * b + y
            a = ta - tb + x
            ta = a * a
            tb = b * b
    return n, ta, tb


def escape_time_generic(backend, x, y, max_iter, refine):
    """
    Same iteration as escape_time_float, spelled with backend operations.

    Used for numeric types Numba cannot compile, such as decimal.Decimal.
    x and y must already be backend values.
    """
    add, sub, mul, lt = backend.add, backend.sub, backend.mul, backend.lt
    two = backend.two
    four = backend.four
    a = b = ta = tb = backend.zero
    n = max_iter
    while True:
        b = add(mul(mul(two, a), b), y)
        a = add(sub(ta, tb), x)
        ta = mul(a, a)
        tb = mul(b, b)
        n -= 1
        if n <= 0 or not lt(add(ta, tb), four):
            break
    if refine and n > 0:
        for _ in range(REFINEMENT_ITERATIONS):
            b = add(mul(mul(two, a), b), y)
            a = add(sub(ta, tb), x)
            ta = mul(a, a)
            tb = mul(b, b)
    return n, ta, tb


@jit(nopython=True, cache=True)
def scan_row_span(row, width, height, circle):
    """
    Columns scanned on `row` as a half-open (begin, end) pair.

    Rectangular grids scan every column. Circular grids scan the chord of
    a circle of radius height // 2 centred on column width // 2.
    """
    if not circle:
        return 0, width
    radius = height // 2
    y = radius - row
    x = int(math.floor(math.sqrt(max(0, radius * radius - y * y)) + 0.5))
    center = width // 2
    return max(0, center - x), min(width, center + x + 1)


@jit(nopython=True, cache=True)
def advance_float(pixels, x_left, x_inc, y_top, y_inc, max_iter, palette, circle,
                  col, col_end, row, budget, pixel_cost):
    """
    Budgeted scan of a float grid, writing straight into its RGBA buffer.

    Pixels are visited in scan order from the cursor (col, row), where
    col_end is the end of the current row's span. Each pixel costs the
    iterations it consumed plus pixel_cost; the pixel that uses up the
    budget is still written.

    Args:
        pixels: (height, width, 4) uint8 buffer, modified in place
        x_left, x_inc, y_top, y_inc: Plane coordinates of the grid
        max_iter: Iteration cap
        palette: Palette id (see colormaps)
        circle: Scan circular row spans instead of full rows
        col, col_end, row: Scan cursor
        budget: Iterations available (may be inf)
        pixel_cost: Fixed per-pixel charge, in iterations

    Returns:
        (col, col_end, row, left, right, bottom): the new cursor and the
        touched columns/last row; right < 0 means nothing was written
    """
    height = pixels.shape[0]
    width = pixels.shape[1]
    left = width
    right = -1
    bottom = row
    while budget > 0 and row < height:
        y = y_top - row * y_inc
        while budget > 0 and col < col_end:
            x = x_left + col * x_inc
            remaining, ta, tb = escape_time_float(x, y, max_iter, True)
            r, g, b = pixel_color(palette, max_iter, remaining, ta, tb)
            pixels[row, col, 0] = r
            pixels[row, col, 1] = g
            pixels[row, col, 2] = b
            pixels[row, col, 3] = 255
            budget -= max_iter - remaining + pixel_cost
            left = min(left, col)
            right = max(right, col)
            bottom = row
            col += 1
        while row < height and col >= col_end:
            row += 1
            if row < height:
                col, col_end = scan_row_span(row, width, height, circle)
    return col, col_end, row, left, right, bottom


def evaluate(x, y, max_iter, backend=None):
    """
    Evaluate one point and return the data needed to color it.

    Args:
        x, y: Point in the complex plane (backend values, or anything the
              backend's from_value accepts)
        max_iter: Iteration cap
        backend: Numeric backend (default: native floats)

    Returns:
        EscapeResult with the squares converted to floats
    """
    if backend is None:
        from .numeric import FLOAT_BACKEND
        backend = FLOAT_BACKEND
    n, ta, tb = backend.escape_time(backend.from_value(x), backend.from_value(y),
                                    max_iter, True)
    return EscapeResult(max_iter, n, backend.to_float(ta), backend.to_float(tb))


def auto_iteration_cap(half_width, half_height):
    """
    Iteration cap for a region: grows as the view is zoomed in.

    Args:
        half_width, half_height: Region half extents (anything float() accepts)

    Returns:
        int cap, never below 1
    """
    distance = min(float(half_width), float(half_height))
    return max(1, int(math.floor(223.0 / math.sqrt(0.001 + 4.0 * distance))))


def warmup_jit():
    """
    Compile the float kernels ahead of time.

    Call this once at startup, before calibration, so the first timed
    evaluation does not include compilation.
    """
    escape_time_float(INTERIOR_X, INTERIOR_Y, 10, True)
    escape_time_float(2.0, 2.0, 10, True)
    pixel_color(DEFAULT_PALETTE, 10, 5, 3.0, 3.0)
    dummy = np.zeros((4, 4, 4), dtype=np.uint8)
    advance_float(dummy, -2.0, 1.0, 2.0, 1.0, 10, DEFAULT_PALETTE, False,
                  0, 4, 0, math.inf, 0.0)
