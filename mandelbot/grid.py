"""
Resumable, budgeted Mandelbrot grid computation.

A GridComputer owns an RGBA pixel buffer bound to a region of the
complex plane. seed() binds a region and rewinds the scan; advance()
computes pixels in scan order until either the grid is complete or the
iteration budget it was handed runs out, and reports the rectangle it
touched so the display can redraw only that part.

Work is charged by iterations actually consumed, not per pixel: pixels
near the set boundary can cost hundreds of times more than pixels far
from it, and charging per iteration keeps each call's wall-clock cost
roughly constant wherever the scan currently is. A calibrated per-pixel
charge covers the fixed cost of visiting a pixel, which dominates far
outside the set where points escape after one or two iterations.

Float grids are scanned by the Numba kernel compute.advance_float; other
backends run the same scan in Python.

States:
    UNSEEDED -> SCANNING -> COMPLETE, and back to SCANNING on every seed()
"""

import logging
import math
from collections import namedtuple

import numpy as np

from .colormaps import DEFAULT_PALETTE, get_palette, pixel_color
from .compute import advance_float, auto_iteration_cap, scan_row_span
from .config import SHAPE_CIRCLE, SHAPE_RECT, SHAPES
from .errors import InitializationError
from .numeric import FLOAT_BACKEND, FloatBackend


logger = logging.getLogger(__name__)

STATE_UNSEEDED = 'unseeded'
STATE_SCANNING = 'scanning'
STATE_COMPLETE = 'complete'


PlaneRegion = namedtuple('PlaneRegion', ['center_x', 'center_y', 'half_width', 'half_height'])
PlaneRegion.__doc__ = "Center and half extents of a view in the complex plane."

DirtyRect = namedtuple('DirtyRect', ['x', 'y', 'width', 'height'])
DirtyRect.__doc__ = "Pixel rectangle changed by one advance() call."


class GridComputer:
    """
    Computes one pixel grid incrementally.

    Usage:
        grid = GridComputer(320, 240)
        grid.seed(PlaneRegion(-0.5, 0.0, 1.5, 1.5))

        # Once per tick:
        rect = grid.advance(budget)
        if rect is not None:
            redraw(grid.pixels, *rect)

    Attributes:
        width, height: Grid dimensions in pixels
        shape: SHAPE_RECT or SHAPE_CIRCLE
        palette: Palette id used for newly computed pixels
        backend: NumericBackend for plane coordinates
        pixels: (height, width, 4) uint8 RGBA buffer
    """

    def __init__(self, width, height, shape=SHAPE_RECT, palette=DEFAULT_PALETTE,
                 backend=None, background=(0, 0, 0)):
        """
        Create the grid and its pixel buffer.

        Raises:
            InitializationError: dimensions are not positive integers, or
                the shape/palette is unknown
        """
        try:
            width = int(width)
            height = int(height)
        except (TypeError, ValueError):
            raise InitializationError(f"Invalid grid dimensions: {width!r}x{height!r}")
        if width <= 0 or height <= 0:
            raise InitializationError(f"Invalid grid dimensions: {width}x{height}")
        if shape not in SHAPES:
            raise InitializationError(f"Unknown grid shape: {shape!r}")
        try:
            self.palette = get_palette(palette)
        except KeyError:
            raise InitializationError(f"Unknown palette: {palette!r}")

        self.width = width
        self.height = height
        self.shape = shape
        self.backend = backend or FLOAT_BACKEND
        self.background = tuple(int(c) for c in background)[:3]
        self.pixels = np.zeros((height, width, 4), dtype=np.uint8)

        self.region = None
        self.max_iter = 0
        self.x_left = self.x_inc = self.y_top = self.y_inc = None
        self.col = self.row = 0
        self._col_end = 0
        self._state = STATE_UNSEEDED

    @property
    def state(self):
        return self._state

    @property
    def complete(self):
        return self._state == STATE_COMPLETE

    def row_span(self, row):
        """
        Columns scanned on `row`, as a half-open (begin, end) pair.

        Rectangular grids scan every column. Circular grids scan the chord
        of a circle of radius height // 2 centred on the grid.
        """
        begin, end = scan_row_span(row, self.width, self.height, self.shape == SHAPE_CIRCLE)
        return int(begin), int(end)

    def seed(self, region, max_iter=None):
        """
        Bind a plane region and restart the scan from the first pixel.

        Any scan in progress is discarded. The pixel buffer is cleared to
        the background color with zero alpha, so pixels not yet computed
        stay transparent.

        Args:
            region: PlaneRegion with positive half extents (the caller
                    validates this)
            max_iter: Iteration cap; None derives it from the zoom depth
        """
        b = self.backend
        center_x = b.from_value(region.center_x)
        center_y = b.from_value(region.center_y)
        half_width = b.from_value(region.half_width)
        half_height = b.from_value(region.half_height)
        self.region = PlaneRegion(center_x, center_y, half_width, half_height)

        self.x_left = b.sub(center_x, half_width)
        self.x_inc = b.div(b.mul(b.two, half_width), b.from_value(self.width))
        self.y_top = b.add(center_y, half_height)
        self.y_inc = b.div(b.mul(b.two, half_height), b.from_value(self.height))

        if max_iter is None:
            max_iter = auto_iteration_cap(b.to_float(half_width), b.to_float(half_height))
        self.max_iter = max(1, int(max_iter))

        self.pixels[:, :, :3] = self.background
        self.pixels[:, :, 3] = 0

        self.row = 0
        self.col, self._col_end = self.row_span(0)
        self._skip_empty_rows()
        self._state = STATE_SCANNING if self.row < self.height else STATE_COMPLETE
        logger.debug("Seeded %dx%d grid at %s, max_iter=%d",
                     self.width, self.height, self.region, self.max_iter)

    def pixel_to_plane(self, col, row):
        """Plane coordinates of a pixel's top-left corner (backend values)."""
        b = self.backend
        x = b.add(self.x_left, b.mul(b.from_value(col), self.x_inc))
        y = b.sub(self.y_top, b.mul(b.from_value(row), self.y_inc))
        return x, y

    def _skip_empty_rows(self):
        while self.row < self.height and self.col >= self._col_end:
            self.row += 1
            if self.row < self.height:
                self.col, self._col_end = self.row_span(self.row)

    def advance(self, budget=None, pixel_cost=0):
        """
        Compute pixels until the grid is done or the budget is spent.

        Each pixel costs the iterations it consumed plus pixel_cost, the
        calibrated fixed cost of visiting a pixel expressed in iterations.
        The pixel that takes the budget to zero or below is still finished
        and written.

        Args:
            budget: Iterations available to this call (None = unlimited)
            pixel_cost: Per-pixel overhead charge, in iterations

        Returns:
            DirtyRect bounding every pixel written, or None if none were
        """
        if self._state != STATE_SCANNING:
            return None
        if budget is None:
            budget = math.inf

        top = self.row
        if isinstance(self.backend, FloatBackend):
            left, right, bottom = self._advance_float(budget, pixel_cost)
        else:
            left, right, bottom = self._advance_generic(budget, pixel_cost)

        if self.row >= self.height:
            self._state = STATE_COMPLETE
        if right < left:
            return None
        return DirtyRect(left, top, right - left + 1, bottom - top + 1)

    def _advance_float(self, budget, pixel_cost):
        col, col_end, row, left, right, bottom = advance_float(
            self.pixels, self.x_left, self.x_inc, self.y_top, self.y_inc,
            self.max_iter, self.palette, self.shape == SHAPE_CIRCLE,
            self.col, self._col_end, self.row, float(budget), float(pixel_cost))
        self.col, self._col_end, self.row = int(col), int(col_end), int(row)
        return int(left), int(right), int(bottom)

    def _advance_generic(self, budget, pixel_cost):
        b = self.backend
        max_iter = self.max_iter
        pixels = self.pixels
        palette = self.palette
        left = self.width
        right = -1
        bottom = self.row

        while budget > 0 and self.row < self.height:
            row = self.row
            y = b.sub(self.y_top, b.mul(b.from_value(row), self.y_inc))
            while budget > 0 and self.col < self._col_end:
                col = self.col
                x = b.add(self.x_left, b.mul(b.from_value(col), self.x_inc))
                remaining, ta, tb = b.escape_time(x, y, max_iter, True)
                pixels[row, col, :3] = pixel_color(palette, max_iter, remaining,
                                                   b.to_float(ta), b.to_float(tb))
                pixels[row, col, 3] = 0xff
                budget -= max_iter - remaining + pixel_cost
                left = min(left, col)
                right = max(right, col)
                bottom = row
                self.col += 1
            if self.col >= self._col_end:
                self._skip_empty_rows()
        return left, right, bottom
