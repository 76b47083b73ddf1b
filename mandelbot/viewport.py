"""
Views: a grid, the surface it is shown on, and pan/zoom handling.

A Viewport owns one GridComputer and translates already-decoded pointer
input into new plane regions:
- a quick press/release (a click) re-centers the view on the pressed pixel
- a drag selects a rectangle that becomes the new view, with its width
  adjusted to the grid's aspect ratio (the height is kept)

The display surface it draws to only needs two methods:
    put_region(pixels, x, y, width, height)   copy a dirty rect of the buffer
    present_scaled(src_w, src_h, dst_w, dst_h) show the buffer on screen
plus `width` and `height` attributes giving the visible size.

Problems during setup or re-seeding never raise out of a Viewport; they
are logged and left in `status_message` for the host to display.
"""

import logging

from .colormaps import get_palette, next_palette
from .config import SETTINGS, ViewConfig
from .errors import DegenerateRegionError, InitializationError
from .grid import GridComputer, PlaneRegion
from .numeric import get_backend


logger = logging.getLogger(__name__)

STATE_KEYS = ('center_x', 'center_y', 'half_width', 'half_height',
              'palette', 'use_arbitrary_precision')


def validate_region(region, backend):
    """
    Reject regions with non-positive half extents.

    Raises:
        DegenerateRegionError
    """
    zero = backend.zero
    half_width = backend.from_value(region.half_width)
    half_height = backend.from_value(region.half_height)
    if not backend.lt(zero, half_width) or not backend.lt(zero, half_height):
        raise DegenerateRegionError(
            f"Region half sizes must be positive: {half_width} x {half_height}"
        )


def recenter_at(grid, col, row):
    """Region centered on pixel (col, row) with the grid's current extents."""
    x, y = grid.pixel_to_plane(col, row)
    return PlaneRegion(x, y, grid.region.half_width, grid.region.half_height)


def remap_selection(grid, col_begin, row_begin, col_end, row_end):
    """
    Plane region covered by a pixel selection on a seeded grid.

    The selection may be dragged in any direction. Its width is adjusted
    so that |width / height| matches the grid's aspect ratio; a selection
    with no height therefore collapses to an empty region.

    Args:
        grid: Seeded GridComputer
        col_begin, row_begin: Pixel where the selection started
        col_end, row_end: Pixel where the selection ended

    Returns:
        PlaneRegion (possibly degenerate; see validate_region)
    """
    b = grid.backend
    width_px = col_end - col_begin
    height_px = row_end - row_begin
    aspect_width = abs(height_px) * grid.width / grid.height
    width_px = -aspect_width if width_px < 0 else aspect_width

    half = b.from_value(0.5)
    dx_center = b.mul(b.mul(b.from_value(width_px), grid.x_inc), half)
    dy_center = b.mul(b.mul(b.from_value(height_px), grid.y_inc), half)
    x_center = b.add(b.add(grid.x_left, b.mul(b.from_value(col_begin), grid.x_inc)), dx_center)
    y_center = b.sub(b.sub(grid.y_top, b.mul(b.from_value(row_begin), grid.y_inc)), dy_center)
    return PlaneRegion(x_center, y_center, b.abs(dx_center), b.abs(dy_center))


class Viewport:
    """
    One visible Mandelbrot view.

    Usage:
        viewport = Viewport(surface, config=ViewConfig(), scheduler=scheduler)
        viewport.press(10, 10, t0)
        viewport.release(90, 70, t0 + 500)   # zooms into the selection

    Attributes:
        surface: Display surface (see module docstring), or None
        grid: GridComputer, or None if initialization failed
        config: ViewConfig the grid was last seeded with
        status_message: Last status or error text for the host to show
    """

    def __init__(self, surface, grid_width=0, grid_height=0, config=None,
                 scheduler=None, settings=None):
        self.settings = settings or SETTINGS
        self.surface = surface
        self.scheduler = scheduler
        self.config = config or ViewConfig.from_settings(self.settings)
        self.grid = None
        self.status_message = ""
        self._press = None

        try:
            if surface is None:
                raise InitializationError("Missing view surface")
            self.grid = self._create_grid(grid_width or surface.width,
                                          grid_height or surface.height)
            seeded = self.seed()
        except InitializationError as e:
            self.grid = None
            self.status_message = str(e)
            logger.warning("Viewport initialization failed: %s", e)
            return

        if scheduler is not None:
            scheduler.add(self)
        if seeded and scheduler is not None:
            budget = scheduler.budget.for_backend(self.backend)
            self.status_message = (f"max iterations per {self.settings['timeslice_ms']}ms "
                                   f"timeslice: {budget}")

    def _create_grid(self, width, height):
        backend = get_backend(self.config.use_arbitrary_precision,
                              self.settings['decimal_digits'])
        return GridComputer(width, height, shape=self.config.shape,
                            palette=self.config.palette, backend=backend,
                            background=self.settings['background_color'])

    @property
    def backend(self):
        if self.grid is not None:
            return self.grid.backend
        return get_backend(self.config.use_arbitrary_precision, self.settings['decimal_digits'])

    @property
    def region(self):
        return self.grid.region if self.grid is not None else None

    def seed(self, config=None, **changes):
        """
        Re-seed the grid from a config, discarding any scan in progress.

        Args:
            config: New ViewConfig (default: the current one)
            **changes: ViewConfig fields to override

        Returns:
            True on success; False if the region was rejected or the view
            has no grid (see status_message)
        """
        config = config or self.config
        if changes:
            config = config.replace(**changes)
        if self.grid is None:
            self.status_message = self.status_message or "View is not initialized"
            return False

        try:
            palette = get_palette(config.palette)
            backend = get_backend(config.use_arbitrary_precision, self.settings['decimal_digits'])
            region = PlaneRegion(backend.from_value(config.center_x),
                                 backend.from_value(config.center_y),
                                 backend.from_value(config.half_width),
                                 backend.from_value(config.half_height))
            validate_region(region, backend)
        except (DegenerateRegionError, KeyError, ValueError, ArithmeticError) as e:
            self.status_message = f"Rejected view: {e}"
            logger.warning("Rejected view %s: %s", config, e)
            return False

        if config.shape != self.grid.shape:
            try:
                grid = GridComputer(self.grid.width, self.grid.height, shape=config.shape,
                                    palette=palette, backend=backend,
                                    background=self.grid.background)
            except InitializationError as e:
                self.status_message = str(e)
                logger.warning("Rejected view %s: %s", config, e)
                return False
            self.grid = grid

        self.grid.palette = palette
        self.grid.backend = backend
        self.grid.seed(region, config.max_iterations)
        self.config = config.replace(center_x=region.center_x, center_y=region.center_y,
                                     half_width=region.half_width,
                                     half_height=region.half_height, palette=palette)
        logger.info("Seeded view at (%s, %s) +/- (%s, %s), %s backend, max_iter=%d",
                    region.center_x, region.center_y, region.half_width,
                    region.half_height, backend.name, self.grid.max_iter)

        self.flush()
        if self.scheduler is not None:
            self.scheduler.arm()
        return True

    def zoom_to(self, region):
        """Seed a new region, keeping palette, backend and shape."""
        return self.seed(center_x=region.center_x, center_y=region.center_y,
                         half_width=region.half_width, half_height=region.half_height)

    def reset(self):
        """Return to the default view from the settings."""
        default = ViewConfig.from_settings(self.settings)
        return self.seed(default.replace(palette=self.config.palette,
                                         use_arbitrary_precision=self.config.use_arbitrary_precision,
                                         shape=self.config.shape))

    def select_palette(self, palette=None):
        """Switch to `palette` (default: the next one) and recompute."""
        if palette is None:
            palette = next_palette(self.config.palette)
        return self.seed(palette=palette)

    def set_precision(self, use_arbitrary_precision):
        """Switch numeric backend, keeping the current region."""
        config = self.config
        return self.seed(config.replace(
            use_arbitrary_precision=use_arbitrary_precision,
            center_x=str(config.center_x), center_y=str(config.center_y),
            half_width=str(config.half_width), half_height=str(config.half_height),
        ))

    def press(self, col, row, time_ms):
        """Record where and when a pointer press happened (grid pixels)."""
        self._press = (col, row, time_ms)

    def release(self, col, row, time_ms):
        """
        Finish a press: a click re-centers, a drag zooms to the selection.

        A press shorter than click_threshold_ms, or one that did not move,
        counts as a click.

        Returns:
            True if the view was re-seeded
        """
        if self._press is None or self.grid is None:
            self._press = None
            return False
        col_begin, row_begin, pressed_at = self._press
        self._press = None

        is_click = (time_ms - pressed_at < self.settings['click_threshold_ms']
                    or (col == col_begin and row == row_begin))
        if is_click:
            return self.zoom_to(recenter_at(self.grid, col_begin, row_begin))
        return self.zoom_to(remap_selection(self.grid, col_begin, row_begin, col, row))

    def advance(self, budget, pixel_cost=0):
        """Advance the grid and push any changed pixels to the surface."""
        if self.grid is None:
            return None
        rect = self.grid.advance(budget, pixel_cost)
        if rect is not None:
            self.flush(rect)
        return rect

    def flush(self, rect=None):
        """Copy a rect (default: the whole buffer) to the surface and present it."""
        if self.surface is None or self.grid is None:
            return
        grid = self.grid
        if rect is None:
            rect = (0, 0, grid.width, grid.height)
        self.surface.put_region(grid.pixels, *rect)
        self.surface.present_scaled(grid.width, grid.height,
                                    self.surface.width, self.surface.height)

    def to_state(self):
        """
        Flat key/value description of the view for external persistence.

        Coordinates are kept as backend values; encoding is up to the caller.
        """
        config = self.config
        return {
            'center_x': config.center_x,
            'center_y': config.center_y,
            'half_width': config.half_width,
            'half_height': config.half_height,
            'palette': config.palette,
            'use_arbitrary_precision': config.use_arbitrary_precision,
        }

    def from_state(self, state):
        """
        Re-seed from a dict produced by to_state() (values may be strings).

        Unknown keys are ignored; missing keys keep their current values.
        """
        changes = {key: state[key] for key in STATE_KEYS if key in state}
        if 'palette' in changes:
            try:
                changes['palette'] = int(changes['palette'])
            except (TypeError, ValueError):
                self.status_message = f"Rejected view: bad palette {changes['palette']!r}"
                return False
        if 'use_arbitrary_precision' in changes:
            value = changes['use_arbitrary_precision']
            if isinstance(value, str):
                value = value.strip().lower() in ('1', 'true', 'yes', 'on')
            changes['use_arbitrary_precision'] = bool(value)
        return self.seed(**changes)

    def close(self):
        """Stop receiving scheduler ticks."""
        if self.scheduler is not None:
            self.scheduler.remove(self)
