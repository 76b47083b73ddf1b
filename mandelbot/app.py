"""
Main application module for the Mandelbot explorer.

Contains the MandelbrotApp class which handles:
- Window setup and main loop
- Turning mouse presses/releases into Viewport gestures
- Draining the scheduler's idle queue once per frame
- Drawing the selection rectangle while dragging

Controls:
    - Click: Re-center on the clicked point
    - Drag: Zoom into the selected rectangle
    - P: Next palette
    - D: Toggle arbitrary precision (decimal) arithmetic
    - R: Reset to default view
    - ESC: Quit
"""

import logging

import numpy as np
import pygame

from .calibrate import IterationBudget
from .colormaps import palette_name
from .compute import warmup_jit
from .config import ViewConfig
from .scheduler import IdleQueue, Scheduler
from .viewport import Viewport


logger = logging.getLogger(__name__)


class PygameSurface:
    """
    Display surface backed by pygame.

    Grid pixels are copied into an off-screen SRCALPHA surface sized from
    the grid's own buffer; presenting scales that surface to the window
    without smoothing and keeps the result as the frame to draw.
    """

    def __init__(self, screen):
        self.screen = screen
        self.width, self.height = screen.get_size()
        self.grid_surface = None
        self.frame = None

    def put_region(self, pixels, x, y, width, height):
        """Copy pixels[y:y+h, x:x+w] (RGBA) into the grid surface."""
        size = (pixels.shape[1], pixels.shape[0])
        if self.grid_surface is None or self.grid_surface.get_size() != size:
            self.grid_surface = pygame.Surface(size, pygame.SRCALPHA, 32)
        region = pixels[y:y + height, x:x + width]
        rgb = pygame.surfarray.pixels3d(self.grid_surface)
        rgb[x:x + width, y:y + height] = region[:, :, :3].swapaxes(0, 1)
        del rgb
        alpha = pygame.surfarray.pixels_alpha(self.grid_surface)
        alpha[x:x + width, y:y + height] = region[:, :, 3].swapaxes(0, 1)
        del alpha

    def present_scaled(self, source_width, source_height, dest_width, dest_height):
        """Scale the grid surface to the requested size for the next draw()."""
        source = self.grid_surface.subsurface((0, 0, source_width, source_height))
        if (source_width, source_height) != (dest_width, dest_height):
            source = pygame.transform.scale(source, (dest_width, dest_height))
        self.frame = source

    def draw(self):
        """Blit the last presented frame onto the window."""
        self.screen.fill((0, 0, 0))
        if self.frame is not None:
            self.screen.blit(self.frame, (0, 0))


class MandelbrotApp:
    """
    Main application class for the Mandelbot explorer.

    Handles the pygame window and event loop, and hosts the scheduler
    that computes the view in between frames.
    """

    # Default configuration
    DEFAULT_WIDTH = 800
    DEFAULT_HEIGHT = 800
    SELECTION_COLOR = (255, 64, 64)

    def __init__(self, width=None, height=None, grid_width=None, grid_height=None, config=None):
        """
        Initialize the application.

        Args:
            width: Window width in pixels (default 800)
            height: Window height in pixels (default 800)
            grid_width, grid_height: Computed grid size (default: window size)
            config: Initial ViewConfig (default: from settings.json)
        """
        self.width = width or self.DEFAULT_WIDTH
        self.height = height or self.DEFAULT_HEIGHT
        self.grid_width = grid_width or self.width
        self.grid_height = grid_height or self.height
        self.config = config or ViewConfig.from_settings()

        # Pygame state (initialized in run())
        self.screen = None
        self.clock = None

        # Components
        self.idle = IdleQueue()
        self.budget = IterationBudget()
        self.scheduler = None
        self.surface = None
        self.viewport = None

        # Input state
        self.drag_start = None

        self.running = False

    def run(self):
        """Run the application main loop."""
        self._init_pygame()
        self._init_components()

        self.running = True
        while self.running:
            self._handle_events()
            self.idle.run_pending()
            self._draw()
            self.clock.tick(60)

        self.viewport.close()
        self.scheduler.shutdown()
        pygame.quit()

    def _init_pygame(self):
        """Initialize pygame and create window."""
        pygame.init()
        self.screen = pygame.display.set_mode((self.width, self.height), pygame.DOUBLEBUF)
        pygame.display.set_caption("Calibrating...")
        self.clock = pygame.time.Clock()

    def _init_components(self):
        """Warm up the JIT, calibrate, and create the scheduler and view."""
        warmup_jit()
        for name, (iterations, pixel_cost) in self.budget.calibrate_all().items():
            logger.info("%s budget: %d iterations per timeslice, %d per pixel",
                        name, iterations, pixel_cost)
        self.scheduler = Scheduler(self.budget, self.idle.call_soon)
        self.surface = PygameSurface(self.screen)
        self.viewport = Viewport(self.surface, self.grid_width, self.grid_height,
                                 config=self.config, scheduler=self.scheduler)
        self._update_caption()

    def _update_caption(self):
        config = self.viewport.config
        precision = 'decimal' if config.use_arbitrary_precision else 'float'
        pygame.display.set_caption(
            f"Mandelbot [{palette_name(config.palette)}, {precision}] - "
            f"{self.viewport.status_message}"
        )

    def _to_grid(self, pos):
        """Window position -> grid pixel."""
        col = int(pos[0] * self.grid_width / self.width)
        row = int(pos[1] * self.grid_height / self.height)
        return (int(np.clip(col, 0, self.grid_width - 1)),
                int(np.clip(row, 0, self.grid_height - 1)))

    def _handle_events(self):
        """Process all pending pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self.drag_start = event.pos
                col, row = self._to_grid(event.pos)
                self.viewport.press(col, row, pygame.time.get_ticks())
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                self.drag_start = None
                col, row = self._to_grid(event.pos)
                self.viewport.release(col, row, pygame.time.get_ticks())
                self._update_caption()
            elif event.type == pygame.KEYDOWN:
                self._handle_key(event)

    def _handle_key(self, event):
        """Handle keyboard input."""
        if event.key == pygame.K_ESCAPE:
            self.running = False
            return
        if event.key == pygame.K_r:
            self.viewport.reset()
        elif event.key == pygame.K_p:
            self.viewport.select_palette()
        elif event.key == pygame.K_d:
            self.viewport.set_precision(not self.viewport.config.use_arbitrary_precision)
        self._update_caption()

    def _draw(self):
        """Draw the current frame."""
        self.surface.draw()
        if self.drag_start is not None:
            x0, y0 = self.drag_start
            x1, y1 = pygame.mouse.get_pos()
            rect = pygame.Rect(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))
            pygame.draw.rect(self.screen, self.SELECTION_COLOR, rect, 1)
        pygame.display.flip()


def run(width=None, height=None, grid_width=None, grid_height=None, config=None):
    """
    Run the Mandelbot explorer.

    Args:
        width: Window width (default 800)
        height: Window height (default 800)
        grid_width, grid_height: Computed grid size (default: window size)
        config: Initial ViewConfig (default: from settings.json)
    """
    app = MandelbrotApp(width, height, grid_width, grid_height, config)
    try:
        app.run()
    except KeyboardInterrupt:
        pygame.quit()
