"""
Settings and view configuration for Mandelbot.

Engine-wide settings (timeslice length, calibration trials, decimal
precision, the default view) live in settings.json next to this module.
If the file is missing or unreadable, the built-in DEFAULT_SETTINGS are
used instead so the engine can always start.

ViewConfig collects every parameter a view is seeded with, so callers
never have to thread long lists of keyword defaults around.
"""

import copy
import json
import logging
import os
from dataclasses import dataclass, replace


logger = logging.getLogger(__name__)

SETTINGS_PATH = os.path.join(os.path.dirname(__file__), 'settings.json')

SHAPE_RECT = 'rect'
SHAPE_CIRCLE = 'circle'
SHAPES = (SHAPE_RECT, SHAPE_CIRCLE)

DEFAULT_SETTINGS = {
    'timeslice_ms': 1000 // 60,
    'calibration_trials': 8,
    'max_calibration_doublings': 20,
    'min_iterations_per_timeslice': 10000,
    'decimal_digits': 20,
    'click_threshold_ms': 200,
    'background_color': [0, 0, 0],
    'default_view': {
        'center_x': -0.5,
        'center_y': 0.0,
        'half_width': 1.5,
        'half_height': 1.5,
        'shape': SHAPE_RECT,
        'palette': 4,
        'use_arbitrary_precision': False,
        'max_iterations': None,
    },
}


def load_settings(path=None):
    """
    Load settings from a JSON file, merged over DEFAULT_SETTINGS.

    Args:
        path: Settings file to read (default: settings.json in the package)

    Returns:
        dict with every key of DEFAULT_SETTINGS present
    """
    settings = copy.deepcopy(DEFAULT_SETTINGS)
    settings_path = path or SETTINGS_PATH
    try:
        with open(settings_path, 'r') as f:
            loaded = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning("Could not load %s: %s", settings_path, e)
        return settings

    if not isinstance(loaded, dict):
        logger.warning("Ignoring %s: top level is not an object", settings_path)
        return settings

    view = loaded.pop('default_view', None)
    settings.update(loaded)
    if isinstance(view, dict):
        settings['default_view'].update(view)
    return settings


# Loaded once; modules that need a setting read it from here.
SETTINGS = load_settings()


@dataclass(frozen=True)
class ViewConfig:
    """
    Everything needed to seed a view.

    Coordinates may be floats, ints, strings or decimal.Decimal values;
    they are converted by the view's numeric backend when seeding, so a
    string like "-0.74364388703715870475" keeps all of its digits when
    arbitrary precision is enabled.

    Attributes:
        center_x, center_y: Center of the view in the complex plane
        half_width, half_height: Half the extent of the view (must be > 0)
        shape: SHAPE_RECT or SHAPE_CIRCLE scan pattern
        palette: Palette id (see colormaps.PALETTES)
        use_arbitrary_precision: Use the decimal backend instead of floats
        max_iterations: Fixed iteration cap, or None to derive it from the zoom
    """

    center_x: object = -0.5
    center_y: object = 0.0
    half_width: object = 1.5
    half_height: object = 1.5
    shape: str = SHAPE_RECT
    palette: int = 4
    use_arbitrary_precision: bool = False
    max_iterations: object = None

    @classmethod
    def from_settings(cls, settings=None):
        """Build the default view described by a settings dict."""
        view = (settings or SETTINGS)['default_view']
        return cls(
            center_x=view['center_x'],
            center_y=view['center_y'],
            half_width=view['half_width'],
            half_height=view['half_height'],
            shape=view['shape'],
            palette=int(view['palette']),
            use_arbitrary_precision=bool(view['use_arbitrary_precision']),
            max_iterations=view['max_iterations'],
        )

    def replace(self, **changes):
        """Return a copy with the given fields changed."""
        return replace(self, **changes)
