import pygame
import pytest

from mandelbot.app import PygameSurface
from mandelbot.viewport import Viewport


@pytest.fixture
def screen():
    return pygame.Surface((40, 30))


def test_bad_grid_size_is_reported_not_raised(screen):
    surface = PygameSurface(screen)
    view = Viewport(surface, -5, 10)
    assert view.grid is None
    assert "Invalid grid dimensions" in view.status_message
    surface.draw()
    assert surface.frame is None


def test_grid_is_scaled_to_the_window(screen):
    surface = PygameSurface(screen)
    view = Viewport(surface, 20, 15)
    view.advance(None)
    assert surface.grid_surface.get_size() == (20, 15)
    assert surface.frame.get_size() == (40, 30)
    surface.draw()
    # The classic view's centre is in the set and its corners are not
    assert screen.get_at((20, 15))[:3] == (0, 0, 0)
    assert screen.get_at((0, 0))[:3] != (0, 0, 0)
