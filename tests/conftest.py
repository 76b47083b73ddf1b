import pytest

from mandelbot.calibrate import IterationBudget
from mandelbot.scheduler import IdleQueue


class FakeSurface:
    """Display surface that records what it was asked to draw."""

    def __init__(self, width=40, height=30):
        self.width = width
        self.height = height
        self.regions = []
        self.presents = []

    def put_region(self, pixels, x, y, width, height):
        self.regions.append((x, y, width, height))

    def present_scaled(self, source_width, source_height, dest_width, dest_height):
        self.presents.append((source_width, source_height, dest_width, dest_height))


@pytest.fixture
def budget():
    return IterationBudget({'float': 2000, 'decimal': 400}, pixel_costs={'float': 0, 'decimal': 0})


@pytest.fixture
def idle():
    return IdleQueue()


@pytest.fixture
def surface():
    return FakeSurface()
