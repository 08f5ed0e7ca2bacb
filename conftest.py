import pytest

from grapher import Viewport


@pytest.fixture()
def viewport():
    """800x600 drawing area, origin centered, 50 pixels per unit."""
    return Viewport.centered(800, 600, 50.0)
