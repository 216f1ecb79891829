"""Shared fixtures for depth_parallax tests."""

import numpy as np
import pytest

from depth_parallax.core.raster import RasterImage
from depth_parallax.models.depth_estimator import reset_backend


class FakeBackend:
    """Stands in for a depth model: returns a horizontal ramp as disparity."""

    input_name = "pixel_values"
    output_name = "predicted_depth"

    def __init__(self, input_size=28, output_shape=(1, 28, 28)):
        self.input_size = input_size
        self.output_shape = output_shape
        self.calls = []

    def run(self, feeds):
        self.calls.append(feeds)
        _, height, width = self.output_shape
        ramp = np.tile(np.linspace(-3.0, 9.0, width, dtype=np.float32), (height, 1))
        return {self.output_name: ramp.reshape(self.output_shape)}


@pytest.fixture(autouse=True)
def isolated_backend():
    """Every test starts and ends without a shared backend."""
    reset_backend()
    yield
    reset_backend()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def color_raster():
    """Create a random 8x6 color raster."""
    rng = np.random.default_rng(0)
    return RasterImage.from_array(rng.integers(0, 256, (6, 8, 3), dtype=np.uint8))

