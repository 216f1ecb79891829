"""Tests for raster and tensor value types."""

import numpy as np
import pytest

from depth_parallax.core.errors import InvalidInputError
from depth_parallax.core.raster import InputTensor, OutputTensor, RasterImage


class TestRasterImage:
    """Test RasterImage construction and invariants."""

    def test_from_rgb_array_adds_opaque_alpha(self):
        """Test RGB input gains an alpha channel of 255."""
        rgb = np.zeros((2, 3, 3), dtype=np.uint8)
        rgb[..., 0] = 10
        raster = RasterImage.from_array(rgb)

        assert (raster.width, raster.height) == (3, 2)
        assert raster.pixels.shape == (2, 3, 4)
        assert np.all(raster.pixels[..., 3] == 255)
        assert np.all(raster.red() == 10)

    def test_from_grayscale_replicates_channels(self):
        """Test grayscale input is replicated to R, G and B."""
        gray = np.array([[0, 128], [200, 255]], dtype=np.uint8)
        raster = RasterImage.from_array(gray)

        assert raster.is_grayscale()
        np.testing.assert_array_equal(raster.pixels[..., 1], gray)
        np.testing.assert_array_equal(raster.pixels[..., 2], gray)

    def test_from_rgba_keeps_alpha(self):
        """Test RGBA input keeps its alpha channel."""
        rgba = np.full((1, 1, 4), 7, dtype=np.uint8)
        raster = RasterImage.from_array(rgba)
        assert raster.pixels[0, 0, 3] == 7

    def test_buffer_length_invariant(self):
        """Test buffer length must equal width * height * 4."""
        with pytest.raises(InvalidInputError):
            RasterImage(2, 2, np.zeros(15, dtype=np.uint8))

    def test_flat_buffer_is_reshaped(self):
        """Test a flat row-major buffer is accepted."""
        raster = RasterImage(2, 1, np.arange(8, dtype=np.uint8))
        assert raster.pixels.shape == (1, 2, 4)
        assert raster.pixels[0, 1, 0] == 4

    @pytest.mark.parametrize("width,height", [(0, 2), (2, 0), (-1, 3)])
    def test_non_positive_dimensions_rejected(self, width, height):
        """Test zero or negative dimensions raise InvalidInputError."""
        with pytest.raises(InvalidInputError):
            RasterImage(width, height, np.zeros(0, dtype=np.uint8))

    def test_empty_array_rejected(self):
        """Test an empty array cannot become a raster."""
        with pytest.raises(InvalidInputError):
            RasterImage.from_array(np.zeros((0, 4, 3), dtype=np.uint8))

    def test_non_uint8_rejected(self):
        """Test float arrays are rejected."""
        with pytest.raises(InvalidInputError):
            RasterImage.from_array(np.zeros((2, 2, 3), dtype=np.float32))

    def test_pixels_are_read_only(self):
        """Test pixels cannot be modified in place."""
        raster = RasterImage.from_array(np.zeros((2, 2), dtype=np.uint8))
        with pytest.raises(ValueError):
            raster.pixels[0, 0, 0] = 1

    def test_source_buffer_not_aliased(self):
        """Test mutating the source array does not change the raster."""
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        raster = RasterImage(2, 2, source)
        source[0, 0, 0] = 99
        assert raster.pixels[0, 0, 0] == 0


class TestInputTensor:
    """Test InputTensor shape validation."""

    def test_valid_shape(self):
        """Test a [1, 3, S, S] tensor is accepted."""
        tensor = InputTensor(np.zeros((1, 3, 4, 4), dtype=np.float32))
        assert tensor.size == 4
        assert len(tensor) == 48

    @pytest.mark.parametrize("shape", [(3, 4, 4), (1, 4, 4, 4), (1, 3, 4, 5), (2, 3, 4, 4)])
    def test_invalid_shape(self, shape):
        """Test other shapes are rejected."""
        with pytest.raises(InvalidInputError):
            InputTensor(np.zeros(shape, dtype=np.float32))


class TestOutputTensor:
    """Test OutputTensor construction."""

    @pytest.mark.parametrize("shape", [(1, 3, 5), (1, 1, 3, 5), (3, 5)])
    def test_from_array_accepts_model_shapes(self, shape):
        """Test batch and channel axes of size one are dropped."""
        tensor = OutputTensor.from_array(np.zeros(shape, dtype=np.float32))
        assert (tensor.height, tensor.width) == (3, 5)
        assert tensor.data.shape == (15,)

    def test_from_array_rejects_batches(self):
        """Test a batch of two outputs is rejected."""
        with pytest.raises(InvalidInputError):
            OutputTensor.from_array(np.zeros((2, 3, 5), dtype=np.float32))

    def test_from_array_rejects_empty(self):
        """Test an empty output is rejected."""
        with pytest.raises(InvalidInputError):
            OutputTensor.from_array(np.zeros((1, 0, 5), dtype=np.float32))

    def test_declared_dimensions_must_match(self):
        """Test data length must match height * width."""
        with pytest.raises(InvalidInputError):
            OutputTensor(np.zeros(10, dtype=np.float32), 3, 5)

    def test_as_grid(self):
        """Test values come back row-major."""
        tensor = OutputTensor(np.arange(6, dtype=np.float32), 2, 3)
        np.testing.assert_array_equal(tensor.as_grid(), [[0, 1, 2], [3, 4, 5]])
