"""
Immutable raster and tensor value types.

Every array stored on these types is a private copy flagged read-only, so a
value handed to the next pipeline stage can never be mutated behind its back.
Transforms always produce new instances.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .constants import ERROR_MESSAGES, OPAQUE_ALPHA
from .errors import InvalidInputError


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class RasterImage:
    """
    Row-major 8-bit RGBA image.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        pixels: uint8 array shaped (height, width, 4)
    """

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidInputError(
                ERROR_MESSAGES["empty_raster"].format(width=self.width, height=self.height)
            )

        pixels = np.asarray(self.pixels)
        if pixels.dtype != np.uint8:
            raise InvalidInputError(f"Pixel buffer must be uint8, got {pixels.dtype}")
        if pixels.size != self.width * self.height * 4:
            raise InvalidInputError(
                f"Pixel buffer holds {pixels.size} bytes, expected "
                f"{self.width * self.height * 4} for {self.width}x{self.height} RGBA"
            )

        pixels = np.array(pixels.reshape(self.height, self.width, 4), copy=True)
        object.__setattr__(self, "pixels", _frozen(pixels))

    @classmethod
    def from_array(cls, array: np.ndarray) -> RasterImage:
        """
        Build a raster from a grayscale, RGB or RGBA uint8 array.

        Args:
            array: Array shaped (H, W), (H, W, 3) or (H, W, 4)

        Returns:
            New RasterImage; grayscale is replicated to R, G and B, and a
            missing alpha channel is filled with 255
        """
        array = np.asarray(array)
        if array.dtype != np.uint8:
            raise InvalidInputError(f"Expected a uint8 array, got {array.dtype}")

        if array.ndim == 2:
            array = np.repeat(array[:, :, np.newaxis], 3, axis=2)
        elif array.ndim != 3 or array.shape[2] not in (3, 4):
            raise InvalidInputError(f"Unsupported raster shape {array.shape}")

        height, width = array.shape[:2]
        if width == 0 or height == 0:
            raise InvalidInputError(
                ERROR_MESSAGES["empty_raster"].format(width=width, height=height)
            )

        rgba = np.empty((height, width, 4), dtype=np.uint8)
        rgba[:, :, :3] = array[:, :, :3]
        rgba[:, :, 3] = array[:, :, 3] if array.shape[2] == 4 else OPAQUE_ALPHA
        return cls(width, height, rgba)

    @property
    def shape(self) -> tuple[int, int]:
        """(height, width), matching numpy ordering."""
        return self.height, self.width

    def rgb(self) -> np.ndarray:
        """Return a read-only (H, W, 3) view without alpha."""
        return self.pixels[:, :, :3]

    def red(self) -> np.ndarray:
        """Return the red channel, the channel depth sampling reads."""
        return self.pixels[:, :, 0]

    def is_grayscale(self) -> bool:
        channels = self.pixels
        return bool(
            np.array_equal(channels[:, :, 0], channels[:, :, 1])
            and np.array_equal(channels[:, :, 0], channels[:, :, 2])
        )


@dataclass(frozen=True)
class InputTensor:
    """Channel-major float32 tensor shaped (1, 3, S, S), values in [0, 1]."""

    data: np.ndarray

    def __post_init__(self) -> None:
        data = np.asarray(self.data, dtype=np.float32)
        if data.ndim != 4 or data.shape[:2] != (1, 3) or data.shape[2] != data.shape[3]:
            raise InvalidInputError(f"Input tensor must be shaped [1, 3, S, S], got {list(data.shape)}")
        object.__setattr__(self, "data", _frozen(np.ascontiguousarray(data).copy()))

    @property
    def size(self) -> int:
        return int(self.data.shape[2])

    def __len__(self) -> int:
        return int(self.data.size)


@dataclass(frozen=True)
class OutputTensor:
    """Single-channel raw depth/disparity values plus their declared dimensions."""

    data: np.ndarray
    height: int
    width: int

    def __post_init__(self) -> None:
        if self.height <= 0 or self.width <= 0:
            raise InvalidInputError(
                ERROR_MESSAGES["empty_raster"].format(width=self.width, height=self.height)
            )
        data = np.asarray(self.data, dtype=np.float32).ravel()
        if data.size != self.height * self.width:
            raise InvalidInputError(
                f"Output tensor holds {data.size} values, expected "
                f"{self.height * self.width} for {self.height}x{self.width}"
            )
        object.__setattr__(self, "data", _frozen(data.copy()))

    @classmethod
    def from_array(cls, array: np.ndarray) -> OutputTensor:
        """
        Wrap a backend output shaped [1, H', W'], [1, 1, H', W'] or [H', W'].
        """
        array = np.asarray(array)
        while array.ndim > 2 and array.shape[0] == 1:
            array = array[0]
        if array.ndim != 2 or array.size == 0:
            raise InvalidInputError(f"Unsupported output tensor shape {list(np.shape(array))}")
        height, width = array.shape
        return cls(array, int(height), int(width))

    def as_grid(self) -> np.ndarray:
        """Return the values shaped (height, width)."""
        return self.data.reshape(self.height, self.width)
