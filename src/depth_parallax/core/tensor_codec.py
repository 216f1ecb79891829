"""
Conversions between rasters and the depth model's tensor layout.

Pure functions with no side effects: a raster goes in, a new tensor comes
out, and vice versa.
"""

from __future__ import annotations

import cv2
import numpy as np

from .constants import DEPTH_MAX_VALUE, DEPTH_MID_GRAY, ERROR_MESSAGES, OPAQUE_ALPHA
from .errors import InvalidInputError
from .raster import InputTensor, OutputTensor, RasterImage


def resize_raster(
    raster: RasterImage, width: int, height: int, interpolation: int = cv2.INTER_LINEAR
) -> RasterImage:
    """
    Resample a raster to new dimensions.

    Args:
        raster: Source raster
        width: Target width in pixels
        height: Target height in pixels
        interpolation: OpenCV interpolation flag

    Returns:
        New RasterImage of the requested size
    """
    if width <= 0 or height <= 0:
        raise InvalidInputError(ERROR_MESSAGES["empty_raster"].format(width=width, height=height))

    if (raster.width, raster.height) == (width, height):
        return raster

    resized = cv2.resize(raster.pixels, (width, height), interpolation=interpolation)
    return RasterImage(width, height, resized)


def to_input_tensor(raster: RasterImage, target_size: int) -> InputTensor:
    """
    Convert an RGBA raster into a channel-major [1, 3, S, S] float tensor.

    The raster is always resized to ``target_size`` x ``target_size``, so the
    tensor length is 3 * S * S whatever the source dimensions. Each 8-bit
    sample is divided by 255; alpha is dropped.

    Args:
        raster: Source color raster
        target_size: Square edge length expected by the model

    Returns:
        InputTensor with values in [0, 1]
    """
    if raster.width <= 0 or raster.height <= 0:
        raise InvalidInputError(
            ERROR_MESSAGES["empty_raster"].format(width=raster.width, height=raster.height)
        )
    if target_size <= 0:
        raise InvalidInputError(f"Model input size must be positive, got {target_size}")

    resized = resize_raster(raster, target_size, target_size)
    rgb = resized.rgb().astype(np.float32) / DEPTH_MAX_VALUE

    # HWC -> CHW, then add the batch axis
    planar = np.transpose(rgb, (2, 0, 1))[np.newaxis, ...]
    return InputTensor(planar)


def normalize_depth(values: np.ndarray) -> np.ndarray:
    """
    Linearly map values onto [0, 255] using their observed min and max.

    A flat input (max == min) maps to mid-gray.

    Returns:
        uint8 array with the same shape as ``values``
    """
    values = np.asarray(values, dtype=np.float64)
    low = float(values.min())
    high = float(values.max())

    if high == low:
        normalized = np.full(values.shape, DEPTH_MID_GRAY)
    else:
        normalized = DEPTH_MAX_VALUE * (values - low) / (high - low)

    # Round half to even, so the degenerate 127.5 lands on 128
    return np.clip(np.rint(normalized), 0, 255).astype(np.uint8)


def from_output_tensor(tensor: OutputTensor) -> RasterImage:
    """
    Convert raw single-channel depth values into a grayscale depth raster.

    No resampling happens here; the raster has the tensor's declared
    (height, width).

    Args:
        tensor: Raw model output

    Returns:
        RasterImage with the normalized value replicated to R, G and B and
        alpha 255
    """
    gray = normalize_depth(tensor.as_grid())

    rgba = np.empty((tensor.height, tensor.width, 4), dtype=np.uint8)
    rgba[:, :, :3] = gray[:, :, np.newaxis]
    rgba[:, :, 3] = OPAQUE_ALPHA
    return RasterImage(tensor.width, tensor.height, rgba)
