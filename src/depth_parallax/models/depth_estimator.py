"""
Depth estimation model management and inference.

This module owns the single process-wide inference backend (created lazily,
at most once, and shared by every estimator) and the estimator that turns a
color raster into a grayscale depth raster at the color raster's size.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union

import numpy as np
import torch

from ..core.constants import (
    DEFAULT_MODEL,
    ERROR_MESSAGES,
    IMAGENET_MEAN,
    IMAGENET_STD,
    MIN_ESTIMATE_PIXELS,
    MODEL_CONFIGS,
    MODEL_INPUT_NAME,
    MODEL_INPUT_SIZE,
    MODEL_OUTPUT_NAME,
)
from ..core.errors import BackendUnavailableError, InferenceFailedError, InvalidInputError
from ..core.raster import OutputTensor, RasterImage
from ..core.tensor_codec import from_output_tensor, resize_raster, to_input_tensor

logger = logging.getLogger(__name__)


class InferenceBackend(Protocol):
    """One named [1, 3, S, S] input in, one named [1, H', W'] output out."""

    input_name: str
    output_name: str
    input_size: int

    def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]: ...


BackendFactory = Callable[[], Union[InferenceBackend, Awaitable[InferenceBackend]]]


class TransformersDepthBackend:
    """Runs Depth-Anything-V2 through Hugging Face transformers."""

    input_name = MODEL_INPUT_NAME
    output_name = MODEL_OUTPUT_NAME

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        device: str = "auto",
        input_size: int = MODEL_INPUT_SIZE,
    ):
        self.model_name = model_name
        self.model_id = MODEL_CONFIGS.get(model_name, model_name)
        self.device = self._determine_device(device)
        self.input_size = input_size
        self.image_mean = np.asarray(IMAGENET_MEAN, dtype=np.float32)
        self.image_std = np.asarray(IMAGENET_STD, dtype=np.float32)
        self.model = None

    def _determine_device(self, device: str) -> str:
        """Determine the best device to use for inference."""
        if device == "auto":
            if torch.cuda.is_available():
                return "cuda"
            elif hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
                return "mps"
            else:
                return "cpu"
        return device

    def load_model(self) -> None:
        """
        Load the depth model weights and its image processor's normalization.

        Raises:
            BackendUnavailableError: If transformers is missing or the
                weights cannot be fetched or loaded
        """
        try:
            from transformers import AutoImageProcessor, AutoModelForDepthEstimation

            logger.info(f"Loading depth model: {self.model_id}")
            model = AutoModelForDepthEstimation.from_pretrained(self.model_id)
            model.to(self.device)
            model.eval()
            processor = AutoImageProcessor.from_pretrained(self.model_id)
        except Exception as e:
            raise BackendUnavailableError(
                ERROR_MESSAGES["backend_unavailable"].format(error=e)
            ) from e

        self.image_mean = np.asarray(processor.image_mean, dtype=np.float32)
        self.image_std = np.asarray(processor.image_std, dtype=np.float32)
        self.model = model
        logger.info(f"Loaded {self.model_id} on {self.device}")

    def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """
        Run the model on a single named input.

        The input holds RGB in [0, 1]; the model's per-channel mean/std
        normalization is applied here before inference.

        Args:
            feeds: Mapping of input name to a float32 [1, 3, S, S] array

        Returns:
            Mapping of output name to a [1, H', W'] float32 array
        """
        if self.model is None:
            raise InferenceFailedError("Model not loaded. Call load_model() first.")
        if self.input_name not in feeds:
            raise InferenceFailedError(
                f"Missing input '{self.input_name}', got {sorted(feeds)}"
            )

        pixel_values = np.asarray(feeds[self.input_name])
        expected = (1, 3, self.input_size, self.input_size)
        if pixel_values.shape != expected:
            raise InferenceFailedError(
                f"Input shape {list(pixel_values.shape)} does not match {list(expected)}"
            )

        pixel_values = (pixel_values - self.image_mean[:, None, None]) / self.image_std[:, None, None]

        try:
            with torch.no_grad():
                inputs = torch.tensor(pixel_values, dtype=torch.float32, device=self.device)
                outputs = self.model(pixel_values=inputs)
                depth = outputs.predicted_depth
        except Exception as e:
            raise InferenceFailedError(ERROR_MESSAGES["inference_failed"].format(error=e)) from e

        return {self.output_name: depth.float().cpu().numpy()}

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the loaded model."""
        return {
            "model_name": self.model_name,
            "model_id": self.model_id,
            "device": self.device,
            "input_size": self.input_size,
            "loaded": self.model is not None,
        }

    def unload_model(self) -> None:
        """Unload the model to free memory."""
        if self.model is not None:
            del self.model
            self.model = None

            # Clear GPU cache if using CUDA
            if self.device == "cuda" and torch.cuda.is_available():
                torch.cuda.empty_cache()


def create_transformers_backend(
    model_name: Optional[str] = None,
    device: str = "auto",
    input_size: int = MODEL_INPUT_SIZE,
) -> TransformersDepthBackend:
    """Create and load a transformers backend (blocking)."""
    backend = TransformersDepthBackend(model_name or DEFAULT_MODEL, device, input_size)
    backend.load_model()
    return backend


# Process-wide backend state. Only ever touched from the event loop thread.
_backend: Optional[InferenceBackend] = None
_backend_task: Optional[asyncio.Future] = None


async def _initialize_backend(factory: BackendFactory) -> InferenceBackend:
    global _backend, _backend_task
    try:
        backend = factory()
        if inspect.isawaitable(backend):
            backend = await backend
    except BaseException as e:
        # Record nothing so the next caller re-attempts initialization
        if _backend_task is asyncio.current_task():
            _backend_task = None
        if isinstance(e, BackendUnavailableError) or not isinstance(e, Exception):
            raise
        raise BackendUnavailableError(
            ERROR_MESSAGES["backend_unavailable"].format(error=e)
        ) from e

    # A reset_backend() while this ran means the result is no longer shared
    if _backend_task is asyncio.current_task():
        _backend = backend
    return backend


async def get_backend(factory: Optional[BackendFactory] = None) -> InferenceBackend:
    """
    Return the shared inference backend, creating it on first use.

    Concurrent callers during initialization all await the same in-flight
    attempt. A failed attempt is not cached: the next call tries again.

    Args:
        factory: Callable (sync or async) producing a backend; only used
            if no backend exists yet

    Raises:
        BackendUnavailableError: If initialization fails
    """
    global _backend_task
    if _backend is not None:
        return _backend

    if _backend_task is None:
        _backend_task = asyncio.ensure_future(
            _initialize_backend(factory or create_transformers_backend)
        )

    # Shield so one cancelled caller does not abort initialization for the rest
    return await asyncio.shield(_backend_task)


def is_backend_ready() -> bool:
    return _backend is not None


def reset_backend() -> None:
    """Forget the shared backend. Intended for test isolation."""
    global _backend, _backend_task
    _backend = None
    _backend_task = None


class DepthEstimator:
    """Estimates a grayscale depth raster for a color raster."""

    def __init__(
        self,
        backend_factory: Optional[BackendFactory] = None,
        input_size: Optional[int] = None,
    ):
        self.backend_factory = backend_factory
        self.input_size = input_size

    def _validate(self, color: RasterImage) -> None:
        if color.width * color.height < MIN_ESTIMATE_PIXELS:
            raise InvalidInputError(
                ERROR_MESSAGES["image_too_small"].format(
                    width=color.width, height=color.height, minimum=MIN_ESTIMATE_PIXELS
                )
            )

    async def estimate(self, color: RasterImage) -> RasterImage:
        """
        Estimate depth for a single color raster.

        Args:
            color: Decoded color image

        Returns:
            Grayscale depth raster resampled to the color raster's size

        Raises:
            InvalidInputError: If the raster is a single pixel, before any
                backend use (1xN and Nx1 images are accepted)
            BackendUnavailableError: If the backend cannot be created
            InferenceFailedError: If the backend rejects the input or fails
        """
        self._validate(color)

        backend = await get_backend(self.backend_factory)
        input_size = self.input_size or backend.input_size
        tensor = to_input_tensor(color, input_size)
        logger.debug(f"Running depth inference on {color.width}x{color.height} at {input_size}px")

        try:
            outputs = backend.run({backend.input_name: tensor.data})
            if inspect.isawaitable(outputs):
                outputs = await outputs
        except InferenceFailedError:
            raise
        except Exception as e:
            raise InferenceFailedError(ERROR_MESSAGES["inference_failed"].format(error=e)) from e

        if backend.output_name not in outputs:
            raise InferenceFailedError(
                f"Backend produced no '{backend.output_name}' output, got {sorted(outputs)}"
            )

        try:
            output = OutputTensor.from_array(outputs[backend.output_name])
        except InvalidInputError as e:
            raise InferenceFailedError(ERROR_MESSAGES["inference_failed"].format(error=e)) from e

        depth = from_output_tensor(output)
        return resize_raster(depth, color.width, color.height)

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the shared backend, if it exists."""
        info: Dict[str, Any] = {"input_size": self.input_size, "loaded": _backend is not None}
        if _backend is not None and hasattr(_backend, "get_model_info"):
            info.update(_backend.get_model_info())
        return info


def create_depth_estimator(
    model_name: Optional[str] = None,
    device: str = "auto",
    input_size: Optional[int] = None,
) -> DepthEstimator:
    """
    Factory function to create a depth estimator backed by transformers.

    Args:
        model_name: Model size key from MODEL_CONFIGS or a Hugging Face id
            (uses default if None)
        device: Device to use for inference
        input_size: Square model input edge (uses MODEL_INPUT_SIZE if None)

    Returns:
        Configured DepthEstimator instance
    """
    if model_name is None:
        model_name = DEFAULT_MODEL
    size = input_size or MODEL_INPUT_SIZE

    def factory() -> TransformersDepthBackend:
        return create_transformers_backend(model_name, device, size)

    return DepthEstimator(factory, input_size)
