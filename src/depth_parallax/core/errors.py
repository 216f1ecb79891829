"""Exception types raised by the depth and mesh pipeline."""


class DepthParallaxError(Exception):
    """Base class for all errors raised by depth_parallax."""


class InvalidInputError(DepthParallaxError, ValueError):
    """Malformed or degenerate raster/tensor dimensions, non-positive sizes."""


class BackendUnavailableError(DepthParallaxError, RuntimeError):
    """The inference backend could not be created.

    Nothing is cached on failure, so calling ``estimate`` again retries
    initialization.
    """


class InferenceFailedError(DepthParallaxError, RuntimeError):
    """The backend rejected the input tensor or raised while running."""


class OutputWriteError(DepthParallaxError, OSError):
    """A depth map or mesh could not be written to disk."""
