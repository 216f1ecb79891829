"""Depth model backends and the depth estimator."""

from .depth_estimator import (
    DepthEstimator,
    InferenceBackend,
    TransformersDepthBackend,
    create_depth_estimator,
    get_backend,
    reset_backend,
)

__all__ = [
    "DepthEstimator",
    "InferenceBackend",
    "TransformersDepthBackend",
    "create_depth_estimator",
    "get_backend",
    "reset_backend",
]
