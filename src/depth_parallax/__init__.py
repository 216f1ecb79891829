"""
Depth Parallax - Turn a single photograph into an interactive pseudo-3D view.

This package estimates a per-pixel depth map with a Depth-Anything-V2 model and
uses it to displace a subdivided plane mesh, producing a parallax effect as the
viewpoint rotates.
"""

__version__ = "1.0.0"
__author__ = "Depth Parallax Team"
__description__ = "Turn a single photograph into a depth-displaced 3D mesh"

from .core.constants import DEFAULT_SETTINGS, MODEL_CONFIGS, VIEWER_SETTINGS
from .core.errors import (
    BackendUnavailableError,
    DepthParallaxError,
    InferenceFailedError,
    InvalidInputError,
    OutputWriteError,
)
from .core.mesh_builder import DisplacedMesh, DisplacementMeshBuilder, build_displaced_mesh
from .core.raster import RasterImage
from .models.depth_estimator import DepthEstimator, create_depth_estimator
from .processing.view_pipeline import DepthViewPipeline

__all__ = [
    "DEFAULT_SETTINGS",
    "MODEL_CONFIGS",
    "VIEWER_SETTINGS",
    "BackendUnavailableError",
    "DepthParallaxError",
    "InferenceFailedError",
    "InvalidInputError",
    "OutputWriteError",
    "DisplacedMesh",
    "DisplacementMeshBuilder",
    "build_displaced_mesh",
    "RasterImage",
    "DepthEstimator",
    "create_depth_estimator",
    "DepthViewPipeline",
]
