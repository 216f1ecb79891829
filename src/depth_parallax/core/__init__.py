"""Core value types, tensor conversion and mesh generation."""

from .errors import (
    BackendUnavailableError,
    DepthParallaxError,
    InferenceFailedError,
    InvalidInputError,
    OutputWriteError,
)
from .mesh_builder import DisplacedMesh, DisplacementMeshBuilder, build_displaced_mesh
from .raster import InputTensor, OutputTensor, RasterImage
from .tensor_codec import from_output_tensor, resize_raster, to_input_tensor
from .viewer import ViewerAdapter

__all__ = [
    "BackendUnavailableError",
    "DepthParallaxError",
    "InferenceFailedError",
    "InvalidInputError",
    "OutputWriteError",
    "DisplacedMesh",
    "DisplacementMeshBuilder",
    "build_displaced_mesh",
    "InputTensor",
    "OutputTensor",
    "RasterImage",
    "from_output_tensor",
    "resize_raster",
    "to_input_tensor",
    "ViewerAdapter",
]
