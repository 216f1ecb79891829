"""
Boundary with the rendering layer.

Rendering, camera controls and the animation loop live outside this
package. A viewer only has to accept a mesh plus the color texture it was
built for; ``check_render_contract`` verifies the guarantees a mesh makes to
any viewer.
"""

from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable

import numpy as np

from .constants import VIEWER_SETTINGS
from .errors import InvalidInputError
from .mesh_builder import DisplacedMesh
from .raster import RasterImage


@runtime_checkable
class ViewerAdapter(Protocol):
    """Anything that can display a displaced mesh textured with a color raster."""

    def render(self, mesh: DisplacedMesh, color_texture: RasterImage) -> None: ...


def orbit_limits(settings: Dict[str, Any] | None = None) -> Dict[str, float]:
    """
    Camera orbit limits for a parallax view.

    Rotation is kept within +/- max_view_angle of the front-on view, both
    horizontally (azimuth) and vertically (polar angle around pi/2).
    """
    settings = {**VIEWER_SETTINGS, **(settings or {})}
    angle = float(settings["max_view_angle"])
    return {
        "min_polar_angle": np.pi / 2 - angle,
        "max_polar_angle": np.pi / 2 + angle,
        "min_azimuth_angle": -angle,
        "max_azimuth_angle": angle,
        "min_distance": float(settings["min_distance"]),
        "max_distance": float(settings["max_distance"]),
        "camera_distance": float(settings["camera_distance"]),
    }


def check_render_contract(mesh: DisplacedMesh) -> None:
    """Raise InvalidInputError unless every UV lies within [0, 1]^2."""
    uvs = mesh.uvs
    # Allow for float error at the plane edges
    tolerance = 1e-9
    if uvs.size and (uvs.min() < -tolerance or uvs.max() > 1 + tolerance):
        raise InvalidInputError(
            f"Mesh UVs must lie within [0, 1], got range [{uvs.min():.6f}, {uvs.max():.6f}]"
        )
