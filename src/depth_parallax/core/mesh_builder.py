"""
Depth-driven displacement of a subdivided plane.

A plane centered at the origin is split into a regular grid of quads, each
vertex is pushed along +z by a sample of the depth raster, and smooth
normals are recomputed for lighting. Everything here is a pure function of
its arguments: building twice from the same inputs yields identical arrays.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .constants import DEPTH_MAX_VALUE, DISPLACEMENT_SCALE, PLANE_SCALE, PLANE_SEGMENTS
from .errors import InvalidInputError
from .raster import RasterImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisplacedMesh:
    """
    Triangulated, displaced plane ready for a viewer.

    Attributes:
        positions: (N, 3) vertex positions
        uvs: (N, 2) texture coordinates with origin at the image's top-left
        indices: (T, 3) vertex indices per triangle, counter-clockwise from +z
        normals: (N, 3) unit smooth normals
        subdivisions: Quads per plane edge
    """

    positions: np.ndarray
    uvs: np.ndarray
    indices: np.ndarray
    normals: np.ndarray
    subdivisions: int

    def __post_init__(self) -> None:
        for name in ("positions", "uvs", "indices", "normals"):
            getattr(self, name).setflags(write=False)

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0])


def plane_to_raster_uv(x: np.ndarray, y: np.ndarray, plane_width: float, plane_height: float):
    """
    Map plane-space coordinates to texture coordinates with a top-left origin.

    Plane-space y grows upwards while raster rows run top-down, so v is
    flipped: u = x / W + 0.5, v = 1 - (y / H + 0.5).

    Returns:
        Tuple of (u, v) arrays
    """
    u = x / plane_width + 0.5
    v = 1.0 - (y / plane_height + 0.5)
    return u, v


def create_plane_grid(plane_width: float, plane_height: float, subdivisions: int):
    """
    Lay out the undisplaced (S+1) x (S+1) vertex grid and its triangles.

    Vertices are ordered row by row from the top edge (+y) down, left to
    right within a row. Each quad (a, b, c, d) with a at the top-left and
    going counter-clockwise is split into (a, b, d) and (b, c, d).

    Returns:
        Tuple of (positions, indices)
    """
    half_width = plane_width / 2
    half_height = plane_height / 2
    # linspace keeps the edge coordinates exact
    xs = np.linspace(-half_width, half_width, subdivisions + 1)
    ys = np.linspace(half_height, -half_height, subdivisions + 1)
    grid_x, grid_y = np.meshgrid(xs, ys)

    positions = np.zeros(((subdivisions + 1) ** 2, 3), dtype=np.float64)
    positions[:, 0] = grid_x.ravel()
    positions[:, 1] = grid_y.ravel()

    row = subdivisions + 1
    ix, iy = np.meshgrid(np.arange(subdivisions), np.arange(subdivisions))
    a = (ix + row * iy).ravel()
    b = (ix + row * (iy + 1)).ravel()
    c = (ix + 1 + row * (iy + 1)).ravel()
    d = (ix + 1 + row * iy).ravel()

    first = np.stack([a, b, d], axis=1)
    second = np.stack([b, c, d], axis=1)
    # Interleave so both halves of a quad stay adjacent
    indices = np.stack([first, second], axis=1).reshape(-1, 3).astype(np.int32)
    return positions, indices


def sample_displacement(
    depth: RasterImage, u: np.ndarray, v: np.ndarray, displacement_scale: float
) -> np.ndarray:
    """
    Read the depth raster's red channel at each (u, v) and turn it into z.

    Pixel coordinates are floor(u * width) and floor(v * height). Samples
    are centered on 0.5 so mid-gray leaves a vertex on the undisplaced plane.
    Coordinates outside the raster are not an error: those vertices keep
    z = 0.

    Returns:
        Array of z offsets, one per (u, v) pair
    """
    px = np.floor(u * depth.width).astype(np.int64)
    py = np.floor(v * depth.height).astype(np.int64)
    inside = (px >= 0) & (px < depth.width) & (py >= 0) & (py < depth.height)

    z = np.zeros(u.shape, dtype=np.float64)
    samples = depth.red()[py[inside], px[inside]].astype(np.float64) / DEPTH_MAX_VALUE
    z[inside] = (samples - 0.5) * displacement_scale
    return z


def compute_vertex_normals(positions: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """
    Area-weighted smooth vertex normals.

    Unnormalized face normals (whose length is twice the triangle area) are
    summed onto each corner vertex and the result normalized. Vertices
    without any area fall back to +z.
    """
    corners = positions[indices]
    face_normals = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])

    normals = np.zeros_like(positions)
    for corner in range(3):
        np.add.at(normals, indices[:, corner], face_normals)

    lengths = np.linalg.norm(normals, axis=1)
    degenerate = lengths == 0
    normals[degenerate] = (0.0, 0.0, 1.0)
    lengths[degenerate] = 1.0
    return normals / lengths[:, np.newaxis]


def build_displaced_mesh(
    color_width: float,
    color_height: float,
    depth: RasterImage,
    subdivisions: int = PLANE_SEGMENTS,
    displacement_scale: float = DISPLACEMENT_SCALE,
    *,
    plane_scale: float = PLANE_SCALE,
) -> DisplacedMesh:
    """
    Build a depth-displaced plane for a color image.

    Args:
        color_width: Width of the color image in pixels
        color_height: Height of the color image in pixels
        depth: Grayscale depth raster, generated or user supplied
        subdivisions: Quads per plane edge
        displacement_scale: z range covered by the full 0..255 depth span
        plane_scale: Factor applied to the color dimensions to size the plane

    Returns:
        DisplacedMesh with (S+1)^2 vertices and 2 * S^2 triangles
    """
    if subdivisions < 1:
        raise InvalidInputError(f"Subdivisions must be at least 1, got {subdivisions}")
    if color_width <= 0 or color_height <= 0:
        raise InvalidInputError(
            f"Color dimensions must be positive, got {color_width}x{color_height}"
        )
    if plane_scale <= 0:
        raise InvalidInputError(f"Plane scale must be positive, got {plane_scale}")

    plane_width = color_width * plane_scale
    plane_height = color_height * plane_scale

    positions, indices = create_plane_grid(plane_width, plane_height, subdivisions)
    u, v = plane_to_raster_uv(positions[:, 0], positions[:, 1], plane_width, plane_height)
    positions[:, 2] = sample_displacement(depth, u, v, displacement_scale)

    normals = compute_vertex_normals(positions, indices)
    uvs = np.stack([u, v], axis=1)

    logger.debug(
        f"Built displaced mesh: {positions.shape[0]} vertices, {indices.shape[0]} triangles "
        f"from {depth.width}x{depth.height} depth"
    )
    return DisplacedMesh(positions, uvs, indices, normals, subdivisions)


class DisplacementMeshBuilder:
    """Holds mesh defaults and builds displaced planes from depth rasters."""

    def __init__(
        self,
        subdivisions: int = PLANE_SEGMENTS,
        displacement_scale: float = DISPLACEMENT_SCALE,
        plane_scale: float = PLANE_SCALE,
    ):
        self.subdivisions = subdivisions
        self.displacement_scale = displacement_scale
        self.plane_scale = plane_scale

    def build(
        self,
        color_width: float,
        color_height: float,
        depth: RasterImage,
        subdivisions: int | None = None,
        displacement_scale: float | None = None,
    ) -> DisplacedMesh:
        return build_displaced_mesh(
            color_width,
            color_height,
            depth,
            self.subdivisions if subdivisions is None else subdivisions,
            self.displacement_scale if displacement_scale is None else displacement_scale,
            plane_scale=self.plane_scale,
        )

    def build_for(self, color: RasterImage, depth: RasterImage) -> DisplacedMesh:
        """Build a mesh sized to a color raster."""
        return self.build(color.width, color.height, depth)
