"""
Color image to parallax view orchestration.

A load either uses a supplied depth raster or estimates one, builds the
displaced mesh and hands both to a viewer. Loads are never aborted: when a
newer load starts while an older one is still estimating, the older one is
allowed to finish and its result is simply dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.errors import DepthParallaxError, InvalidInputError
from ..core.mesh_builder import DisplacedMesh, DisplacementMeshBuilder
from ..core.raster import RasterImage
from ..core.viewer import ViewerAdapter, check_render_contract
from ..models.depth_estimator import DepthEstimator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParallaxView:
    """Everything a viewer needs for one color image."""

    color: RasterImage
    depth: RasterImage
    mesh: DisplacedMesh
    depth_generated: bool
    generation: int


class DepthViewPipeline:
    """Turns color images (and optional depth maps) into parallax views."""

    def __init__(
        self,
        estimator: Optional[DepthEstimator] = None,
        mesh_builder: Optional[DisplacementMeshBuilder] = None,
        viewer: Optional[ViewerAdapter] = None,
    ):
        self.estimator = estimator
        self.mesh_builder = mesh_builder or DisplacementMeshBuilder()
        self.viewer = viewer
        self.generation = 0
        self.current: Optional[ParallaxView] = None

    def reset(self) -> None:
        """Drop the current view and invalidate any load still in flight."""
        self.generation += 1
        self.current = None

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def load(
        self, color: RasterImage, depth: Optional[RasterImage] = None
    ) -> Optional[ParallaxView]:
        """
        Build a parallax view for ``color``.

        Args:
            color: Color raster, also used as the mesh texture
            depth: User-supplied depth raster; estimated when None

        Returns:
            The new view, or None if a newer load or a reset superseded this
            one while it was running (estimation errors of a superseded load
            are dropped too)
        """
        self.generation += 1
        generation = self.generation

        depth_generated = depth is None
        if depth is None:
            if self.estimator is None:
                raise InvalidInputError("No depth map supplied and no estimator configured")
            try:
                depth = await self.estimator.estimate(color)
            except DepthParallaxError as e:
                if self.is_current(generation):
                    raise
                logger.debug(f"Discarding stale depth failure for load {generation}: {e}")
                return None

            if not self.is_current(generation):
                logger.debug(f"Discarding stale depth result for load {generation}")
                return None

        mesh = self.mesh_builder.build_for(color, depth)
        check_render_contract(mesh)

        view = ParallaxView(color, depth, mesh, depth_generated, generation)
        self.current = view
        if self.viewer is not None:
            self.viewer.render(mesh, color)

        logger.info(
            f"View ready: {color.width}x{color.height} image, "
            f"{mesh.vertex_count} vertices ({'generated' if depth_generated else 'supplied'} depth)"
        )
        return view

