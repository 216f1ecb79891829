"""Tests for the color image to parallax view pipeline."""

import asyncio
from unittest.mock import Mock

import numpy as np
import pytest

from depth_parallax.core.errors import InferenceFailedError, InvalidInputError
from depth_parallax.core.mesh_builder import DisplacementMeshBuilder
from depth_parallax.core.raster import RasterImage
from depth_parallax.core.viewer import ViewerAdapter, check_render_contract, orbit_limits
from depth_parallax.models.depth_estimator import DepthEstimator
from depth_parallax.processing.view_pipeline import DepthViewPipeline


def gray_raster(width, height, level):
    return RasterImage.from_array(np.full((height, width), level, dtype=np.uint8))


class GatedEstimator:
    """Estimator whose results are released manually, to interleave loads."""

    def __init__(self, error=None):
        self.gates = []
        self.error = error

    async def estimate(self, color):
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        if self.error is not None:
            raise self.error
        return gray_raster(color.width, color.height, 255)


class TestLoad:
    """Test DepthViewPipeline.load."""

    def test_supplied_depth_skips_estimation(self, color_raster):
        """Test a user depth map is used without calling the estimator."""
        estimator = Mock()
        pipeline = DepthViewPipeline(estimator, DisplacementMeshBuilder(subdivisions=4))
        depth = gray_raster(3, 3, 0)

        view = asyncio.run(pipeline.load(color_raster, depth))

        estimator.estimate.assert_not_called()
        assert view.depth is depth
        assert view.depth_generated is False
        assert view.mesh.vertex_count == 25
        assert pipeline.current is view

    def test_generated_depth(self, color_raster, fake_backend):
        """Test depth is estimated when none is supplied."""
        pipeline = DepthViewPipeline(
            DepthEstimator(lambda: fake_backend), DisplacementMeshBuilder(subdivisions=2)
        )
        view = asyncio.run(pipeline.load(color_raster))

        assert view.depth_generated is True
        assert (view.depth.width, view.depth.height) == (color_raster.width, color_raster.height)
        assert len(fake_backend.calls) == 1

    def test_viewer_receives_mesh_and_texture(self, color_raster):
        """Test the viewer is handed the mesh and the color raster."""
        viewer = Mock(spec=ViewerAdapter)
        pipeline = DepthViewPipeline(mesh_builder=DisplacementMeshBuilder(subdivisions=1), viewer=viewer)

        view = asyncio.run(pipeline.load(color_raster, gray_raster(2, 2, 128)))

        viewer.render.assert_called_once_with(view.mesh, color_raster)

    def test_no_depth_and_no_estimator(self, color_raster):
        """Test a load without depth needs an estimator."""
        with pytest.raises(InvalidInputError):
            asyncio.run(DepthViewPipeline().load(color_raster))

    def test_estimator_errors_propagate(self):
        """Test a 1x1 image fails with InvalidInputError through the pipeline."""
        factory = Mock()
        pipeline = DepthViewPipeline(DepthEstimator(factory))

        with pytest.raises(InvalidInputError):
            asyncio.run(pipeline.load(gray_raster(1, 1, 0)))
        factory.assert_not_called()


class TestStaleResultDiscard:
    """Test superseded loads finish but their results are dropped."""

    def test_newer_load_supersedes_older(self):
        """Test an older load completing last is discarded, not rendered."""
        estimator = GatedEstimator()
        viewer = Mock()
        pipeline = DepthViewPipeline(estimator, DisplacementMeshBuilder(subdivisions=1), viewer)
        first_color = gray_raster(4, 4, 10)
        second_color = gray_raster(6, 6, 20)

        async def scenario():
            first = asyncio.ensure_future(pipeline.load(first_color))
            await asyncio.sleep(0)
            second = asyncio.ensure_future(pipeline.load(second_color))
            await asyncio.sleep(0)

            # Release the newer load first, then let the stale one finish
            estimator.gates[1].set()
            second_view = await second
            estimator.gates[0].set()
            first_view = await first
            return first_view, second_view

        first_view, second_view = asyncio.run(scenario())

        assert first_view is None
        assert second_view.color is second_color
        assert pipeline.current is second_view
        viewer.render.assert_called_once_with(second_view.mesh, second_color)

    def test_reset_invalidates_in_flight_load(self, color_raster):
        """Test reset() makes an in-flight load return None."""
        estimator = GatedEstimator()
        pipeline = DepthViewPipeline(estimator, DisplacementMeshBuilder(subdivisions=1))

        async def scenario():
            load = asyncio.ensure_future(pipeline.load(color_raster))
            await asyncio.sleep(0)
            pipeline.reset()
            estimator.gates[0].set()
            return await load

        assert asyncio.run(scenario()) is None
        assert pipeline.current is None

    def test_superseded_failure_is_dropped(self, color_raster):
        """Test an estimation error from a superseded load returns None instead of raising."""
        estimator = GatedEstimator(error=InferenceFailedError("model crashed"))
        pipeline = DepthViewPipeline(estimator, DisplacementMeshBuilder(subdivisions=1))

        async def scenario():
            load = asyncio.ensure_future(pipeline.load(color_raster))
            await asyncio.sleep(0)
            pipeline.reset()
            estimator.gates[0].set()
            return await load

        assert asyncio.run(scenario()) is None
        assert pipeline.current is None

    def test_current_failure_still_raises(self, color_raster):
        """Test an estimation error from the latest load reaches the caller."""
        estimator = GatedEstimator(error=InferenceFailedError("model crashed"))
        pipeline = DepthViewPipeline(estimator, DisplacementMeshBuilder(subdivisions=1))

        async def scenario():
            load = asyncio.ensure_future(pipeline.load(color_raster))
            await asyncio.sleep(0)
            estimator.gates[0].set()
            return await load

        with pytest.raises(InferenceFailedError, match="model crashed"):
            asyncio.run(scenario())

    def test_sequential_loads_both_current(self, color_raster):
        """Test loads that do not overlap are both delivered."""
        pipeline = DepthViewPipeline(mesh_builder=DisplacementMeshBuilder(subdivisions=1))
        first = asyncio.run(pipeline.load(color_raster, gray_raster(2, 2, 0)))
        second = asyncio.run(pipeline.load(color_raster, gray_raster(2, 2, 255)))

        assert first is not None and second is not None
        assert second.generation == first.generation + 1


class TestViewerContract:
    """Test the viewer boundary helpers."""

    def test_orbit_limits_default(self):
        """Test default orbit limits swing 0.4 rad around the front view."""
        limits = orbit_limits()
        assert limits["min_azimuth_angle"] == pytest.approx(-0.4)
        assert limits["max_azimuth_angle"] == pytest.approx(0.4)
        assert limits["min_polar_angle"] == pytest.approx(np.pi / 2 - 0.4)
        assert limits["max_polar_angle"] == pytest.approx(np.pi / 2 + 0.4)
        assert limits["min_distance"] == 200.0
        assert limits["max_distance"] == 600.0

    def test_orbit_limits_override(self):
        """Test settings override the defaults."""
        assert orbit_limits({"max_view_angle": 0.1})["max_azimuth_angle"] == pytest.approx(0.1)

    def test_render_contract_rejects_out_of_range_uvs(self):
        """Test UVs outside [0, 1] violate the viewer contract."""
        mesh = Mock(uvs=np.array([[0.0, 0.0], [1.5, 0.2]]))
        with pytest.raises(InvalidInputError):
            check_render_contract(mesh)

    def test_protocol_runtime_check(self):
        """Test any object with render() satisfies ViewerAdapter."""

        class Viewer:
            def render(self, mesh, color_texture):
                pass

        assert isinstance(Viewer(), ViewerAdapter)
