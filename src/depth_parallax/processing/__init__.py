"""Orchestration from color image to parallax view."""

from .view_pipeline import DepthViewPipeline, ParallaxView

__all__ = ["DepthViewPipeline", "ParallaxView"]
