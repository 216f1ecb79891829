"""
Pure utility functions for path and string manipulation.

This module contains ONLY pure functions with no side effects:
- No filesystem I/O
- No external state mutation
- Deterministic output for given inputs
"""

from __future__ import annotations

import os
from pathlib import Path

from ..core.constants import DEPTH_MAP_FILENAME, MESH_FORMAT, SUPPORTED_IMAGE_FORMATS


def is_supported_image(path: str | Path) -> bool:
    """
    Check whether a path has a supported image extension.

    Examples:
        >>> is_supported_image("photo.JPG")
        True
        >>> is_supported_image("photo.bmp")
        False
    """
    return Path(path).suffix.lower() in SUPPORTED_IMAGE_FORMATS


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename for cross-platform compatibility.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename

    Examples:
        >>> sanitize_filename('my<photo>.obj')
        'my_photo_.obj'
        >>> sanitize_filename('___test___.obj')
        'test_.obj'
    """
    invalid_chars = '<>:"/\\|?*'
    for char in invalid_chars:
        filename = filename.replace(char, "_")

    while "__" in filename:
        filename = filename.replace("__", "_")

    filename = filename.strip("_")
    if len(filename) > 200:  # Reasonable filename length limit
        name, ext = os.path.splitext(filename)
        filename = name[: 200 - len(ext)] + ext

    return filename


def get_depth_map_path(output_dir: str | Path) -> Path:
    """
    Path the generated depth map is written to.

    Examples:
        >>> get_depth_map_path("out").as_posix()
        'out/depth-map.png'
    """
    return Path(output_dir) / DEPTH_MAP_FILENAME


def get_mesh_path(image_path: str | Path, output_dir: str | Path) -> Path:
    """
    Path of the exported mesh, named after the color image.

    Examples:
        >>> get_mesh_path("photos/My Cat.jpg", "out").as_posix()
        'out/My Cat.obj'
    """
    stem = sanitize_filename(Path(image_path).stem) or "mesh"
    return Path(output_dir) / f"{stem}{MESH_FORMAT}"


def format_mesh_summary(vertex_count: int, triangle_count: int) -> str:
    """
    Format mesh statistics for console output.

    Examples:
        >>> format_mesh_summary(10201, 20000)
        '10,201 vertices, 20,000 triangles'
    """
    return f"{vertex_count:,} vertices, {triangle_count:,} triangles"
