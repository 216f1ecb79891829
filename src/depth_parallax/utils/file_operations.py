"""
File operations for images, depth maps and meshes.

Decoding goes through OpenCV and always produces RasterImage values in RGBA
order; depth maps are written as lossless PNGs and meshes as Wavefront OBJ
files via trimesh.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np
import trimesh
from PIL import Image
from trimesh.visual.material import SimpleMaterial
from trimesh.visual.texture import TextureVisuals

from ..core.constants import ERROR_MESSAGES, SUPPORTED_IMAGE_FORMATS
from ..core.errors import InvalidInputError, OutputWriteError
from ..core.mesh_builder import DisplacedMesh
from ..core.raster import RasterImage
from .path_utils import is_supported_image

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def validate_image_file(image_path: PathLike) -> bool:
    """
    Validate if file exists and is a supported image format.

    Args:
        image_path: Path to image file

    Returns:
        True if valid image file
    """
    path = Path(image_path)
    return path.is_file() and is_supported_image(path)


def _read_first_gif_frame(path: Path) -> Optional[np.ndarray]:
    cap = cv2.VideoCapture(str(path))
    try:
        ok, frame = cap.read()
    finally:
        cap.release()
    return frame if ok else None


def load_image(image_path: PathLike) -> RasterImage:
    """
    Decode an image file into an RGBA raster.

    Only the first frame of an animated GIF is used. Alpha is discarded and
    replaced with opaque alpha.

    Args:
        image_path: Path to a .jpg, .jpeg, .png or .gif file

    Returns:
        Decoded RasterImage

    Raises:
        InvalidInputError: If the extension is unsupported, or the file is
            missing or cannot be decoded
    """
    path = Path(image_path)
    if not is_supported_image(path):
        raise InvalidInputError(
            ERROR_MESSAGES["unsupported_format"].format(
                suffix=path.suffix, formats=", ".join(SUPPORTED_IMAGE_FORMATS)
            )
        )

    bgr = cv2.imread(str(path), cv2.IMREAD_COLOR) if path.is_file() else None
    if bgr is None and path.suffix.lower() == ".gif" and path.is_file():
        bgr = _read_first_gif_frame(path)
    if bgr is None:
        raise InvalidInputError(ERROR_MESSAGES["image_decode_failed"].format(path=path))

    return RasterImage.from_array(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))


def load_color_image(image_path: PathLike) -> RasterImage:
    """Decode the color photograph a view is built from."""
    return load_image(image_path)


def load_depth_map(depth_path: PathLike) -> RasterImage:
    """
    Decode a user-supplied depth map.

    The file is used as-is: a grayscale image has its value replicated to
    R, G and B, and for a color image the red channel is what gets sampled.
    """
    return load_image(depth_path)


def save_depth_map(depth: RasterImage, output_path: PathLike) -> Path:
    """
    Write a depth raster as an 8-bit grayscale PNG.

    Args:
        depth: Depth raster (R, G and B are identical)
        output_path: Destination file path

    Returns:
        Path written

    Raises:
        OutputWriteError: If the PNG cannot be written
    """
    path = Path(output_path)
    _make_parent_dir(path, "depth map")
    if not cv2.imwrite(str(path), np.ascontiguousarray(depth.red())):
        raise OutputWriteError(ERROR_MESSAGES["write_failed"].format(kind="depth map", path=path))
    return path


def save_mesh_obj(
    mesh: DisplacedMesh,
    output_path: PathLike,
    texture: Optional[RasterImage] = None,
) -> Path:
    """
    Export a displaced mesh as a Wavefront OBJ file through trimesh.

    When ``texture`` is given, trimesh also writes a material library named
    after the OBJ and the texture image it references as the diffuse map.
    OBJ texture coordinates have a bottom-left origin, so v is flipped back
    from the mesh's top-left convention.

    Args:
        mesh: Mesh to export
        output_path: Destination .obj path
        texture: Color raster to apply to the mesh

    Returns:
        Path of the OBJ file

    Raises:
        OutputWriteError: If the mesh or its assets cannot be written
    """
    path = Path(output_path)
    _make_parent_dir(path, "mesh")

    export_mesh = trimesh.Trimesh(
        vertices=np.array(mesh.positions),
        faces=np.array(mesh.indices),
        vertex_normals=np.array(mesh.normals),
        process=False,
    )
    if texture is not None:
        obj_uvs = np.column_stack([mesh.uvs[:, 0], 1.0 - mesh.uvs[:, 1]])
        material = SimpleMaterial(
            image=Image.fromarray(np.ascontiguousarray(texture.rgb())),
            name=path.stem,
        )
        export_mesh.visual = TextureVisuals(uv=obj_uvs, material=material)

    try:
        export_mesh.export(
            str(path),
            file_type="obj",
            include_normals=True,
            mtl_name=path.with_suffix(".mtl").name,
        )
    except OSError as e:
        raise OutputWriteError(ERROR_MESSAGES["write_failed"].format(kind="mesh", path=path)) from e

    logger.debug(f"Exported {mesh.vertex_count} vertices, {mesh.triangle_count} triangles to {path}")
    return path


def _make_parent_dir(path: Path, kind: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(ERROR_MESSAGES["write_failed"].format(kind=kind, path=path)) from e
