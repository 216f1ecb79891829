"""
Depth Parallax - Turn a single photograph into a depth-displaced 3D mesh.
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from .core.constants import DEFAULT_SETTINGS, MODEL_CONFIGS
from .core.errors import DepthParallaxError
from .core.mesh_builder import DisplacementMeshBuilder
from .models.depth_estimator import create_depth_estimator
from .processing.view_pipeline import DepthViewPipeline
from .utils.file_operations import (
    load_color_image,
    load_depth_map,
    save_depth_map,
    save_mesh_obj,
    validate_image_file,
)
from .utils.path_utils import format_mesh_summary, get_depth_map_path, get_mesh_path

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a depth map for a photo and displace a plane mesh with it"
    )
    parser.add_argument("image", help="Input color image (.jpg, .jpeg, .png, .gif)")
    parser.add_argument("-d", "--depth", default=None,
                        help="Use this depth map instead of generating one")
    parser.add_argument("-o", "--output", default="./output",
                        help="Output directory (default: ./output)")
    parser.add_argument("-m", "--model", choices=sorted(MODEL_CONFIGS), default=DEFAULT_SETTINGS["model"],
                        help="Depth-Anything-V2 model size (default: %(default)s)")
    parser.add_argument("--device", choices=["auto", "cpu", "cuda", "mps"], default=DEFAULT_SETTINGS["device"],
                        help="Inference device (default: %(default)s)")
    parser.add_argument("--input-size", type=int, default=DEFAULT_SETTINGS["input_size"],
                        help="Square model input edge in pixels (default: %(default)s)")
    parser.add_argument("-s", "--segments", type=int, default=DEFAULT_SETTINGS["segments"],
                        help="Plane subdivisions per edge (default: %(default)s)")
    parser.add_argument("--displacement", type=float, default=DEFAULT_SETTINGS["displacement_scale"],
                        help="Depth displacement scale (default: %(default)s)")
    parser.add_argument("--no-mesh", dest="save_mesh", action="store_false",
                        help="Only write the depth map")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


async def run(args: argparse.Namespace) -> int:
    start_time = time.time()
    output_dir = Path(args.output)

    color = load_color_image(args.image)
    print(f"Loaded {args.image} ({color.width}x{color.height})")

    depth = None
    if args.depth:
        depth = load_depth_map(args.depth)
        print(f"Using supplied depth map {args.depth} ({depth.width}x{depth.height})")

    estimator = create_depth_estimator(args.model, args.device, args.input_size)
    builder = DisplacementMeshBuilder(args.segments, args.displacement)
    pipeline = DepthViewPipeline(estimator, builder)

    if depth is None:
        print(f"Estimating depth with Depth-Anything-V2 ({args.model})...")
    view = await pipeline.load(color, depth)

    if view.depth_generated:
        depth_path = save_depth_map(view.depth, get_depth_map_path(output_dir))
        print(f"Depth map saved to {depth_path}")

    if args.save_mesh:
        mesh_path = get_mesh_path(args.image, output_dir)
        save_mesh_obj(view.mesh, mesh_path, texture=color)
        print(f"Mesh saved to {mesh_path} ({format_mesh_summary(view.mesh.vertex_count, view.mesh.triangle_count)})")

    print(f"Done in {time.time() - start_time:.1f}s")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    for path in filter(None, [args.image, args.depth]):
        if not validate_image_file(path):
            print(f"Error: {path} is not a readable .jpg, .jpeg, .png or .gif file")
            return 1

    try:
        return asyncio.run(run(args))
    except DepthParallaxError as e:
        logger.debug("Pipeline failed", exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
