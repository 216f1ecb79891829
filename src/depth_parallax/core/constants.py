"""
Constants and default configuration values for Depth Parallax.

This module centralizes all magic numbers and configuration defaults
used throughout the application.
"""

# Model configuration
MODEL_INPUT_SIZE = 1036  # Fixed square edge fed to the depth model (multiple of the 14px ViT patch)
MODEL_INPUT_NAME = "pixel_values"
MODEL_OUTPUT_NAME = "predicted_depth"

MODEL_CONFIGS = {
    "small": "depth-anything/Depth-Anything-V2-Small-hf",
    "base": "depth-anything/Depth-Anything-V2-Base-hf",
    "large": "depth-anything/Depth-Anything-V2-Large-hf",
}
DEFAULT_MODEL = "small"

# Per-channel normalization Depth-Anything-V2 was trained with; replaced by
# the image processor's values once the model is loaded
IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)

# Fewest pixels an image may have before depth estimation is attempted
MIN_ESTIMATE_PIXELS = 2

# Mesh generation
PLANE_SEGMENTS = 100  # More segments = smoother depth, more vertices
DISPLACEMENT_SCALE = 50.0
PLANE_SCALE = 0.5  # Plane spans half the color image's pixel dimensions

# Depth raster encoding
DEPTH_MID_GRAY = 127.5
DEPTH_MAX_VALUE = 255.0
OPAQUE_ALPHA = 255

# Viewer contract (orbit limits consumed by ViewerAdapter implementations)
VIEWER_SETTINGS = {
    "max_view_angle": 0.4,  # radians, limits polar and azimuth swing
    "camera_distance": 300.0,
    "min_distance": 200.0,
    "max_distance": 600.0,
    "field_of_view": 75.0,
    "auto_rotate": True,
    "auto_rotate_speed": 0.5,
    "enable_pan": False,
}

# File formats
SUPPORTED_IMAGE_FORMATS = [".jpg", ".jpeg", ".png", ".gif"]
DEPTH_MAP_FILENAME = "depth-map.png"
MESH_FORMAT = ".obj"

DEFAULT_SETTINGS = {
    "model": DEFAULT_MODEL,
    "device": "auto",
    "input_size": MODEL_INPUT_SIZE,
    "segments": PLANE_SEGMENTS,
    "displacement_scale": DISPLACEMENT_SCALE,
}

ERROR_MESSAGES = {
    "empty_raster": "Raster dimensions must be positive, got {width}x{height}",
    "image_too_small": "Image is too small for depth estimation: {width}x{height} (at least {minimum} pixels required)",
    "backend_unavailable": "Depth inference backend could not be created: {error}",
    "inference_failed": "Depth inference failed: {error}",
    "unsupported_format": "Unsupported image format '{suffix}'. Supported formats: {formats}",
    "image_decode_failed": "Could not decode image: {path}",
    "write_failed": "Failed to write {kind}: {path}",
}
