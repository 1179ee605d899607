"""Camera module for primary ray generation.

Ray generation uses normalized image coordinates:
    s in [0, 1]: left to right across the image
    t in [0, 1]: bottom to top across the image
"""

from .thin_lens import (
    ThinLensCamera,
    get_camera_info,
    get_ray,
    is_camera_ready,
    reset_camera,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "setup_camera",
    "reset_camera",
    "is_camera_ready",
    "get_ray",
    "get_camera_info",
]
