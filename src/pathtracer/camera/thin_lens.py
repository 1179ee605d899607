"""Thin-lens camera model with depth of field and a shutter interval.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport lies on the focus plane, ``focus_dist`` units in front of the
eye. Ray origins are jittered over a disk of radius ``aperture / 2`` in the
(u, v) plane, and every ray is stamped with a time drawn uniformly from the
shutter interval [time0, time1].

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.camera.thin_lens import ThinLensCamera, setup_camera, get_ray
    >>>
    >>> camera = ThinLensCamera(
    ...     lookfrom=(278.0, 278.0, -800.0),
    ...     lookat=(278.0, 278.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=40.0,
    ...     aspect_ratio=1.0,
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray, rng = get_ray(0.5, 0.5, rng)  # Ray through image center
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from src.pathtracer.core.ray import make_ray, random_in_unit_disk, vec3
from src.pathtracer.core.rng import next_float_range

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass(frozen=True)
class ThinLensCamera:
    """Configuration for a thin-lens perspective camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter; 0 gives a pinhole camera.
        focus_dist: Distance from the eye to the plane of perfect focus.
        time0: Shutter open time.
        time1: Shutter close time.

    Raises:
        ValueError: On construction with out-of-range parameters or a
            degenerate view basis.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_dist: float = 1.0
    time0: float = 0.0
    time1: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.aperture < 0.0:
            raise ValueError(f"aperture must be non-negative, got {self.aperture}")
        if self.focus_dist <= 0.0:
            raise ValueError(f"focus_dist must be positive, got {self.focus_dist}")
        if self.time1 < self.time0:
            raise ValueError(
                f"Shutter interval is reversed: time0={self.time0}, time1={self.time1}"
            )

        view = np.asarray(self.lookfrom, dtype=np.float64) - np.asarray(self.lookat, dtype=np.float64)
        if np.linalg.norm(view) < 1e-12:
            raise ValueError("lookfrom and lookat must differ")
        if np.linalg.norm(np.cross(np.asarray(self.vup, dtype=np.float64), view)) < 1e-12:
            raise ValueError("vup must not be parallel to the view direction")

    @property
    def lens_radius(self) -> float:
        """Radius of the lens disk."""
        return self.aperture / 2.0


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Viewport on the focus plane
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())
_time0 = ti.field(dtype=ti.f32, shape=())
_time1 = ti.field(dtype=ti.f32, shape=())

_camera_ready = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: ThinLensCamera) -> None:
    """Upload the camera's basis, lens and viewport to Taichi fields.

    Args:
        camera: Validated camera configuration.
    """
    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)

    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)

    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)

    v = np.cross(w, u)

    horizontal = camera.focus_dist * viewport_width * u
    vertical = camera.focus_dist * viewport_height * v
    lower_left = lookfrom - horizontal / 2.0 - vertical / 2.0 - camera.focus_dist * w

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.lens_radius
    _time0[None] = camera.time0
    _time1[None] = camera.time1
    _camera_ready[None] = 1


def reset_camera() -> None:
    """Mark the camera as not set up."""
    _camera_ready[None] = 0


def is_camera_ready() -> bool:
    """Check whether setup_camera has been called."""
    return bool(_camera_ready[None])


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32, rng: ti.u32):
    """Generate a primary ray through normalized image coordinates (s, t).

    - s = 0: left edge, s = 1: right edge
    - t = 0: bottom edge, t = 1: top edge

    Args:
        s: Horizontal coordinate in [0, 1].
        t: Vertical coordinate in [0, 1].
        rng: Generator state.

    Returns:
        Tuple (Ray, rng). The direction is not normalized.
    """
    disk, state = random_in_unit_disk(rng)
    rd = _lens_radius[None] * disk
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None] + offset
    direction = (
        _lower_left_corner[None]
        + s * _viewport_horizontal[None]
        + t * _viewport_vertical[None]
        - _camera_origin[None]
        - offset
    )
    time, state = next_float_range(state, _time0[None], _time1[None])
    return make_ray(origin, direction, time), state


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left.
    """
    fields = {
        "origin": _camera_origin,
        "u": _camera_u,
        "v": _camera_v,
        "w": _camera_w,
        "horizontal": _viewport_horizontal,
        "vertical": _viewport_vertical,
        "lower_left": _lower_left_corner,
    }
    info = {}
    for name, value_field in fields.items():
        value = value_field[None]
        info[name] = (float(value[0]), float(value[1]), float(value[2]))
    return info
