"""Axis-aligned rectangle primitives (XY, XZ and YZ planes).

A rectangle lies in the plane ``c = k`` where ``c`` is the axis perpendicular
to its orientation, and spans ``[a0, a1] x [b0, b1]`` along the two remaining
axes:

    XY: a = x, b = y, plane z = k, outward normal +Z
    XZ: a = x, b = z, plane y = k, outward normal +Y
    YZ: a = y, b = z, plane x = k, outward normal +X

Surface coordinates (u, v) are the normalized positions along a and b.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.geometry.rect import Rect, RectAxis, hit_rect
    >>> # Floor of a Cornell box
    >>> floor = Rect(axis=RectAxis.XZ, a0=0, a1=555, b0=0, b1=555, k=0)
    >>> # Use hit_rect within a Taichi kernel
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.rng import next_float_range
from src.pathtracer.core.ray import Ray, length_squared

from .hit_record import HitRecord, make_face_record, make_miss_record
from .sphere import PDF_PROBE_T_MAX, PDF_PROBE_T_MIN

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Below this the ray is considered parallel to the rectangle's plane
_PARALLEL_EPSILON = 1e-8


class RectAxis(IntEnum):
    """Orientation of an axis-aligned rectangle."""

    XY = 0
    XZ = 1
    YZ = 2


@ti.dataclass
class Rect:
    """An axis-aligned rectangle.

    Attributes:
        axis: Orientation (a RectAxis value).
        a0, a1: Extent along the first spanned axis.
        b0, b1: Extent along the second spanned axis.
        k: Plane constant along the perpendicular axis.
    """

    axis: ti.i32
    a0: ti.f32
    a1: ti.f32
    b0: ti.f32
    b1: ti.f32
    k: ti.f32


@ti.func
def _split(axis: ti.i32, p: vec3):
    """Split a vector into (spanned a, spanned b, perpendicular) components."""
    a = p.x
    b = p.y
    c = p.z
    if axis == int(RectAxis.XZ):
        b = p.z
        c = p.y
    elif axis == int(RectAxis.YZ):
        a = p.y
        b = p.z
        c = p.x
    return a, b, c


@ti.func
def _join(axis: ti.i32, a: ti.f32, b: ti.f32, c: ti.f32) -> vec3:
    """Inverse of _split."""
    p = vec3(a, b, c)
    if axis == int(RectAxis.XZ):
        p = vec3(a, c, b)
    elif axis == int(RectAxis.YZ):
        p = vec3(c, a, b)
    return p


@ti.func
def rect_normal(rect: Rect) -> vec3:
    """Outward (positive-axis) normal of the rectangle."""
    return _join(rect.axis, 0.0, 0.0, 1.0)


@ti.func
def rect_area(rect: Rect) -> ti.f32:
    """Area of the rectangle."""
    return (rect.a1 - rect.a0) * (rect.b1 - rect.b0)


@ti.func
def hit_rect(ray: Ray, rect: Rect, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Test for ray-rectangle intersection.

    Args:
        ray: The ray to test.
        rect: The rectangle.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        A HitRecord; ``material_id`` is left at -1.
    """
    oa, ob, oc = _split(rect.axis, ray.origin)
    da, db, dc = _split(rect.axis, ray.direction)

    result = make_miss_record()

    if ti.abs(dc) > _PARALLEL_EPSILON:
        t = (rect.k - oc) / dc
        if t > t_min and t < t_max:
            a = oa + t * da
            b = ob + t * db
            if a >= rect.a0 and a <= rect.a1 and b >= rect.b0 and b <= rect.b1:
                u = (a - rect.a0) / (rect.a1 - rect.a0)
                v = (b - rect.b0) / (rect.b1 - rect.b0)
                result = make_face_record(ray, t, rect_normal(rect), u, v)

    return result


@ti.func
def rect_pdf_value(rect: Rect, origin: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of sampling ``direction`` toward the rectangle.

    Converts the uniform area density 1/A into solid angle:
    distance^2 / (|cos| * A), where cos is taken between the direction and
    the plane normal.

    Returns:
        The density, 0 if the direction misses the rectangle.
    """
    rec = hit_rect(
        Ray(origin=origin, direction=direction, time=0.0),
        rect,
        PDF_PROBE_T_MIN,
        PDF_PROBE_T_MAX,
    )
    density = 0.0
    if rec.hit == 1:
        dir_len_sq = length_squared(direction)
        distance_squared = rec.t * rec.t * dir_len_sq
        cosine = ti.abs(tm.dot(direction, rect_normal(rect))) / ti.sqrt(dir_len_sq)
        denom = cosine * rect_area(rect)
        if denom > _PARALLEL_EPSILON:
            density = distance_squared / denom
    return density


@ti.func
def rect_random(rect: Rect, origin: vec3, rng: ti.u32):
    """Direction from ``origin`` to a uniform random point on the rectangle.

    Returns:
        Tuple (direction, rng). The direction is not normalized.
    """
    a, state = next_float_range(rng, rect.a0, rect.a1)
    b, state = next_float_range(state, rect.b0, rect.b1)
    return _join(rect.axis, a, b, rect.k) - origin, state
