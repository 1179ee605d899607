"""Sphere primitive with robust ray-sphere intersection.

This module provides a Sphere dataclass, its intersection function (using the
robust quadratic formula from Ray Tracing Gems to avoid floating-point
artifacts) and the solid-angle sampling routines used when a sphere is
registered as a light.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import (
    Ray,
    build_onb,
    length_squared,
    local_to_world,
    random_to_sphere,
    random_unit_vector,
)
from src.pathtracer.geometry.hit_record import HitRecord, make_face_record, make_miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Lower bound used when probing a light along a sampled direction
PDF_PROBE_T_MIN = 0.001
PDF_PROBE_T_MAX = 1e10


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant)) avoids catastrophic cancellation
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent ray: fall back to the textbook formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def sphere_uv(unit_normal: vec3):
    """Spherical surface coordinates of a point on the unit sphere.

    u is the angle around the Y axis starting from -X, v is the angle from -Y
    to +Y, both normalized to [0, 1].

    Args:
        unit_normal: Outward unit normal at the hit point.

    Returns:
        Tuple (u, v).
    """
    theta = ti.acos(tm.clamp(-unit_normal.y, -1.0, 1.0))
    phi = ti.atan2(-unit_normal.z, unit_normal.x) + tm.pi
    return phi / (2.0 * tm.pi), theta / tm.pi


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Test for ray-sphere intersection.

    Solves |origin + t * direction - center|^2 = radius^2 in the half-b form
    a*t^2 + 2*h*t + c = 0 with a = d.d, h = d.oc, c = oc.oc - r^2, taking
    the nearest root strictly inside (t_min, t_max).

    Args:
        ray: The ray to test (direction need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        A HitRecord; check ``hit`` to determine whether an intersection
        was found. ``material_id`` is left at -1.
    """
    oc = ray.origin - sphere.center
    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    result = make_miss_record()

    if discriminant >= 0.0 and a > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)
        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            hit_point = ray.origin + t * ray.direction
            outward_normal = (hit_point - sphere.center) / sphere.radius
            u, v = sphere_uv(outward_normal)
            result = make_face_record(ray, t, outward_normal, u, v)

    return result


@ti.func
def sphere_pdf_value(sphere: Sphere, origin: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of sampling ``direction`` toward the sphere.

    Seen from outside, directions are sampled uniformly in the subtended
    cone; from inside, uniformly over the whole sphere of directions.

    Args:
        sphere: The light sphere.
        origin: The point directions are sampled from.
        direction: The direction to evaluate.

    Returns:
        The density, 0 if the direction misses the sphere.
    """
    rec = hit_sphere(
        Ray(origin=origin, direction=direction, time=0.0),
        sphere,
        PDF_PROBE_T_MIN,
        PDF_PROBE_T_MAX,
    )
    density = 0.0
    if rec.hit == 1:
        distance_squared = length_squared(sphere.center - origin)
        radius_squared = sphere.radius * sphere.radius
        if distance_squared > radius_squared:
            ratio = radius_squared / distance_squared
            cos_theta_max = ti.sqrt(1.0 - ratio)
            # 1 - cos_theta_max without cancellation for distant spheres
            solid_angle = 2.0 * tm.pi * ratio / (1.0 + cos_theta_max)
            if solid_angle > 0.0:
                density = 1.0 / solid_angle
        else:
            density = 1.0 / (4.0 * tm.pi)
    return density


@ti.func
def sphere_random(sphere: Sphere, origin: vec3, rng: ti.u32):
    """Sample a direction from ``origin`` toward the sphere.

    Returns:
        Tuple (direction, rng), consistent with ``sphere_pdf_value``.
    """
    to_center = sphere.center - origin
    distance_squared = length_squared(to_center)
    direction = vec3(0.0, 0.0, 0.0)
    state = rng
    if distance_squared > sphere.radius * sphere.radius:
        u, v, w = build_onb(to_center)
        local_dir, state = random_to_sphere(sphere.radius, distance_squared, state)
        direction = local_to_world(local_dir, u, v, w)
    else:
        direction, state = random_unit_vector(state)
    return direction, state
