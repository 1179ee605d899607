"""Ray data structure and vector utilities for Taichi ray tracing.

This module provides the fundamental Ray dataclass and vector utility functions
for Monte Carlo ray tracing. All operations are designed to work within Taichi
kernels.

Random sampling helpers take the caller's generator state explicitly (see
``src.pathtracer.core.rng``) and return it advanced alongside their result.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction, time=0.0)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.rng import next_float

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point, direction vector and time stamp.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not necessarily
            normalized; intersection routines accept any non-zero length.
        time: The shutter time the ray was emitted at (motion blur sampling).
    """

    origin: vec3
    direction: vec3
    time: ti.f32


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3, time: ti.f32) -> Ray:
    """Create a ray from origin, direction and time."""
    return Ray(origin=origin, direction=direction, time=time)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(unit_incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    The result is split into the components perpendicular and parallel to the
    normal. Callers are responsible for detecting total internal reflection
    beforehand (see ``scatter_dielectric``).

    Args:
        unit_incident: The incoming direction (must be normalized).
        normal: The surface normal facing against the incident ray.
        eta: The ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction.
    """
    cos_theta = tm.min(-tm.dot(unit_incident, normal), 1.0)
    r_out_perp = eta * (unit_incident + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - tm.dot(r_out_perp, r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The approximate Fresnel reflectance coefficient.
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def build_onb(axis: vec3):
    """Build an orthonormal basis whose third axis is ``axis``.

    Args:
        axis: The direction to use as local z (need not be normalized).

    Returns:
        A tuple (u, v, w) forming a right-handed orthonormal basis with
        w = normalize(axis).
    """
    w = tm.normalize(axis)
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(w.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    v = tm.normalize(tm.cross(w, a))
    u = tm.cross(w, v)
    return u, v, w


@ti.func
def local_to_world(local_dir: vec3, u: vec3, v: vec3, w: vec3) -> vec3:
    """Transform a direction expressed in the basis (u, v, w) to world space."""
    return local_dir.x * u + local_dir.y * v + local_dir.z * w


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_in_unit_sphere(rng: ti.u32):
    """Generate a random point inside the unit sphere.

    Uses rejection sampling with a bounded number of attempts.

    Returns:
        Tuple (point, rng) with length(point) < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    state = rng
    found = False
    # Max iterations to avoid infinite loops
    for _ in range(100):
        if not found:
            x, state = next_float(state)
            y, state = next_float(state)
            z, state = next_float(state)
            p = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 2.0 * z - 1.0)
            if length_squared(p) < 1.0:
                found = True
    return p, state


@ti.func
def random_unit_vector(rng: ti.u32):
    """Generate a random unit vector uniformly distributed on the sphere.

    Returns:
        Tuple (direction, rng).
    """
    z, state = next_float(rng)
    r, state = next_float(state)
    z = 1.0 - 2.0 * z
    phi = 2.0 * tm.pi * r
    s = ti.sqrt(tm.max(0.0, 1.0 - z * z))
    return vec3(ti.cos(phi) * s, ti.sin(phi) * s, z), state


@ti.func
def random_in_unit_disk(rng: ti.u32):
    """Generate a random point inside the unit disk in the xy-plane.

    Used for thin-lens depth of field.

    Returns:
        Tuple (point, rng) where point = (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    state = rng
    found = False
    for _ in range(100):
        if not found:
            x, state = next_float(state)
            y, state = next_float(state)
            p = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 0.0)
            if p.x * p.x + p.y * p.y < 1.0:
                found = True
    return p, state


@ti.func
def random_cosine_direction(rng: ti.u32):
    """Generate a random direction with cosine-weighted distribution.

    The distribution has PDF = cos(theta) / pi about local +z.

    Returns:
        Tuple (direction, rng), direction in the local frame (z-up).
    """
    r1, state = next_float(rng)
    r2, state = next_float(state)
    phi = 2.0 * tm.pi * r1
    sqrt_r2 = ti.sqrt(r2)
    x = ti.cos(phi) * sqrt_r2
    y = ti.sin(phi) * sqrt_r2
    z = ti.sqrt(1.0 - r2)
    return vec3(x, y, z), state


@ti.func
def random_to_sphere(radius: ti.f32, distance_squared: ti.f32, rng: ti.u32):
    """Sample a direction uniformly within the cone subtended by a sphere.

    The sphere is seen from a point at squared distance ``distance_squared``
    from its center, along local +z.

    Returns:
        Tuple (direction, rng), direction in the local frame (z toward center).
    """
    r1, state = next_float(rng)
    r2, state = next_float(state)
    cos_theta_max = ti.sqrt(tm.max(0.0, 1.0 - radius * radius / distance_squared))
    z = 1.0 + r2 * (cos_theta_max - 1.0)
    phi = 2.0 * tm.pi * r1
    s = ti.sqrt(tm.max(0.0, 1.0 - z * z))
    return vec3(ti.cos(phi) * s, ti.sin(phi) * s, z), state
