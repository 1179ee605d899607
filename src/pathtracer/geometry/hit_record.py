"""Hit record shared by every hittable variant.

A hit record is only meaningful when ``hit == 1``; it lives for the duration
of one intersection query.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-surface intersection.

    Attributes:
        hit: Whether the ray intersected the surface (1 if hit, 0 if miss).
        t: The ray parameter of the intersection.
        point: The 3D point where the ray intersected the surface.
        normal: The unit surface normal, always facing against the ray.
        u: First surface parametric coordinate in [0, 1].
        v: Second surface parametric coordinate in [0, 1].
        front_face: 1 if the ray approaches from the side the outward normal
            points toward, 0 otherwise.
        material_id: Unified material ID of the struck surface, -1 if none.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    u: ti.f32
    v: ti.f32
    front_face: ti.i32
    material_id: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        u=0.0,
        v=0.0,
        front_face=0,
        material_id=-1,
    )


@ti.func
def make_face_record(
    ray: Ray,
    t: ti.f32,
    outward_normal: vec3,
    u: ti.f32,
    v: ti.f32,
) -> HitRecord:
    """Build a hit record, orienting the normal against the ray.

    Args:
        ray: The ray that produced the hit.
        t: The hit parameter.
        outward_normal: The unit geometric normal pointing out of the surface.
        u: First surface coordinate.
        v: Second surface coordinate.

    Returns:
        A HitRecord with hit=1 and material_id=-1 (filled in by the caller).
    """
    front_face = 1
    normal = outward_normal
    if tm.dot(ray.direction, outward_normal) > 0.0:
        front_face = 0
        normal = -outward_normal
    return HitRecord(
        hit=1,
        t=t,
        point=ray.origin + t * ray.direction,
        normal=normal,
        u=u,
        v=v,
        front_face=front_face,
        material_id=-1,
    )
