"""Instance transforms: translation and rotation about the Y axis.

Wrappers never change the hit parameter ``t``; they only move the ray into
the child's frame and the resulting point and normal back out. A rotation by
``theta`` is stored as its ``(sin, cos)`` pair, precomputed on the host.

The "to local" direction applies the inverse transform (rotate by -theta),
the "to world" direction applies the forward one (rotate by +theta).
"""

import math

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


def rotation_y_terms(angle_degrees: float) -> tuple[float, float]:
    """Precompute (sin, cos) of a rotation about +Y given in degrees."""
    radians = math.radians(angle_degrees)
    return math.sin(radians), math.cos(radians)


@ti.func
def rotate_y_to_local(v: vec3, sin_theta: ti.f32, cos_theta: ti.f32) -> vec3:
    """Rotate a point or direction by -theta about +Y."""
    return vec3(
        cos_theta * v.x - sin_theta * v.z,
        v.y,
        sin_theta * v.x + cos_theta * v.z,
    )


@ti.func
def rotate_y_to_world(v: vec3, sin_theta: ti.f32, cos_theta: ti.f32) -> vec3:
    """Rotate a point or direction by +theta about +Y."""
    return vec3(
        cos_theta * v.x + sin_theta * v.z,
        v.y,
        -sin_theta * v.x + cos_theta * v.z,
    )
