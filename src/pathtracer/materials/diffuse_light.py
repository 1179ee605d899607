"""Diffuse area light material.

An emitter radiates a constant color from the front face of its surface
and never scatters incoming light.
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.materials.scatter_record import validate_color

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def emit_diffuse_light(emission: vec3, front_face: ti.i32) -> vec3:
    """Radiance leaving the surface toward the ray origin.

    Returns:
        ``emission`` on the front face, black on the back face.
    """
    radiance = vec3(0.0, 0.0, 0.0)
    if front_face == 1:
        radiance = emission
    return radiance


# Maximum number of emissive materials in the scene
MAX_DIFFUSE_LIGHT_MATERIALS = 256

diffuse_light_emissions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DIFFUSE_LIGHT_MATERIALS)
num_diffuse_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_diffuse_light_materials() -> None:
    """Clear all emissive materials."""
    num_diffuse_light_materials[None] = 0


def add_diffuse_light_material(emission: tuple[float, float, float]) -> int:
    """Add an emissive material to the material registry.

    Args:
        emission: Emitted radiance as (R, G, B). Components may exceed 1.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any emission component is negative.
    """
    validate_color("Emission", emission, None)

    idx = num_diffuse_light_materials[None]
    if idx >= MAX_DIFFUSE_LIGHT_MATERIALS:
        raise RuntimeError(
            f"Maximum number of diffuse light materials ({MAX_DIFFUSE_LIGHT_MATERIALS}) exceeded"
        )

    diffuse_light_emissions[idx] = vec3(emission[0], emission[1], emission[2])
    num_diffuse_light_materials[None] = idx + 1
    return idx


def get_diffuse_light_material_count() -> int:
    """Get the number of emissive materials in the registry."""
    return int(num_diffuse_light_materials[None])


@ti.func
def get_diffuse_light_emission(material_idx: ti.i32) -> vec3:
    """Get the emission for an emissive material by index."""
    return diffuse_light_emissions[material_idx]
