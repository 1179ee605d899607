"""Metal (specular reflective) material implementation.

A metal reflects the incoming direction about the normal,

    R = I - 2(I . N)N

and perturbs the result by ``fuzz`` times a random point in the unit sphere.
Perturbed directions that end up below the surface are absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # srec, rng = scatter_metal(albedo, fuzz, incident_dir, normal, rng)
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import random_in_unit_sphere, reflect
from src.pathtracer.materials.scatter_record import ScatterRecord, validate_color

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    rng: ti.u32,
):
    """Scatter at a metal surface.

    Args:
        albedo: Reflective tint (RGB).
        fuzz: Perturbation radius in [0, 1]; 0 is a perfect mirror.
        incident_direction: Incoming ray direction (any length).
        normal: Unit surface normal facing against the incoming ray.
        rng: Generator state.

    Returns:
        Tuple (ScatterRecord, rng). The record is specular; ``did_scatter``
        is 0 when the perturbed direction points into the surface.
    """
    reflected = reflect(tm.normalize(incident_direction), normal)
    offset, state = random_in_unit_sphere(rng)
    scattered_direction = reflected + fuzz * offset

    did_scatter = 0
    if tm.dot(scattered_direction, normal) > 0.0:
        did_scatter = 1

    srec = ScatterRecord(
        did_scatter=did_scatter,
        is_specular=1,
        specular_direction=scattered_direction,
        attenuation=albedo,
        pdf_type=-1,
        pdf_axis=vec3(0.0, 0.0, 0.0),
    )
    return srec, state


# =============================================================================
# Material Field Storage
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 256

# Storage for metal material properties
metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials."""
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B) tuple.
            Each component must be in [0, 1].
        fuzz: The reflection perturbation in [0, 1]. Default is 0 (perfect mirror).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
        ValueError: If fuzz is outside [0, 1].
    """
    validate_color("Albedo", albedo, 1.0)

    if fuzz < 0.0 or fuzz > 1.0:
        raise ValueError(
            f"Fuzz = {fuzz} is outside [0, 1]. "
            "Fuzz must be between 0 (perfect mirror) and 1 (maximum fuzz)."
        )

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a metal material by index."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    """Get the fuzz for a metal material by index."""
    return metal_fuzzes[material_idx]
