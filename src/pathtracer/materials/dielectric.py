"""Dielectric material: clear glass, water and similar refractors.

At each hit the ray either reflects or refracts, never both. The choice is
made with one uniform draw against the Schlick reflectance of the incidence
angle; rays that would exceed the critical angle when leaving the material
always reflect. Transmission is colorless, so the attenuation is white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.materials.dielectric import scatter_dielectric
    >>> # Inside a Taichi kernel:
    >>> # srec, rng = scatter_dielectric(ior, incident_dir, normal, front_face, rng)
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import reflect, refract, schlick_fresnel
from src.pathtracer.core.rng import next_float
from src.pathtracer.materials.scatter_record import ScatterRecord

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    rng: ti.u32,
):
    """Scatter at a dielectric boundary.

    Args:
        ior: Index of refraction of the material (>= 1).
        incident_direction: The incoming ray direction (any length).
        normal: Unit surface normal facing against the incoming ray.
        front_face: 1 if the ray enters the material, 0 if it leaves it.
        rng: Generator state.

    Returns:
        Tuple (ScatterRecord, rng). Always a specular scatter with white
        attenuation.
    """
    # Entering: air to glass (1/ior); leaving: glass to air (ior)
    refraction_ratio = 1.0 / ior
    if front_face == 0:
        refraction_ratio = ior

    unit_direction = tm.normalize(incident_direction)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))

    # Total internal reflection
    cannot_refract = refraction_ratio * sin_theta > 1.0

    reflectance = schlick_fresnel(cos_theta, refraction_ratio)
    choice, state = next_float(rng)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract or reflectance > choice:
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio)

    srec = ScatterRecord(
        did_scatter=1,
        is_specular=1,
        specular_direction=scattered_direction,
        attenuation=vec3(1.0, 1.0, 1.0),
        pdf_type=-1,
        pdf_axis=vec3(0.0, 0.0, 0.0),
    )
    return srec, state


# =============================================================================
# Material Field Storage
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).
            Common values: Water=1.33, Glass=1.5, Diamond=2.4

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If IOR is less than 1.0.
    """
    if ior < 1.0:
        raise ValueError(
            f"IOR = {ior} is less than 1.0. "
            "Physical materials have IOR >= 1.0 (vacuum = 1.0)."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Get the IOR for a dielectric material by index."""
    return dielectric_iors[material_idx]
