"""Lambertian (ideal diffuse) material implementation.

A Lambertian surface scatters light in all directions of the hemisphere
about the normal with density proportional to the cosine:

    scattering_pdf(wo) = max(0, cos(theta)) / pi

Scattering itself draws no direction: the material hands back its cosine
density so the integrator can mix it with light-importance sampling.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # srec = scatter_lambertian(albedo, normal)
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.materials.scatter_record import ScatterRecord, validate_color
from src.pathtracer.sampling.pdf import PdfType

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3) -> ScatterRecord:
    """Scatter at a Lambertian surface.

    Args:
        albedo: Diffuse reflectance (RGB).
        normal: Unit surface normal facing against the incoming ray.

    Returns:
        A non-specular ScatterRecord owning a cosine density about ``normal``.
    """
    return ScatterRecord(
        did_scatter=1,
        is_specular=0,
        specular_direction=vec3(0.0, 0.0, 0.0),
        attenuation=albedo,
        pdf_type=int(PdfType.COSINE),
        pdf_axis=normal,
    )


@ti.func
def scattering_pdf_lambertian(normal: vec3, scattered_direction: vec3) -> ti.f32:
    """Density of the Lambertian lobe for ``scattered_direction``.

    Returns:
        max(0, cos(theta)) / pi, 0 below the surface.
    """
    cosine = tm.dot(normal, tm.normalize(scattered_direction))
    pdf = 0.0
    if cosine > 0.0:
        pdf = cosine / tm.pi
    return pdf


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 256

# Storage for Lambertian material properties
lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.
            Each component must be in [0, 1].

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
    """
    validate_color("Albedo", albedo, 1.0)

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a Lambertian material by index."""
    return lambertian_albedos[material_idx]
