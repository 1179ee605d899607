"""Materials module.

Components:
    scatter_record: Result of a scattering event
    lambertian: Ideal diffuse reflection with a cosine density
    metal: Mirror reflection with optional fuzz
    dielectric: Refraction with Schlick reflectance
    diffuse_light: One-sided area emitter

Each material family keeps its parameters in its own Taichi field registry.
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_ior,
    get_dielectric_material_count,
    scatter_dielectric,
)
from .diffuse_light import (
    add_diffuse_light_material,
    clear_diffuse_light_materials,
    emit_diffuse_light,
    get_diffuse_light_emission,
    get_diffuse_light_material_count,
)
from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    scatter_lambertian,
    scattering_pdf_lambertian,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
)
from .scatter_record import ScatterRecord, make_absorbed_record

__all__ = [
    "ScatterRecord",
    "make_absorbed_record",
    # Lambertian
    "scatter_lambertian",
    "scattering_pdf_lambertian",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_albedo",
    # Metal
    "scatter_metal",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_albedo",
    "get_metal_fuzz",
    # Dielectric
    "scatter_dielectric",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "get_dielectric_ior",
    # Diffuse light
    "emit_diffuse_light",
    "add_diffuse_light_material",
    "clear_diffuse_light_materials",
    "get_diffuse_light_material_count",
    "get_diffuse_light_emission",
]
