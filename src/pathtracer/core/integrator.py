"""Radiance estimator with one-sample mixture importance sampling.

The estimator follows the recursive definition

    L(ray, depth) = 0                                          if depth <= 0
                  = background                                 on a miss
                  = Le                                         if the surface absorbs
                  = attenuation * L(specular_ray, depth - 1)   for a specular bounce
                  = Le + attenuation * scattering_pdf * L(scattered, depth - 1) / pdf_val

where a diffuse bounce draws its direction from an equal-weight mixture of
the light-importance density at the hit point and the material's own
density, and ``pdf_val`` is the mixture density of the drawn direction.
Taichi functions cannot recurse, so the chain of bounces is evaluated as a
loop carrying the path throughput and a remaining-depth counter.

Numerical policy:
    - A diffuse bounce whose mixture density is below PDF_EPSILON, or whose
      sampled direction is near zero, contributes its emission only.
    - Each finished estimate is sanitized: NaN/Inf channels become 0 and
      negative channels clamp to 0.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.integrator import estimate_radiance
    >>> from src.pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> scene.build(scene.add_list())
    >>> estimate_radiance((0, 0, 0), (0, 0, -1), depth=1, background=(1, 1, 1))
    (1.0, 1.0, 1.0)
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray, make_ray, near_zero
from src.pathtracer.core.rng import seed_rng
from src.pathtracer.geometry.hit_record import HitRecord
from src.pathtracer.materials.dielectric import get_dielectric_ior, scatter_dielectric
from src.pathtracer.materials.diffuse_light import (
    emit_diffuse_light,
    get_diffuse_light_emission,
)
from src.pathtracer.materials.lambertian import (
    get_lambertian_albedo,
    scatter_lambertian,
    scattering_pdf_lambertian,
)
from src.pathtracer.materials.metal import get_metal_albedo, get_metal_fuzz, scatter_metal
from src.pathtracer.materials.scatter_record import make_absorbed_record
from src.pathtracer.sampling.pdf import (
    Pdf,
    make_hittable_pdf,
    mixture_generate,
    mixture_value,
    pdf_generate,
    pdf_value,
)
from src.pathtracer.scene.intersection import hit_world, num_light_instances
from src.pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# t_min avoids self-intersection at the previous hit point
T_MIN = 0.001
T_MAX = 1e10

# Mixture densities below this drop the indirect term of the bounce
PDF_EPSILON = 1e-8


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def emit_material(rec: HitRecord) -> vec3:
    """Radiance emitted by the struck surface toward the ray origin.

    Zero for every material except DIFFUSE_LIGHT.
    """
    mat_type = get_material_type(rec.material_id)
    type_index = get_material_type_index(rec.material_id)
    emitted = vec3(0.0, 0.0, 0.0)
    if mat_type == int(MaterialType.DIFFUSE_LIGHT):
        emitted = emit_diffuse_light(get_diffuse_light_emission(type_index), rec.front_face)
    return emitted


@ti.func
def scatter_material(ray_in: Ray, rec: HitRecord, rng: ti.u32):
    """Dispatch to the struck material's scattering function.

    Args:
        ray_in: The incoming ray.
        rec: The hit record.
        rng: Generator state.

    Returns:
        Tuple (ScatterRecord, rng). ``did_scatter == 0`` means absorption.
    """
    mat_type = get_material_type(rec.material_id)
    type_index = get_material_type_index(rec.material_id)

    srec = make_absorbed_record()
    state = rng

    if mat_type == int(MaterialType.LAMBERTIAN):
        srec = scatter_lambertian(get_lambertian_albedo(type_index), rec.normal)

    elif mat_type == int(MaterialType.METAL):
        srec, state = scatter_metal(
            get_metal_albedo(type_index),
            get_metal_fuzz(type_index),
            ray_in.direction,
            rec.normal,
            state,
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        srec, state = scatter_dielectric(
            get_dielectric_ior(type_index),
            ray_in.direction,
            rec.normal,
            rec.front_face,
            state,
        )

    return srec, state


@ti.func
def scattering_pdf_material(rec: HitRecord, scattered_direction: vec3) -> ti.f32:
    """Density of the struck material's lobe; zero for specular materials."""
    mat_type = get_material_type(rec.material_id)
    density = 0.0
    if mat_type == int(MaterialType.LAMBERTIAN):
        density = scattering_pdf_lambertian(rec.normal, scattered_direction)
    return density


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def sanitize_radiance(color: vec3) -> vec3:
    """Replace NaN/Inf channels by 0 and clamp negative channels to 0."""
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]) or result[c] < 0.0:
            result[c] = 0.0
    return result


@ti.func
def is_usable_density(pdf_val: ti.f32, scattered: vec3) -> ti.i32:
    """1 if a diffuse bounce with this density and direction may continue."""
    usable = 1
    if pdf_val < PDF_EPSILON or near_zero(scattered):
        usable = 0
    return usable


@ti.func
def estimate(ray: Ray, background: vec3, depth: ti.i32, rng: ti.u32):
    """Estimate the radiance arriving along ``ray``.

    Args:
        ray: The primary ray.
        background: Radiance of escaped rays.
        depth: Maximum number of bounces; 0 or less yields black.
        rng: Generator state.

    Returns:
        Tuple (radiance, rng), radiance sanitized.
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    origin = ray.origin
    direction = ray.direction
    state = rng

    # Taichi doesn't support break in ti.func loops
    active = 1

    for _ in range(depth):
        if active == 1:
            current = make_ray(origin, direction, ray.time)
            rec = hit_world(current, T_MIN, T_MAX)

            if rec.hit == 0:
                radiance += throughput * background
                active = 0
            else:
                radiance += throughput * emit_material(rec)

                srec, state = scatter_material(current, rec, state)

                if srec.did_scatter == 0:
                    active = 0
                elif srec.is_specular == 1:
                    throughput *= srec.attenuation
                    origin = rec.point
                    direction = srec.specular_direction
                else:
                    material_pdf = Pdf(
                        pdf_type=srec.pdf_type,
                        axis=srec.pdf_axis,
                        origin=rec.point,
                    )
                    scattered = vec3(0.0, 0.0, 0.0)
                    pdf_val = 0.0
                    if num_light_instances[None] > 0:
                        light_pdf = make_hittable_pdf(rec.point)
                        scattered, state = mixture_generate(light_pdf, material_pdf, state)
                        pdf_val = mixture_value(light_pdf, material_pdf, scattered)
                    else:
                        scattered, state = pdf_generate(material_pdf, state)
                        pdf_val = pdf_value(material_pdf, scattered)

                    if is_usable_density(pdf_val, scattered) == 0:
                        active = 0
                    else:
                        weight = scattering_pdf_material(rec, scattered) / pdf_val
                        throughput *= srec.attenuation * weight
                        origin = rec.point
                        direction = scattered

    return sanitize_radiance(radiance), state


# =============================================================================
# Single-estimate entry point (tests and tools)
# =============================================================================

_probe_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_direction = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_background = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_result = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _estimate_kernel(depth: ti.i32, time: ti.f32, seed: ti.i32, stream: ti.i32):
    # Single serial task
    for _ in range(1):
        rng = seed_rng(seed, stream, 0)
        ray = make_ray(_probe_origin[None], _probe_direction[None], time)
        color, rng = estimate(ray, _probe_background[None], depth, rng)
        _probe_result[None] = color


def estimate_radiance(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int,
    background: tuple[float, float, float] = (0.0, 0.0, 0.0),
    time: float = 0.0,
    seed: int = 0,
    stream: int = 0,
) -> tuple[float, float, float]:
    """Evaluate one radiance estimate over the compiled scene.

    Args:
        origin: Ray origin.
        direction: Ray direction (any non-zero length).
        depth: Maximum number of bounces.
        background: Radiance of escaped rays.
        time: Ray time stamp.
        seed: Generator seed.
        stream: Generator stream, to draw independent estimates for one seed.

    Returns:
        Tuple of (R, G, B).
    """
    _probe_origin[None] = [origin[0], origin[1], origin[2]]
    _probe_direction[None] = [direction[0], direction[1], direction[2]]
    _probe_background[None] = [background[0], background[1], background[2]]
    _estimate_kernel(depth, time, seed, stream)
    color = _probe_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))
