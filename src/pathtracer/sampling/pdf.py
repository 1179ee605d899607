"""Directional probability densities for importance sampling.

A Pdf is a small tagged value: ``COSINE`` distributes directions
proportionally to the cosine about ``axis`` (the density owned by diffuse
materials), ``HITTABLE`` distributes them toward the compiled light
instances as seen from ``origin``. Two densities are combined with the
equal-weight mixture functions.

Every density integrates to 1 over the sphere of directions and every
sampler returns the advanced generator state alongside the direction.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.sampling.pdf import (
    ...     make_cosine_pdf, make_hittable_pdf, mixture_generate, mixture_value
    ... )
    >>> # Within a Taichi kernel:
    >>> # lights = make_hittable_pdf(hit_point)
    >>> # material = make_cosine_pdf(normal)
    >>> # direction, rng = mixture_generate(lights, material, rng)
    >>> # density = mixture_value(lights, material, direction)
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import build_onb, local_to_world, random_cosine_direction
from src.pathtracer.core.rng import next_float
from src.pathtracer.scene.intersection import lights_pdf_value, lights_random

# Type alias for 3D vectors
vec3 = tm.vec3


class PdfType(IntEnum):
    """Enumeration of directional density variants."""

    COSINE = 0
    HITTABLE = 1


@ti.dataclass
class Pdf:
    """A directional density.

    Attributes:
        pdf_type: PdfType value.
        axis: Lobe axis of a cosine density (need not be normalized).
        origin: Reference point of a light-importance density.
    """

    pdf_type: ti.i32
    axis: vec3
    origin: vec3


@ti.func
def make_cosine_pdf(axis: vec3) -> Pdf:
    """Cosine density about ``axis``."""
    return Pdf(pdf_type=int(PdfType.COSINE), axis=axis, origin=vec3(0.0, 0.0, 0.0))


@ti.func
def make_hittable_pdf(origin: vec3) -> Pdf:
    """Density toward the light instances as seen from ``origin``."""
    return Pdf(pdf_type=int(PdfType.HITTABLE), axis=vec3(0.0, 0.0, 1.0), origin=origin)


@ti.func
def cosine_pdf_value(axis: vec3, direction: vec3) -> ti.f32:
    """max(0, cos(theta)) / pi between ``direction`` and ``axis``."""
    cosine = tm.dot(tm.normalize(direction), tm.normalize(axis))
    return tm.max(0.0, cosine) / tm.pi


@ti.func
def pdf_value(pdf: Pdf, direction: vec3) -> ti.f32:
    """Evaluate a density at ``direction``."""
    density = 0.0
    if pdf.pdf_type == int(PdfType.COSINE):
        density = cosine_pdf_value(pdf.axis, direction)
    elif pdf.pdf_type == int(PdfType.HITTABLE):
        density = lights_pdf_value(pdf.origin, direction)
    return density


@ti.func
def pdf_generate(pdf: Pdf, rng: ti.u32):
    """Sample a direction from a density.

    Returns:
        Tuple (direction, rng).
    """
    direction = vec3(0.0, 0.0, 0.0)
    state = rng
    if pdf.pdf_type == int(PdfType.COSINE):
        u, v, w = build_onb(pdf.axis)
        local_dir, state = random_cosine_direction(state)
        direction = local_to_world(local_dir, u, v, w)
    elif pdf.pdf_type == int(PdfType.HITTABLE):
        direction, state = lights_random(pdf.origin, state)
    return direction, state


@ti.func
def mixture_value(a: Pdf, b: Pdf, direction: vec3) -> ti.f32:
    """Equal-weight mixture density: 0.5 * a + 0.5 * b."""
    return 0.5 * pdf_value(a, direction) + 0.5 * pdf_value(b, direction)


@ti.func
def mixture_generate(a: Pdf, b: Pdf, rng: ti.u32):
    """Sample the mixture by flipping an unbiased coin between ``a`` and ``b``.

    Returns:
        Tuple (direction, rng).
    """
    coin, state = next_float(rng)
    direction = vec3(0.0, 0.0, 0.0)
    if coin < 0.5:
        direction, state = pdf_generate(a, state)
    else:
        direction, state = pdf_generate(b, state)
    return direction, state
