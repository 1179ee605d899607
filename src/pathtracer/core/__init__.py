"""Core rendering module.

Components:
    rng: Counter-based random number generation
    ray: Ray data structure, vector utilities and random directions
    config: Render run parameters
    integrator: Radiance estimator with mixture importance sampling
    renderer: Deterministic scanline render driver

All compute-intensive operations use Taichi kernels.
"""

from .config import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, MAX_SEED, RenderConfig
from .ray import (
    Ray,
    build_onb,
    length_squared,
    local_to_world,
    make_ray,
    near_zero,
    random_cosine_direction,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_to_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_fresnel,
    vec3,
)
from .rng import next_float, next_float_range, next_index, next_u32, pcg_hash, seed_rng

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from src.pathtracer.core.integrator or src.pathtracer.core.renderer.

__all__ = [
    "RenderConfig",
    "MAX_IMAGE_WIDTH",
    "MAX_IMAGE_HEIGHT",
    "MAX_SEED",
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length_squared",
    "reflect",
    "refract",
    "schlick_fresnel",
    "near_zero",
    "build_onb",
    "local_to_world",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
    "random_cosine_direction",
    "random_to_sphere",
    "pcg_hash",
    "seed_rng",
    "next_u32",
    "next_float",
    "next_float_range",
    "next_index",
]
