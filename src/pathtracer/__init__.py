"""Taichi Monte-Carlo path tracer with mixture importance sampling.

Subpackages:
    core: Random numbers, rays, configuration, the radiance estimator and
        the scanline render driver
    geometry: Spheres, axis-aligned rectangles, hit records and transforms
    materials: Lambertian, metal, dielectric and diffuse-light materials
    sampling: Directional probability densities and their mixture
    scene: Node arena, scene compilation and the Cornell box scene
    camera: Thin-lens camera with a shutter interval
    preview: PPM and PNG output
"""

__version__ = "0.1.0"
