"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear nodes, materials and the camera before and after each test."""
    # Import here so that Taichi is initialized before fields are created
    from src.pathtracer.camera.thin_lens import reset_camera
    from src.pathtracer.materials.dielectric import clear_dielectric_materials
    from src.pathtracer.materials.diffuse_light import clear_diffuse_light_materials
    from src.pathtracer.materials.lambertian import clear_lambertian_materials
    from src.pathtracer.materials.metal import clear_metal_materials
    from src.pathtracer.scene.intersection import clear_nodes
    from src.pathtracer.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_nodes()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_diffuse_light_materials()
        _clear_material_tracking()
        reset_camera()

    _clear_all()

    yield

    _clear_all()
