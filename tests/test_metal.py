"""Unit tests for the metal material."""

import numpy as np
import pytest
import taichi as ti


def _scatter_metal(fuzz, incident, normal, n=1):
    from src.pathtracer.core.ray import vec3
    from src.pathtracer.core.rng import seed_rng
    from src.pathtracer.materials.metal import scatter_metal

    did_scatter = ti.field(dtype=ti.i32, shape=n)
    is_specular = ti.field(dtype=ti.i32, shape=n)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

    @ti.kernel
    def test_kernel():
        for i in range(n):
            srec, _state = scatter_metal(
                vec3(0.8, 0.85, 0.88),
                fuzz,
                vec3(incident[0], incident[1], incident[2]),
                vec3(normal[0], normal[1], normal[2]),
                seed_rng(0, i, 0),
            )
            did_scatter[i] = srec.did_scatter
            is_specular[i] = srec.is_specular
            directions[i] = srec.specular_direction

    test_kernel()
    return did_scatter.to_numpy(), is_specular.to_numpy(), directions.to_numpy()


class TestMetalScatter:
    """Tests for metal reflection."""

    def test_zero_fuzz_is_mirror(self):
        """Angle of reflection equals angle of incidence."""
        did, specular, dirs = _scatter_metal(0.0, (1.0, -2.0, 0.5), (0.0, 1.0, 0.0))
        assert did[0] == 1
        assert specular[0] == 1
        incident = np.array([1.0, -2.0, 0.5])
        incident /= np.linalg.norm(incident)
        expected = incident * np.array([1.0, -1.0, 1.0])
        assert np.allclose(dirs[0], expected, atol=1e-5)

    def test_fuzz_stays_within_radius(self):
        did, _, dirs = _scatter_metal(0.3, (0.0, -1.0, 0.0), (0.0, 1.0, 0.0), n=200)
        offsets = dirs - np.array([0.0, 1.0, 0.0])
        assert (np.linalg.norm(offsets, axis=1) <= 0.3 + 1e-5).all()
        assert did.all()

    def test_grazing_fuzzy_reflection_can_be_absorbed(self):
        did, _, dirs = _scatter_metal(1.0, (1.0, -0.01, 0.0), (0.0, 1.0, 0.0), n=200)
        below = dirs[:, 1] <= 0.0
        assert below.any()
        assert (did[below] == 0).all()
        assert (did[~below] == 1).all()


class TestMetalRegistry:
    """Tests for metal material storage."""

    def test_add_and_read_back(self):
        from src.pathtracer.materials.metal import (
            add_metal_material,
            get_metal_albedo,
            get_metal_fuzz,
        )

        idx = add_metal_material((0.8, 0.85, 0.88), 0.25)

        albedo = ti.Vector.field(3, dtype=ti.f32, shape=())
        fuzz = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            albedo[None] = get_metal_albedo(idx)
            fuzz[None] = get_metal_fuzz(idx)

        test_kernel()
        assert np.allclose(albedo[None], [0.8, 0.85, 0.88])
        assert abs(fuzz[None] - 0.25) < 1e-6

    def test_invalid_fuzz(self):
        from src.pathtracer.materials.metal import add_metal_material

        with pytest.raises(ValueError):
            add_metal_material((0.5, 0.5, 0.5), -0.1)
