"""Unit tests for the ray module.

Tests cover:
- Ray dataclass and ray_at function
- Vector utility functions (reflect, refract, schlick, near_zero, onb)
- Random direction helpers driven by an explicit generator state
"""

import math

import numpy as np
import taichi as ti


class TestRayBasics:
    """Tests for Ray dataclass and basic operations."""

    def test_ray_at_positive_t(self):
        """Test ray_at computes origin + t * direction."""
        from src.pathtracer.core.ray import make_ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        time_result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 2.0, 3.0), vec3(0.0, 0.0, -2.0), 0.25)
            result[None] = ray_at(ray, 1.5)
            time_result[None] = ray.time

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 2.0) < 1e-6
        assert abs(r[2] - 0.0) < 1e-6
        assert abs(time_result[None] - 0.25) < 1e-6


class TestVectorUtilities:
    """Tests for reflection, refraction and basis helpers."""

    def test_reflect(self):
        from src.pathtracer.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 1.0) < 1e-6
        assert abs(r[2]) < 1e-6

    def test_refract_obeys_snell(self):
        """sin(theta_t) = eta * sin(theta_i) for a unit incident ray."""
        from src.pathtracer.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(vec3(1.0, -1.0, 0.0))
            result[None] = refract(incident, vec3(0.0, 1.0, 0.0), 1.0 / 1.5)

        test_kernel()
        r = np.array(result[None])
        assert abs(np.linalg.norm(r) - 1.0) < 1e-5
        assert r[1] < 0.0
        sin_t = r[0] / np.linalg.norm(r)
        assert abs(sin_t - math.sin(math.pi / 4.0) / 1.5) < 1e-5

    def test_schlick_fresnel_limits(self):
        from src.pathtracer.core.ray import schlick_fresnel

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = schlick_fresnel(1.0, 1.5)
            result[1] = schlick_fresnel(0.0, 1.5)

        test_kernel()
        assert abs(result[0] - 0.04) < 1e-5
        assert abs(result[1] - 1.0) < 1e-5

    def test_near_zero(self):
        from src.pathtracer.core.ray import near_zero, vec3

        result = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = near_zero(vec3(1e-9, -1e-9, 0.0))
            result[1] = near_zero(vec3(1e-9, 1e-3, 0.0))

        test_kernel()
        assert result[0] == 1
        assert result[1] == 0

    def test_build_onb_is_orthonormal(self):
        from src.pathtracer.core.ray import build_onb, vec3

        basis = ti.Vector.field(3, dtype=ti.f32, shape=(2, 3))

        @ti.kernel
        def test_kernel():
            u, v, w = build_onb(vec3(0.0, 0.0, 5.0))
            basis[0, 0] = u
            basis[0, 1] = v
            basis[0, 2] = w
            # Axis nearly parallel to x uses the alternate helper vector
            u2, v2, w2 = build_onb(vec3(1.0, 0.01, 0.0))
            basis[1, 0] = u2
            basis[1, 1] = v2
            basis[1, 2] = w2

        test_kernel()
        b = basis.to_numpy()
        for k in range(2):
            m = b[k]
            assert np.allclose(m @ m.T, np.eye(3), atol=1e-5)
        assert np.allclose(b[0, 2], [0.0, 0.0, 1.0], atol=1e-6)


class TestRandomDirections:
    """Tests for the random direction helpers."""

    def test_random_unit_vector_is_unit_length(self):
        from src.pathtracer.core.ray import random_unit_vector
        from src.pathtracer.core.rng import seed_rng

        n = 500
        results = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                d, _state = random_unit_vector(seed_rng(0, i, 0))
                results[i] = d

        test_kernel()
        lengths = np.linalg.norm(results.to_numpy(), axis=1)
        assert np.allclose(lengths, 1.0, atol=1e-5)

    def test_random_in_unit_disk_bounds(self):
        from src.pathtracer.core.ray import random_in_unit_disk
        from src.pathtracer.core.rng import seed_rng

        n = 500
        results = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                p, _state = random_in_unit_disk(seed_rng(1, i, 0))
                results[i] = p

        test_kernel()
        points = results.to_numpy()
        assert (points[:, 0] ** 2 + points[:, 1] ** 2 < 1.0).all()
        assert (points[:, 2] == 0.0).all()

    def test_random_cosine_direction_mean_cosine(self):
        """E[cos] under a cos/pi density is 2/3."""
        from src.pathtracer.core.ray import random_cosine_direction
        from src.pathtracer.core.rng import seed_rng

        n = 20000
        results = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                d, _state = random_cosine_direction(seed_rng(2, i, 0))
                results[i] = d

        test_kernel()
        dirs = results.to_numpy()
        assert (dirs[:, 2] >= 0.0).all()
        assert np.allclose(np.linalg.norm(dirs, axis=1), 1.0, atol=1e-5)
        assert abs(dirs[:, 2].mean() - 2.0 / 3.0) < 0.01

    def test_random_to_sphere_stays_in_cone(self):
        from src.pathtracer.core.ray import random_to_sphere
        from src.pathtracer.core.rng import seed_rng

        n = 1000
        results = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                d, _state = random_to_sphere(1.0, 4.0, seed_rng(3, i, 0))
                results[i] = d

        test_kernel()
        cos_theta_max = math.sqrt(1.0 - 1.0 / 4.0)
        dirs = results.to_numpy()
        assert (dirs[:, 2] >= cos_theta_max - 1e-5).all()
